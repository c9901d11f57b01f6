"""SQLAlchemy database models."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Index,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class BionetHost(Base):
    """A tracked host on the private subnet.

    Names are stored without the domain suffix.
    """

    __tablename__ = "bionet_hosts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    host = Column(String(128), unique=True, nullable=False)
    ip = Column(String(45), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    last_online = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_bionet_hosts_active", "active"),
    )
