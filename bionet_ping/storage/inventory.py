"""Inventory store: the system of record for tracked hosts."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from bionet_ping.config import settings
from bionet_ping.errors import InventoryUnavailableError
from bionet_ping.scanner.models import InventoryRecord, PreviewRow, UpdateResult, strip_suffix
from bionet_ping.storage.models import Base, BionetHost

logger = logging.getLogger(__name__)

# Return codes for commit_update
RESULT_DATABASE_ERROR = -1
RETURN_NO_KNOWN_HOSTS = 1


class InventoryStore(Protocol):
    """Operations the sweep needs from the inventory."""

    async def fetch_all(self) -> List[InventoryRecord]:
        ...

    async def fetch_active_only(self) -> List[str]:
        ...

    async def commit_update(
        self,
        hosts_with_addresses: Dict[str, str],
        add_unknown_hosts: bool = False,
        preview_only: bool = False,
    ) -> UpdateResult:
        ...

    async def close(self) -> None:
        ...


class SqlInventoryStore:
    """Inventory backed by an async SQLAlchemy engine.

    Fetch failures raise InventoryUnavailableError. Update failures are
    returned as a non-zero result code instead, since a failed write must
    not abort the sweep.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        query_timeout: Optional[float] = None,
        host_suffix: Optional[str] = None,
    ):
        self.database_url = database_url or settings.database_url
        self.query_timeout = query_timeout or settings.inventory_query_timeout
        self.host_suffix = host_suffix or settings.host_suffix
        self._engine = None
        self._session_factory = None
        # Lock to prevent race condition in database initialization
        self._init_lock = asyncio.Lock()

    async def _init_database(self) -> None:
        """Create the engine, session factory and any missing tables."""
        if self.database_url.startswith("sqlite") and ":///" in self.database_url:
            db_path = self.database_url.split(":///", 1)[1]
            if db_path and db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(self.database_url, echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        self._engine = engine
        logger.debug("Inventory database initialized at %s", engine.url.render_as_string(hide_password=True))

    async def _get_session(self) -> AsyncSession:
        if self._session_factory is None:
            async with self._init_lock:
                # Double-check after acquiring lock
                if self._session_factory is None:
                    await self._init_database()
        return self._session_factory()

    async def _guarded(self, operation: str, coro):
        """Await a query with the configured timeout, wrapping failures."""
        try:
            return await asyncio.wait_for(coro, timeout=self.query_timeout)
        except asyncio.TimeoutError as e:
            raise InventoryUnavailableError(
                operation, f"timed out after {self.query_timeout:g}s"
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise InventoryUnavailableError(operation, str(e)) from e

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def fetch_all(self) -> List[InventoryRecord]:
        """Return every tracked host, active or not, ordered by name."""

        async def _query() -> List[InventoryRecord]:
            async with await self._get_session() as session:
                result = await session.execute(
                    select(BionetHost).order_by(BionetHost.host)
                )
                return [
                    InventoryRecord(host=row.host, ip=row.ip, active=bool(row.active))
                    for row in result.scalars().all()
                ]

        return await self._guarded("fetch_all", _query())

    async def fetch_active_only(self) -> List[str]:
        """Return the names of hosts flagged active, ordered by name."""

        async def _query() -> List[str]:
            async with await self._get_session() as session:
                result = await session.execute(
                    select(BionetHost.host)
                    .where(BionetHost.active.is_(True))
                    .order_by(BionetHost.host)
                )
                return list(result.scalars().all())

        return await self._guarded("fetch_active_only", _query())

    async def add_hosts(self, records: Iterable[InventoryRecord]) -> int:
        """Insert hosts into the inventory.

        Returns:
            Number of hosts inserted.
        """

        async def _insert() -> int:
            async with await self._get_session() as session:
                count = 0
                for record in records:
                    session.add(BionetHost(
                        host=strip_suffix(record.host, self.host_suffix),
                        ip=record.ip,
                        active=record.active,
                    ))
                    count += 1
                await session.commit()
                return count

        return await self._guarded("add_hosts", _insert())

    async def commit_update(
        self,
        hosts_with_addresses: Dict[str, str],
        add_unknown_hosts: bool = False,
        preview_only: bool = False,
    ) -> UpdateResult:
        """Record that the given hosts were seen online.

        Args:
            hosts_with_addresses: Host name -> responding address. An empty
                address leaves the stored IP unchanged.
            add_unknown_hosts: Insert hosts the inventory does not know.
            preview_only: Report what would change without writing.

        Returns:
            UpdateResult; in preview mode it carries one PreviewRow per host
            and a pipe-delimited message.
        """
        if not hosts_with_addresses:
            return UpdateResult(0, 0, "No hosts to update")

        try:
            return await self._guarded(
                "commit_update",
                self._apply_update(hosts_with_addresses, add_unknown_hosts, preview_only),
            )
        except InventoryUnavailableError as e:
            logger.debug("Inventory update failed", exc_info=True)
            return UpdateResult(RESULT_DATABASE_ERROR, 0, e.detail)

    async def _apply_update(
        self,
        hosts_with_addresses: Dict[str, str],
        add_unknown_hosts: bool,
        preview_only: bool,
    ) -> UpdateResult:
        now = datetime.utcnow()
        rows: List[PreviewRow] = []
        updated = 0
        added = 0
        unknown: List[str] = []

        async with await self._get_session() as session:
            result = await session.execute(select(BionetHost))
            known = {record.host.casefold(): record for record in result.scalars().all()}

            for name in sorted(hosts_with_addresses, key=str.casefold):
                address = hosts_with_addresses[name] or None
                bare_name = strip_suffix(name, self.host_suffix)
                record = known.get(bare_name.casefold()) or known.get(name.casefold())

                if record is None:
                    if not add_unknown_hosts:
                        unknown.append(name)
                        rows.append(PreviewRow(name, None, None, "Unknown host; not added"))
                        continue
                    rows.append(PreviewRow(bare_name, None, now, "New host; will be added"))
                    record = BionetHost(host=bare_name, ip=address, active=True, last_online=now)
                    if not preview_only:
                        session.add(record)
                    # Later spellings of the same host update the pending row
                    known[bare_name.casefold()] = record
                    added += 1
                    continue

                notes = []
                if address and record.ip and record.ip != address:
                    notes.append(f"IP changed from {record.ip} to {address}")
                if not record.active:
                    notes.append("Host is flagged inactive")
                rows.append(PreviewRow(record.host, record.last_online, now, "; ".join(notes)))

                if not preview_only:
                    record.last_online = now
                    if address:
                        record.ip = address
                updated += 1

            if not preview_only and (updated or added):
                await session.commit()

        if preview_only:
            message = " | ".join(
                f"{row.host}: {row.warning}" if row.warning else row.host
                for row in rows
            )
            return UpdateResult(0, 0, message, rows)

        if unknown and not (updated or added):
            return UpdateResult(
                0,
                RETURN_NO_KNOWN_HOSTS,
                f"None of the {len(unknown)} hosts are known to the inventory: {', '.join(unknown)}",
            )

        message = f"Updated {updated} hosts"
        if added:
            message += f", added {added} new hosts"
        if unknown:
            message += f"; ignored {len(unknown)} unknown hosts: {', '.join(unknown)}"
        return UpdateResult(0, 0, message)
