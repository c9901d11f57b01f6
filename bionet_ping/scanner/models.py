"""Value types shared by the sweep pipeline."""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class SuffixMode(enum.Enum):
    """Whether bare host names get the domain suffix before probing."""

    REQUIRE_SUFFIX = "require_suffix"        # names came from the inventory
    PRESERVE_AS_GIVEN = "preserve_as_given"  # names came from the user


def has_suffix(host: str, suffix: str) -> bool:
    """Case-insensitive check for a trailing domain suffix."""
    return host.casefold().endswith(suffix.casefold())


def strip_suffix(host: str, suffix: str) -> str:
    """Return ``host`` without a trailing ``suffix`` (case-insensitive)."""
    if has_suffix(host, suffix) and len(host) > len(suffix):
        return host[: -len(suffix)]
    return host


def ensure_suffix(host: str, suffix: str) -> str:
    """Return ``host`` with ``suffix`` appended unless already present."""
    if has_suffix(host, suffix):
        return host
    return host + suffix


@dataclass(frozen=True)
class SweepOptions:
    """Per-run options, built once by the CLI and passed to each stage."""

    host_list: Optional[str] = None
    host_file: Optional[Path] = None
    simulate: bool = False
    update_inventory: bool = False
    add_unknown_hosts: bool = False
    use_inventory: bool = True
    hide_skipped: bool = False

    @property
    def has_explicit_source(self) -> bool:
        return bool((self.host_list or "").strip()) or self.host_file is not None


@dataclass(frozen=True)
class InventoryRecord:
    """A host as the inventory knows it."""

    host: str
    ip: Optional[str]
    active: bool


@dataclass(frozen=True)
class ReconcileResult:
    """Output of the inventory reconciliation step."""

    hosts_to_probe: Tuple[str, ...]
    skipped: Tuple[str, ...]
    suffix_mode: SuffixMode


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of probing a single host.

    ``host`` is the candidate name used for reporting; ``probe_name`` is the
    name actually sent to the resolver (suffixed in REQUIRE_SUFFIX mode).
    """

    host: str
    probe_name: str
    reachable: bool
    address: Optional[str] = None

    def __post_init__(self):
        if self.address and not self.reachable:
            raise ValueError(f"unreachable host {self.host} cannot carry an address")


@dataclass(frozen=True)
class PreviewRow:
    """One row of an inventory update preview."""

    host: str
    last_online: Optional[datetime]
    new_last_online: Optional[datetime]
    warning: str = ""


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of an inventory update call.

    Non-zero ``result_code`` means the call itself failed (database error);
    non-zero ``return_code`` means the inventory rejected the request.
    """

    result_code: int
    return_code: int
    message: str
    preview_rows: List[PreviewRow] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.result_code == 0 and self.return_code == 0


@dataclass(frozen=True)
class SweepSummary:
    """What a finished sweep did, for logging, metrics and tests."""

    candidates: int
    probed: Tuple[str, ...]
    skipped: Tuple[str, ...]
    reachable: Dict[str, str]
    suffix_mode: SuffixMode
    update: Optional[UpdateResult] = None
    duration_seconds: float = 0.0
