"""Build the de-duplicated candidate host set for a sweep.

Host names are compared case-insensitively. The first spelling seen for a
name is the one that is kept and reported.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Union

logger = logging.getLogger(__name__)


class CandidateSet:
    """Immutable, case-insensitively sorted set of host names."""

    __slots__ = ("_hosts", "_keys")

    def __init__(self, hosts: Iterable[str] = ()):
        ordered = sorted(hosts, key=str.casefold)
        self._hosts = tuple(ordered)
        self._keys = frozenset(h.casefold() for h in ordered)
        if len(self._keys) != len(self._hosts):
            raise ValueError("candidate hosts must be unique ignoring case")

    def __contains__(self, host: object) -> bool:
        return isinstance(host, str) and host.casefold() in self._keys

    def __iter__(self) -> Iterator[str]:
        return iter(self._hosts)

    def __len__(self) -> int:
        return len(self._hosts)

    def __bool__(self) -> bool:
        return bool(self._hosts)

    def __repr__(self) -> str:
        return f"CandidateSet({list(self._hosts)!r})"

    def as_tuple(self) -> tuple:
        return self._hosts


class HostSetBuilder:
    """Collects host names from several sources, dropping duplicates."""

    def __init__(self):
        # casefolded name -> first spelling seen
        self._hosts: Dict[str, str] = {}
        self.duplicates = 0

    def add_host(self, name: str) -> bool:
        """Add one host name.

        Returns:
            True if the host was added, False if it was blank or a duplicate.
        """
        host = name.strip()
        if not host:
            return False

        key = host.casefold()
        if key in self._hosts:
            self.duplicates += 1
            logger.warning(
                "Skipping duplicate host %s (already listed as %s)",
                host,
                self._hosts[key],
            )
            return False

        self._hosts[key] = host
        return True

    def add_host_list(self, host_list: str) -> int:
        """Add hosts from a comma-separated list.

        Returns:
            Number of hosts added.
        """
        return sum(1 for token in host_list.split(",") if self.add_host(token))

    def add_host_file(self, path: Union[str, Path]) -> int:
        """Add hosts from a text file listing one host per line.

        Only the first whitespace-delimited token of each line is used, so
        lines may carry trailing notes. Blank lines are skipped.

        Returns:
            Number of hosts added (0 if the file does not exist).
        """
        path = Path(path)
        if not path.is_file():
            logger.warning("Host name file not found: %s", path)
            return 0

        added = 0
        with path.open("r", encoding="utf-8") as handle:
            for line in handle:
                tokens = line.split()
                if tokens and self.add_host(tokens[0]):
                    added += 1

        logger.info("Loaded %d hosts from %s", added, path)
        return added

    def build(self) -> CandidateSet:
        return CandidateSet(self._hosts.values())


def build_candidate_set(
    host_list: Optional[str] = None,
    host_file: Optional[Union[str, Path]] = None,
) -> CandidateSet:
    """Merge the explicit list and host file into one candidate set.

    Both sources are optional; an empty result tells the reconciler to fall
    back to the inventory's active hosts.
    """
    builder = HostSetBuilder()
    if host_list:
        builder.add_host_list(host_list)
    if host_file:
        builder.add_host_file(host_file)
    return builder.build()
