"""
Directory snapshot: the set of usernames present in the directory for one run.

The snapshot is built once per run and shared by every classification call.
An empty snapshot means "no directory data", and the checker refuses to
suspend or reactivate anyone on that basis.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List

from ldap3.core.exceptions import LDAPException

from cleanup.config import LDAPSettings
from cleanup.exceptions import DirectoryUnavailableError

from .adapters.ldap_adapter import LDAPAdapter

logger = logging.getLogger(__name__)


class DirectorySnapshot:
    """
    Immutable set of login identifiers.

    Membership is exact and case-sensitive. Duplicates collapse on
    construction.
    """

    __slots__ = ("_usernames",)

    def __init__(self, usernames: Iterable[str] = ()):
        self._usernames: FrozenSet[str] = frozenset(usernames)

    @classmethod
    def empty(cls) -> "DirectorySnapshot":
        return cls()

    @classmethod
    def from_identifiers(cls, usernames: Iterable[str]) -> "DirectorySnapshot":
        return cls(u for u in usernames if u)

    @classmethod
    def from_entries(cls, entries: Iterable[Dict[str, Any]], attribute: str) -> "DirectorySnapshot":
        """
        Build a snapshot from directory search results.

        Args:
            entries: Search results as dictionaries (see LDAPAdapter.search_as_dicts)
            attribute: Username attribute; every value of a multi-valued
                       attribute is added, entries without it are ignored

        Returns:
            DirectorySnapshot
        """
        usernames = []
        for entry in entries:
            value = _lookup_attribute(entry, attribute)
            if value is None:
                continue
            if isinstance(value, (list, tuple, set)):
                usernames.extend(str(v) for v in value if v)
            elif value:
                usernames.append(str(value))
        return cls(usernames)

    def contains(self, username: str) -> bool:
        return username in self._usernames

    def size(self) -> int:
        return len(self._usernames)

    def is_empty(self) -> bool:
        return not self._usernames

    def __contains__(self, username: object) -> bool:
        return username in self._usernames

    def __len__(self) -> int:
        return len(self._usernames)

    def __iter__(self) -> Iterator[str]:
        return iter(self._usernames)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DirectorySnapshot):
            return self._usernames == other._usernames
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._usernames)

    def __repr__(self) -> str:
        return f"DirectorySnapshot(size={len(self._usernames)})"


def _lookup_attribute(entry: Dict[str, Any], attribute: str) -> Any:
    # Servers may return the attribute with different casing than requested
    if attribute in entry:
        return entry[attribute]
    lowered = attribute.lower()
    for key, value in entry.items():
        if key.lower() == lowered:
            return value
    return None


def build_directory_snapshot(adapter: LDAPAdapter, settings: LDAPSettings) -> DirectorySnapshot:
    """
    Search every configured context and collect the username attribute.

    Args:
        adapter: Configured LDAPAdapter
        settings: Contexts, filter and username attribute to use

    Returns:
        DirectorySnapshot: All usernames found (possibly empty)

    Raises:
        DirectoryUnavailableError: If binding or any search fails
    """
    entries: List[Dict[str, Any]] = []
    try:
        for context in settings.contexts:
            logger.debug(f"Searching {context} with filter {settings.search_filter}")
            entries.extend(
                adapter.search_as_dicts(
                    search_filter=settings.search_filter,
                    search_base=context,
                    attributes=[settings.username_attribute],
                )
            )
    except LDAPException as e:
        logger.error(f"Cannot read users from LDAP: {e}")
        raise DirectoryUnavailableError(f"cannot connect to LDAP server: {e}") from e

    snapshot = DirectorySnapshot.from_entries(entries, settings.username_attribute)
    logger.info(f"ldap server sent {snapshot.size()} users")
    return snapshot
