"""
Read-only access to the account store used by the status checker.

The store holds three tables: the live user table, a marker table recording
which accounts this tool suspended (and when), and an archive table with a copy
of each such account taken at suspension time.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .models import AccountRecord, SuspensionRecord


class AccountRepository(ABC):
    """
    Abstract base class for account store implementations.

    Each implementation must provide the primitive lookups below. The
    ``get_suspension_record`` helper combines marker and archive into a single
    SuspensionRecord and can be overridden when a store can do it in one query.
    """

    @abstractmethod
    def query_accounts(
        self,
        auth_method: str,
        *,
        suspended: Optional[bool] = None,
        deleted: Optional[bool] = None,
        lastaccess: Optional[int] = None,
        firstname_not: Optional[str] = None,
        lastaccess_nonzero_or_firstname: Optional[str] = None,
    ) -> List[AccountRecord]:
        """
        Select accounts of one authentication method.

        Every filter left as None is not applied. Results come back in a
        stable order (ascending id) so repeated calls agree.

        Args:
            auth_method: Authentication method tag accounts must carry
            suspended: Required value of the suspended flag
            deleted: Required value of the deleted flag
            lastaccess: Required exact lastaccess value (0 selects never-signed-in)
            firstname_not: Exclude accounts whose firstname equals this value
            lastaccess_nonzero_or_firstname: Keep accounts where
                ``lastaccess != 0 OR firstname = <value>``

        Returns:
            List[AccountRecord]: Matching accounts
        """
        pass

    @abstractmethod
    def suspension_marker_exists(self, account_id: int) -> bool:
        pass

    @abstractmethod
    def get_suspension_marker(self, account_id: int) -> Optional[Dict[str, Any]]:
        """Return ``{'id': ..., 'timestamp': ...}`` or None."""
        pass

    @abstractmethod
    def archive_exists(self, account_id: int) -> bool:
        pass

    @abstractmethod
    def get_archive(self, account_id: int) -> Optional[AccountRecord]:
        pass

    @abstractmethod
    def account_exists_by_identity(self, username: str) -> bool:
        pass

    def get_suspension_record(self, account_id: int) -> Optional[SuspensionRecord]:
        """
        Combine the marker and archive rows of an account.

        Returns:
            None when the account has no marker (not suspended by this tool),
            otherwise a SuspensionRecord whose ``archive`` is None when the
            archive row is missing.
        """
        if not self.suspension_marker_exists(account_id):
            return None

        marker = self.get_suspension_marker(account_id)
        if marker is None:
            return None

        archive = self.get_archive(account_id) if self.archive_exists(account_id) else None
        return SuspensionRecord(
            id=account_id, timestamp=int(marker["timestamp"]), archive=archive
        )
