"""
LDAP account status checker.

Compares the accounts of one authentication method against a snapshot of the
usernames currently present in the directory and decides which accounts need
a lifecycle transition:

- get_to_suspend: active accounts whose username is no longer in the directory
- get_never_logged_in: accounts that never signed in (reporting only)
- get_to_delete: accounts this tool suspended longer ago than the threshold
- get_to_reactivate: accounts this tool suspended that are back in the directory

The checker only reads. Applying the transitions is up to the caller.

An empty snapshot means the directory could not be read (or sent nothing).
Suspend and reactivate return no accounts in that case instead of treating
every user as missing from the directory.
"""

import logging
import time
from typing import Callable, Collection, Iterable, List, Optional

from .config import CleanupConfig
from .diagnostics import (
    ALREADY_ACTIVE,
    DIRECTORY_EMPTY,
    MARKED,
    MISSING_ARCHIVE,
    DiagnosticEvent,
    DiagnosticObserver,
    LoggingObserver,
)
from .models import AccountRecord, ArchivedUser, SuspensionRecord
from .privilege import PredicateLike, SiteAdminPredicate, as_predicate
from .repository import AccountRepository

logger = logging.getLogger(__name__)


class LdapStatusChecker:
    """
    Classifies accounts against a directory snapshot.

    Each public method runs its own repository query and its own chain of
    checks; none depends on the result of another. All methods of one run
    should be given the same snapshot.
    """

    def __init__(
        self,
        config: CleanupConfig,
        repository: AccountRepository,
        privilege_predicate: Optional[PredicateLike] = None,
        observer: Optional[DiagnosticObserver] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Auth method, delete threshold and placeholder name
            repository: Read access to the account, marker and archive tables
            privilege_predicate: Exemption check; defaults to the site admin ids
                                 listed in ``config``
            observer: Receives diagnostic events (defaults to logging them)
            clock: Returns the current time in epoch seconds
        """
        self.config = config
        self.repository = repository
        if privilege_predicate is None:
            privilege_predicate = SiteAdminPredicate(config.site_admin_ids)
        self.privilege_predicate = as_predicate(privilege_predicate)
        self.observer = observer or LoggingObserver(logger)
        self.clock = clock

    def with_observer(self, observer: DiagnosticObserver) -> "LdapStatusChecker":
        """Return a checker sharing this one's collaborators but reporting to ``observer``."""
        return LdapStatusChecker(
            self.config,
            self.repository,
            self.privilege_predicate,
            observer=observer,
            clock=self.clock,
        )

    # Shared helpers

    def _emit(
        self,
        operation: str,
        kind: str,
        message: str,
        account: Optional[AccountRecord] = None,
    ) -> None:
        self.observer.emit(
            DiagnosticEvent(
                operation=operation,
                kind=kind,
                message=message,
                account_id=account.id if account else None,
                username=account.username if account else None,
            )
        )

    def _directory_available(self, operation: str, snapshot: Optional[Collection[str]]) -> bool:
        if snapshot is None or len(snapshot) == 0:
            self._emit(
                operation,
                DIRECTORY_EMPTY,
                "no users from LDAP found => do not evaluate users",
            )
            return False
        return True

    def _candidates(
        self, operation: str, check_privilege: bool = True, **filters
    ) -> Iterable[AccountRecord]:
        """
        Query accounts of the configured auth method and drop exempt ones.

        Repository errors propagate unchanged.
        """
        accounts = self.repository.query_accounts(self.config.auth_method, **filters)
        logger.debug(f"[{operation}] found {len(accounts)} users in user table to check")

        for account in accounts:
            if check_privilege and self.privilege_predicate.is_exempt(account):
                logger.debug(f"[{operation}] {account.username} is exempt, skipping")
                continue
            yield account

    def _suspended_by_tool(
        self, operation: str, account: AccountRecord
    ) -> Optional[SuspensionRecord]:
        """Marker and archive for ``account``, or None if a human suspended it."""
        record = self.repository.get_suspension_record(account.id)
        if record is None:
            logger.debug(f"[{operation}] {account.username} not suspended by this tool, skipping")
        return record

    def _report_missing_archive(self, operation: str, account: AccountRecord) -> None:
        self._emit(
            operation,
            MISSING_ARCHIVE,
            f"{account.username} (suspended by plugin) has no entry in archive, skipping",
            account,
        )

    def _mark(
        self,
        operation: str,
        results: List[ArchivedUser],
        source: AccountRecord,
        live: Optional[AccountRecord] = None,
    ) -> None:
        results.append(ArchivedUser.from_account(source))
        label = source.username if live is None else f"{source.username} / {live.username}"
        self._emit(operation, MARKED, f"{label} marked", source)

    # Classification operations

    def get_to_suspend(self, snapshot: Optional[Collection[str]]) -> List[ArchivedUser]:
        """
        Active accounts whose username is missing from the directory.

        Selects accounts with the configured auth method that are neither
        deleted nor suspended. Exempt accounts are never returned.

        Args:
            snapshot: Usernames present in the directory for this run

        Returns:
            List[ArchivedUser]: Accounts to suspend, built from the live rows
        """
        operation = "get_to_suspend"
        if not self._directory_available(operation, snapshot):
            return []

        to_suspend: List[ArchivedUser] = []
        for account in self._candidates(operation, deleted=False, suspended=False):
            if account.username not in snapshot:
                self._mark(operation, to_suspend, account)

        logger.info(f"[{operation}] marked {len(to_suspend)} users")
        return to_suspend

    def get_never_logged_in(self) -> List[ArchivedUser]:
        """
        Accounts that never signed in.

        Anonymized accounts (first name equal to the placeholder) are left
        out. No privilege or directory check applies since nothing is changed
        on the basis of this list.
        """
        operation = "get_never_logged_in"
        never_logged_in: List[ArchivedUser] = []

        for account in self._candidates(
            operation,
            check_privilege=False,
            lastaccess=0,
            deleted=False,
            firstname_not=self.config.placeholder_name,
        ):
            if account.never_logged_in and not account.deleted:
                never_logged_in.append(ArchivedUser.from_account(account))

        logger.info(f"[{operation}] found {len(never_logged_in)} users")
        return never_logged_in

    def get_to_delete(self) -> List[ArchivedUser]:
        """
        Accounts this tool suspended more than the delete threshold ago.

        Candidates are suspended, not deleted, and either have signed in at
        some point or carry the placeholder first name. Accounts suspended by
        someone else are skipped. The returned records come from the archive
        table; an account without an archive row is skipped and reported.
        """
        operation = "get_to_delete"
        threshold = self.config.delete_threshold.total_seconds()
        now = self.clock()
        to_delete: List[ArchivedUser] = []

        for account in self._candidates(
            operation,
            deleted=False,
            suspended=True,
            lastaccess_nonzero_or_firstname=self.config.placeholder_name,
        ):
            record = self._suspended_by_tool(operation, account)
            if record is None:
                continue

            if now - record.timestamp <= threshold:
                continue

            if not record.has_archive:
                self._report_missing_archive(operation, account)
                continue

            self._mark(operation, to_delete, record.archive, account)

        logger.info(f"[{operation}] marked {len(to_delete)} users")
        return to_delete

    def get_to_reactivate(self, snapshot: Optional[Collection[str]]) -> List[ArchivedUser]:
        """
        Accounts this tool suspended whose username is back in the directory.

        The archived username is used for both lookups: an account that
        already exists in the user table under that name is skipped, and the
        name must be present in the snapshot.

        Args:
            snapshot: Usernames present in the directory for this run

        Returns:
            List[ArchivedUser]: Accounts to reactivate, built from archive rows
        """
        operation = "get_to_reactivate"
        if not self._directory_available(operation, snapshot):
            return []

        to_reactivate: List[ArchivedUser] = []
        for account in self._candidates(operation, deleted=False, suspended=True):
            record = self._suspended_by_tool(operation, account)
            if record is None:
                continue

            if not record.has_archive:
                self._report_missing_archive(operation, account)
                continue

            archived = record.archive
            if self.repository.account_exists_by_identity(archived.username):
                self._emit(
                    operation,
                    ALREADY_ACTIVE,
                    f"{account.username} (suspended by plugin) already in user table, skipping",
                    account,
                )
                continue

            # Only users found in the directory are brought back
            if archived.username in snapshot:
                self._mark(operation, to_reactivate, archived, account)

        logger.info(f"[{operation}] marked {len(to_reactivate)} users")
        return to_reactivate


def classify_to_suspend(
    snapshot: Optional[Collection[str]],
    repository: AccountRepository,
    privilege_predicate: PredicateLike,
    config: CleanupConfig,
    observer: Optional[DiagnosticObserver] = None,
) -> List[ArchivedUser]:
    checker = LdapStatusChecker(config, repository, privilege_predicate, observer)
    return checker.get_to_suspend(snapshot)


def classify_never_logged_in(
    repository: AccountRepository,
    config: CleanupConfig,
    observer: Optional[DiagnosticObserver] = None,
) -> List[ArchivedUser]:
    checker = LdapStatusChecker(config, repository, observer=observer)
    return checker.get_never_logged_in()


def classify_to_delete(
    repository: AccountRepository,
    privilege_predicate: PredicateLike,
    config: CleanupConfig,
    observer: Optional[DiagnosticObserver] = None,
    now: Optional[float] = None,
) -> List[ArchivedUser]:
    """
    One-shot delete classification.

    Args:
        now: Evaluate elapsed suspension time as of this epoch time instead
             of the current time
    """
    clock = time.time if now is None else (lambda: now)
    checker = LdapStatusChecker(config, repository, privilege_predicate, observer, clock)
    return checker.get_to_delete()


def classify_to_reactivate(
    snapshot: Optional[Collection[str]],
    repository: AccountRepository,
    privilege_predicate: PredicateLike,
    config: CleanupConfig,
    observer: Optional[DiagnosticObserver] = None,
) -> List[ArchivedUser]:
    checker = LdapStatusChecker(config, repository, privilege_predicate, observer)
    return checker.get_to_reactivate(snapshot)
