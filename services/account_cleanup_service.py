"""
Account Cleanup Service

Runs one evaluation of the account store against the directory:

1. Builds the directory snapshot once (or uses an empty one when the directory
   is skipped)
2. Runs the four classifications against that same snapshot
3. Collects the results and every diagnostic into a CleanupReport

The report can be turned into a pandas DataFrame or written as CSV for the
step that actually suspends, deletes or reactivates accounts.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

import pandas as pd

from cleanup.classifier import LdapStatusChecker
from cleanup.diagnostics import CollectingObserver, DiagnosticEvent
from cleanup.models import ArchivedUser
from directory.snapshot import DirectorySnapshot

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["action", "id", "username", "suspended", "lastaccess", "deleted"]


@dataclass
class CleanupReport:
    """Result of one cleanup evaluation run."""

    started_at: datetime
    directory_size: int
    to_suspend: List[ArchivedUser] = field(default_factory=list)
    never_logged_in: List[ArchivedUser] = field(default_factory=list)
    to_delete: List[ArchivedUser] = field(default_factory=list)
    to_reactivate: List[ArchivedUser] = field(default_factory=list)
    diagnostics: List[DiagnosticEvent] = field(default_factory=list)

    def actions(self) -> Dict[str, List[ArchivedUser]]:
        return {
            "suspend": self.to_suspend,
            "never_logged_in": self.never_logged_in,
            "delete": self.to_delete,
            "reactivate": self.to_reactivate,
        }

    def summary(self) -> Dict[str, int]:
        counts = {action: len(users) for action, users in self.actions().items()}
        counts["directory_size"] = self.directory_size
        counts["integrity_issues"] = sum(1 for e in self.diagnostics if e.is_integrity_issue)
        return counts

    def to_dataframe(self) -> pd.DataFrame:
        """
        One row per classified account with an ``action`` column.

        Returns:
            pd.DataFrame: Columns in REPORT_COLUMNS order (empty if nothing
                          was classified)
        """
        rows = [
            {"action": action, **user.to_dict()}
            for action, users in self.actions().items()
            for user in users
        ]
        return pd.DataFrame(rows, columns=REPORT_COLUMNS)

    def write_csv(self, path: str) -> int:
        df = self.to_dataframe()
        df.to_csv(path, index=False)
        logger.info(f"Wrote {len(df)} classified accounts to {path}")
        return len(df)


class AccountCleanupService:
    """
    Service that evaluates the account store against the directory.

    The snapshot provider is only called when the directory is not skipped,
    so a run with ``skip_directory=True`` never touches the directory.
    """

    def __init__(
        self,
        checker: LdapStatusChecker,
        snapshot_provider: Optional[Callable[[], DirectorySnapshot]] = None,
    ):
        """
        Args:
            checker: Configured LdapStatusChecker
            snapshot_provider: Builds the snapshot for a run; may raise
                               DirectoryUnavailableError
        """
        self.checker = checker
        self.snapshot_provider = snapshot_provider
        logger.info("✨ Account cleanup service initialized")

    def _build_snapshot(self, skip_directory: bool) -> DirectorySnapshot:
        if skip_directory or self.snapshot_provider is None:
            logger.info("Directory skipped => evaluating without LDAP users")
            return DirectorySnapshot.empty()
        return self.snapshot_provider()

    def run(self, skip_directory: bool = False) -> CleanupReport:
        """
        Evaluate every account once.

        Args:
            skip_directory: Use an empty snapshot instead of reading the
                            directory; suspend and reactivate then return nothing

        Returns:
            CleanupReport: Classified accounts and diagnostics

        Raises:
            DirectoryUnavailableError: If the snapshot cannot be built
            RepositoryError: If the account store cannot be queried
        """
        started_at = datetime.now(timezone.utc)
        snapshot = self._build_snapshot(skip_directory)

        # self.checker is shared between runs and never modified
        collector = CollectingObserver(forward_to=self.checker.observer)
        checker = self.checker.with_observer(collector)

        report = CleanupReport(
            started_at=started_at,
            directory_size=snapshot.size(),
            to_suspend=checker.get_to_suspend(snapshot),
            never_logged_in=checker.get_never_logged_in(),
            to_delete=checker.get_to_delete(),
            to_reactivate=checker.get_to_reactivate(snapshot),
            diagnostics=list(collector.events),
        )
        logger.info(f"📊 Cleanup evaluation finished: {report.summary()}")
        return report
