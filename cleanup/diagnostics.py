"""
Diagnostic events raised while classifying accounts.

The checker reports what it skipped and why through an observer instead of
writing log lines itself. LoggingObserver is the default and sends every event
to the ``logging`` module; CollectingObserver keeps them for the run report.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DIRECTORY_EMPTY = "directory_empty"
MISSING_ARCHIVE = "missing_archive"
ALREADY_ACTIVE = "already_active"
MARKED = "marked"

# Kinds that point at inconsistent data rather than normal flow
INTEGRITY_KINDS = {MISSING_ARCHIVE}


@dataclass(frozen=True)
class DiagnosticEvent:
    """
    One noteworthy decision made during classification.

    Attributes:
        operation: Classifier operation name (e.g. 'get_to_delete')
        kind: One of the module level kind constants
        message: Human readable description
        account_id: Account concerned, if any
        username: Login identifier concerned, if any
    """

    operation: str
    kind: str
    message: str
    account_id: Optional[int] = None
    username: Optional[str] = None

    @property
    def is_integrity_issue(self) -> bool:
        return self.kind in INTEGRITY_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class DiagnosticObserver(ABC):
    """Receives diagnostic events from the checker."""

    @abstractmethod
    def emit(self, event: DiagnosticEvent) -> None:
        pass


class LoggingObserver(DiagnosticObserver):
    """Writes events to a logger, warning level for integrity problems."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger

    def emit(self, event: DiagnosticEvent) -> None:
        text = f"[{event.operation}] {event.message}"
        if event.is_integrity_issue:
            self.log.warning(text)
        elif event.kind == MARKED:
            self.log.debug(text)
        else:
            self.log.info(text)


class CollectingObserver(DiagnosticObserver):
    """
    Keeps every event in memory.

    Args:
        forward_to: Optional observer that also receives each event, so a
                    run can both log and report diagnostics
    """

    def __init__(self, forward_to: Optional[DiagnosticObserver] = None):
        self.events: List[DiagnosticEvent] = []
        self.forward_to = forward_to

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)
        if self.forward_to is not None:
            self.forward_to.emit(event)

    def of_kind(self, kind: str) -> List[DiagnosticEvent]:
        return [event for event in self.events if event.kind == kind]

    def clear(self) -> None:
        self.events = []
