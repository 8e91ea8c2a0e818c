from abc import ABC, abstractmethod
from typing import Callable, FrozenSet, Iterable, Union

from .models import AccountRecord


class PrivilegePredicate(ABC):
    """Decides whether an account is exempt from automatic lifecycle changes."""

    @abstractmethod
    def is_exempt(self, account: AccountRecord) -> bool:
        """
        Args:
            account: Live account under consideration

        Returns:
            bool: True if lifecycle changes must skip this account
        """
        pass

    def __call__(self, account: AccountRecord) -> bool:
        return self.is_exempt(account)


class SiteAdminPredicate(PrivilegePredicate):
    """Exempts the accounts listed as site administrators."""

    def __init__(self, admin_ids: Iterable[int]):
        self.admin_ids: FrozenSet[int] = frozenset(int(i) for i in admin_ids)

    def is_exempt(self, account: AccountRecord) -> bool:
        return account.id in self.admin_ids

    def __repr__(self) -> str:
        return f"SiteAdminPredicate(admin_ids={sorted(self.admin_ids)})"


class CallablePredicate(PrivilegePredicate):
    """Wraps a plain function taking an AccountRecord."""

    def __init__(self, func: Callable[[AccountRecord], bool]):
        self.func = func

    def is_exempt(self, account: AccountRecord) -> bool:
        return bool(self.func(account))


PredicateLike = Union[PrivilegePredicate, Callable[[AccountRecord], bool]]


def as_predicate(predicate: PredicateLike) -> PrivilegePredicate:
    """Accept either a PrivilegePredicate or a callable."""
    if isinstance(predicate, PrivilegePredicate):
        return predicate
    if callable(predicate):
        return CallablePredicate(predicate)
    raise TypeError("privilege predicate must be a PrivilegePredicate or a callable")
