"""
Account records shared by the directory checker and the account store.

AccountRecord mirrors a row of the live user table (or of the archive table,
which stores the same columns). ArchivedUser is the read-only projection handed
back to callers for every account that needs a lifecycle transition.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class AccountRecord:
    """
    A single account as stored in the user table.

    Attributes:
        id: Stable numeric account id
        suspended: Whether the account is currently suspended
        lastaccess: Epoch seconds of the last sign-in, 0 when never signed in
        username: Login identifier, matched exactly against the directory
        deleted: Whether the account is flagged as deleted
        auth: Authentication method tag (e.g. 'ldap')
        firstname: Given name; the placeholder value marks anonymized accounts
    """

    id: int
    suspended: bool
    lastaccess: int
    username: str
    deleted: bool
    auth: str = ""
    firstname: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AccountRecord":
        """
        Build a record from a database row mapping.

        The account tables store flags as 0/1 integers, so they are coerced
        to bool here. Missing optional columns fall back to empty strings.
        """
        return cls(
            id=int(row["id"]),
            suspended=bool(int(row["suspended"] or 0)),
            lastaccess=int(row["lastaccess"] or 0),
            username=row["username"],
            deleted=bool(int(row["deleted"] or 0)),
            auth=row.get("auth") or "",
            firstname=row.get("firstname") or "",
        )

    @property
    def never_logged_in(self) -> bool:
        return self.lastaccess == 0


@dataclass(frozen=True)
class ArchivedUser:
    """
    Classification result for one account.

    Carries exactly the fields needed to apply the suspend/delete/reactivate
    step and to write an audit line. Nothing here is computed.
    """

    id: int
    suspended: bool
    lastaccess: int
    username: str
    deleted: bool

    @classmethod
    def from_account(cls, account: AccountRecord) -> "ArchivedUser":
        return cls(
            id=account.id,
            suspended=account.suspended,
            lastaccess=account.lastaccess,
            username=account.username,
            deleted=account.deleted,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SuspensionRecord:
    """
    Marker and archive rows for an account this tool suspended.

    The marker says when the account was suspended; the archive holds the
    account as it was at that moment. A marker without an archive is an
    integrity gap that callers must be able to see, so ``archive`` is optional.
    """

    id: int
    timestamp: int
    archive: Optional[AccountRecord] = None

    @property
    def has_archive(self) -> bool:
        return self.archive is not None
