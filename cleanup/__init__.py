from .classifier import (
    LdapStatusChecker,
    classify_never_logged_in,
    classify_to_delete,
    classify_to_reactivate,
    classify_to_suspend,
)
from .config import CleanupConfig, LDAPSettings
from .models import AccountRecord, ArchivedUser, SuspensionRecord

__all__ = [
    'LdapStatusChecker',
    'classify_to_suspend',
    'classify_never_logged_in',
    'classify_to_delete',
    'classify_to_reactivate',
    'CleanupConfig',
    'LDAPSettings',
    'AccountRecord',
    'ArchivedUser',
    'SuspensionRecord',
]
