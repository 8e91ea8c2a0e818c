from .account_cleanup_service import AccountCleanupService, CleanupReport

__all__ = ['AccountCleanupService', 'CleanupReport']
