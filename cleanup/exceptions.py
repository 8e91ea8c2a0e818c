class AccountCleanupError(Exception):
    """Base exception for account cleanup errors."""
    pass

class ConfigurationError(AccountCleanupError):
    """Raised when cleanup or directory configuration is missing or invalid."""
    pass

class DirectoryUnavailableError(AccountCleanupError):
    """Raised when the directory cannot be reached, bound or searched."""
    pass

class RepositoryError(AccountCleanupError):
    """Raised when the account store cannot be queried."""
    pass
