import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, FrozenSet, List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()

SECONDS_PER_DAY = 86400


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _bool_env(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def parse_admin_ids(raw: Optional[str]) -> FrozenSet[int]:
    """
    Parse a comma separated list of site admin account ids.

    Args:
        raw: String such as '2, 15,301' (None or empty means no admins)

    Returns:
        FrozenSet[int]: The parsed ids

    Raises:
        ConfigurationError: If any entry is not an integer
    """
    if not raw:
        return frozenset()
    try:
        return frozenset(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ConfigurationError(f"CLEANUP_SITE_ADMINS must list integer ids, got {raw!r}")


@dataclass(frozen=True)
class CleanupConfig:
    """
    Settings consumed by the account status checker.

    Attributes:
        auth_method: Only accounts with this authentication tag are considered
        delete_threshold: How long a tool-suspended account waits before deletion
        placeholder_name: First name used for anonymized/synthetic accounts
        site_admin_ids: Accounts that are never suspended, deleted or reactivated
    """

    auth_method: str = "ldap"
    delete_threshold: timedelta = timedelta(days=365)
    placeholder_name: str = "Anonym"
    site_admin_ids: FrozenSet[int] = field(default_factory=frozenset)

    def __post_init__(self):
        if not self.auth_method:
            raise ConfigurationError("auth_method must be a non-empty string")
        if self.delete_threshold < timedelta(0):
            raise ConfigurationError("delete_threshold must not be negative")

    @classmethod
    def from_days(cls, deletetime: int, **kwargs) -> "CleanupConfig":
        """Build a config with the delete threshold given in days."""
        return cls(delete_threshold=timedelta(seconds=deletetime * SECONDS_PER_DAY), **kwargs)

    @classmethod
    def from_env(cls) -> "CleanupConfig":
        """Get cleanup configuration from environment variables."""
        return cls.from_days(
            _int_env("CLEANUP_DELETE_DAYS", "365"),
            auth_method=os.getenv("CLEANUP_AUTH_METHOD", "ldap"),
            placeholder_name=os.getenv("CLEANUP_PLACEHOLDER_NAME", "Anonym"),
            site_admin_ids=parse_admin_ids(os.getenv("CLEANUP_SITE_ADMINS")),
        )


@dataclass(frozen=True)
class LDAPSettings:
    """
    Connection and search settings for building the directory snapshot.

    ``contexts`` may hold several search bases; each one is searched with the
    same filter and the results are merged.
    """

    host_url: str
    bind_dn: str
    keyring_service: str
    contexts: List[str]
    search_filter: str = "(objectClass=person)"
    username_attribute: str = "uid"
    use_ssl: bool = True
    port: Optional[int] = None
    timeout: int = 600
    page_size: int = 1000

    @classmethod
    def from_env(cls) -> "LDAPSettings":
        """
        Get LDAP settings from environment variables.

        Raises:
            ConfigurationError: If a required variable is missing
        """
        required = {
            "LDAP_HOST_URL": os.getenv("LDAP_HOST_URL"),
            "LDAP_BIND_DN": os.getenv("LDAP_BIND_DN"),
            "LDAP_CONTEXTS": os.getenv("LDAP_CONTEXTS"),
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ConfigurationError(f"Missing required environment variables: {missing}")

        return cls(
            host_url=required["LDAP_HOST_URL"],
            bind_dn=required["LDAP_BIND_DN"],
            keyring_service=os.getenv("LDAP_KEYRING_SERVICE", "ldap_cleanup"),
            contexts=[c.strip() for c in required["LDAP_CONTEXTS"].split(";") if c.strip()],
            search_filter=os.getenv("LDAP_SEARCH_FILTER", "(objectClass=person)"),
            username_attribute=os.getenv("LDAP_USERNAME_ATTRIBUTE", "uid"),
            use_ssl=_bool_env("LDAP_USE_SSL", "true"),
            port=_int_env("LDAP_PORT", "0") or None,
            timeout=_int_env("LDAP_TIMEOUT", "600"),
            page_size=_int_env("LDAP_PAGE_SIZE", "1000"),
        )

    def to_adapter_config(self) -> Dict[str, Any]:
        """Translate into the config dictionary expected by LDAPAdapter."""
        config = {
            "server": self.host_url,
            "search_base": self.contexts[0] if self.contexts else "",
            "user": self.bind_dn,
            "keyring_service": self.keyring_service,
            "use_ssl": self.use_ssl,
            "timeout": self.timeout,
            "default_page_size": self.page_size,
        }
        if self.port is not None:
            config["port"] = self.port
        return config
