from .adapters.ldap_adapter import LDAPAdapter
from .snapshot import DirectorySnapshot, build_directory_snapshot

__all__ = ['LDAPAdapter', 'DirectorySnapshot', 'build_directory_snapshot']
