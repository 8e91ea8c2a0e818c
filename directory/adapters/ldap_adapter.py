import getpass
import logging
from typing import Any, Dict, List, Optional

import keyring
from ldap3 import ALL, BASE, LEVEL, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

logger = logging.getLogger(__name__)

# RFC 2696 Simple Paged Results control
PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"

SCOPES = {"base": BASE, "level": LEVEL, "subtree": SUBTREE}


class LDAPAdapter:
    """
    LDAP connection adapter used to read the directory of active users.

    This class handles server connections, authentication and paged searches.
    Searches either return every matching entry or raise; a partial result is
    never handed back, since a short user list would look like users leaving
    the directory.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize LDAP adapter with configuration settings.

        Args:
            config: Dictionary containing LDAP connection settings.
                   Required keys:
                   - 'server': LDAP server hostname or URL
                   - 'search_base': Default base DN for searches
                   - 'user': Bind DN
                   - 'keyring_service': Keyring service name for the password

                   Optional keys with defaults:
                   - 'port': LDAP port (default: 636 for SSL, 389 for non-SSL)
                   - 'use_ssl': Enable SSL/TLS (default: True)
                   - 'timeout': Connection timeout in seconds (default: 600)
                   - 'auto_bind': Auto-bind on connection (default: True)
                   - 'get_info': Server info level (default: ALL)
                   - 'default_page_size': Page size for paged searches (default: 1000)
                   - 'password': Bind password, skips keyring lookup

        Raises:
            ValueError: If required configuration keys are missing
            TypeError: If configuration is not a dictionary
        """
        if not isinstance(config, dict):
            raise TypeError("Configuration must be a dictionary")

        required_keys = ["server", "search_base", "user", "keyring_service"]
        missing_keys = [key for key in required_keys if key not in config]
        if missing_keys:
            raise ValueError(f"Missing required configuration keys: {missing_keys}")

        self.server_hostname = config["server"]
        self.search_base = config["search_base"]
        self.user = config["user"]
        self.keyring_service = config["keyring_service"]

        self.use_ssl = config.get("use_ssl", True)
        self.port = config.get("port", 636 if self.use_ssl else 389)
        self.timeout = config.get("timeout", 600)
        self.auto_bind = config.get("auto_bind", True)
        self.get_info = config.get("get_info", ALL)
        self.default_page_size = config.get("default_page_size", 1000)

        self._server = None
        self._connection = None
        self._password = config.get("password")

        logger.debug(f"LDAP adapter initialized for server: {self.server_hostname}")

    def _get_password(self) -> str:
        """
        Retrieve password from keyring or prompt user.

        Returns:
            str: The password for LDAP authentication

        Raises:
            KeyboardInterrupt: If user cancels password prompt
        """
        if self._password:
            return self._password

        try:
            password = keyring.get_password(self.keyring_service, self.user)
            if password:
                logger.debug("Using password from keyring")
                self._password = password
                return password
        except Exception as e:
            logger.warning(f"Could not retrieve password from keyring: {e}")

        try:
            self._password = getpass.getpass(f"Enter LDAP password for {self.user}: ")
            return self._password
        except KeyboardInterrupt:
            logger.info("Password prompt cancelled by user")
            raise

    def _create_server(self) -> Server:
        if not self._server:
            try:
                self._server = Server(
                    self.server_hostname,
                    use_ssl=self.use_ssl,
                    port=self.port,
                    get_info=self.get_info,
                    connect_timeout=self.timeout,
                )
                logger.debug(
                    f"LDAP server object created: {self.server_hostname}:{self.port}"
                )
            except Exception as e:
                logger.error(f"Failed to create LDAP server object: {e}")
                raise LDAPException(f"Server creation failed: {e}")

        return self._server

    def _create_connection(self) -> Connection:
        """
        Create and bind LDAP connection.

        Returns:
            Connection: Authenticated ldap3 Connection object

        Raises:
            LDAPException: If connection or authentication fails
        """
        try:
            server = self._create_server()
            password = self._get_password()

            connection = Connection(
                server, user=self.user, password=password, auto_bind=self.auto_bind
            )

            if connection.bound:
                logger.info("ldap_bind successful")
                self._connection = connection
                return connection
            else:
                raise LDAPException("Failed to bind to LDAP server")

        except LDAPException as e:
            logger.error(f"ldap_bind failed: {e}")
            raise
        except Exception as e:
            logger.error(f"LDAP connection failed: {e}")
            raise LDAPException(f"Connection failed: {e}")

    def test_connection(self) -> bool:
        """
        Bind and run a minimal search at the search base.

        Returns:
            bool: True if connection test succeeds, False otherwise
        """
        try:
            conn = self._create_connection()
            success = conn.search(
                search_base=self.search_base,
                search_filter="(objectClass=*)",
                search_scope=BASE,
                attributes=["1.1"],
            )
            if success:
                logger.info("Connection test successful")
                return True

            logger.warning(f"Search operation failed: {conn.result}")
            return False

        except LDAPException as e:
            logger.error(f"LDAP connection test failed: {e}")
            return False
        finally:
            self.close()

    def get_connection_info(self) -> Dict[str, Any]:
        """
        Get information about the current LDAP configuration.

        Returns:
            Dict[str, Any]: Configuration information (passwords excluded)
        """
        return {
            "server": self.server_hostname,
            "port": self.port,
            "use_ssl": self.use_ssl,
            "search_base": self.search_base,
            "user": self.user,
            "keyring_service": self.keyring_service,
            "timeout": self.timeout,
            "default_page_size": self.default_page_size,
        }

    def close(self) -> None:
        if self._connection:
            try:
                self._connection.unbind()
                logger.debug("LDAP connection closed")
            except LDAPException as e:
                logger.warning(f"Error closing LDAP connection: {e}")
            finally:
                self._connection = None

    def __str__(self) -> str:
        ssl_status = "SSL" if self.use_ssl else "non-SSL"
        return f"LDAPAdapter({self.server_hostname}:{self.port}, {ssl_status}, user={self.user})"

    def __repr__(self) -> str:
        return (
            f"LDAPAdapter(server='{self.server_hostname}', port={self.port}, "
            f"use_ssl={self.use_ssl}, search_base='{self.search_base}', "
            f"user='{self.user}', keyring_service='{self.keyring_service}')"
        )

    # Core Search Infrastructure

    def search(
        self,
        search_filter: str,
        search_base: Optional[str] = None,
        scope: str = "subtree",
        attributes: Optional[List[str]] = None,
        page_size: Optional[int] = None,
    ) -> List:
        """
        Run a paged search and return every matching entry.

        Args:
            search_filter: LDAP filter string (e.g., '(objectClass=person)')
            search_base: Base DN for search (defaults to adapter's search_base)
            scope: Search scope - 'base', 'level', or 'subtree' (default: 'subtree')
            attributes: List of attributes to retrieve (None for all available)
            page_size: Page size for pagination (defaults to adapter's configured size)

        Returns:
            List: ldap3 Entry objects

        Raises:
            LDAPException: If the search fails or the server truncates results
            ValueError: If parameters are invalid
        """
        if not search_filter or not isinstance(search_filter, str):
            raise ValueError("search_filter must be a non-empty string")

        if scope.lower() not in SCOPES:
            raise ValueError(f"scope must be one of: {list(SCOPES.keys())}")

        base_dn = search_base if search_base is not None else self.search_base

        search_kwargs = {
            "search_base": base_dn,
            "search_filter": search_filter,
            "search_scope": SCOPES[scope.lower()],
            "attributes": attributes or ["*"],
        }

        logger.debug(f"Executing search: filter='{search_filter}', base='{base_dn}', scope='{scope}'")

        conn = self._create_connection()
        try:
            return self._execute_paged_search(
                conn, page_size or self.default_page_size, **search_kwargs
            )
        finally:
            self.close()

    def search_as_dicts(self, *args, **kwargs) -> List[Dict[str, Any]]:
        """
        Convenience method that returns search results as dictionaries.

        Returns:
            List[Dict[str, Any]]: List of dictionaries with 'dn' and attributes
        """
        entries = self.search(*args, **kwargs)

        result_dicts = []
        for entry in entries:
            entry_dict = {"dn": entry.entry_dn}
            for attr_name in entry.entry_attributes:
                entry_dict[attr_name] = getattr(entry, attr_name).value
            result_dicts.append(entry_dict)

        return result_dicts

    def _execute_paged_search(self, conn: Connection, page_size: int, **search_kwargs) -> List:
        """
        Cookie-based pagination using the Simple Paged Results control.

        Args:
            conn: Active LDAP connection
            page_size: Number of results per page
            **search_kwargs: Search parameters

        Returns:
            List: Combined Entry objects from all pages

        Raises:
            LDAPException: On any non-success result code, including
                           sizeLimitExceeded and noSuchObject
        """
        all_results = []
        page_num = 0
        cookie = None

        while True:
            page_num += 1
            conn.search(paged_size=page_size, paged_cookie=cookie, **search_kwargs)

            result_code = conn.result.get("result", 0)
            result_desc = conn.result.get("description", "success")

            if result_code != 0:
                raise LDAPException(
                    f"Search failed on page {page_num} with code {result_code} ({result_desc})"
                )

            page_entries = [entry for entry in conn.entries if hasattr(entry, "entry_dn")]
            all_results.extend(page_entries)
            logger.debug(f"Page {page_num}: Got {len(page_entries)} entries")

            controls = conn.result.get("controls") or {}
            cookie = controls.get(PAGED_RESULTS_OID, {}).get("value", {}).get("cookie")
            if not cookie:
                break

        logger.info(
            f"Paged search completed: {len(all_results)} entries retrieved across {page_num} pages"
        )
        return all_results
