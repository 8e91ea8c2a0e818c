#!/usr/bin/env python3
"""
LDAP Account Cleanup Evaluation

Compares the accounts of the configured authentication method against the
users currently present in the LDAP directory and lists which accounts should
be suspended, deleted or reactivated, plus the accounts that never signed in.

Nothing is changed in the account store. Use --output to write the result as
CSV for the step that applies the changes.

Configuration is read from the environment (a .env file is honoured):
- DATABASE_URL: SQLAlchemy URL of the account store
- CLEANUP_AUTH_METHOD, CLEANUP_DELETE_DAYS, CLEANUP_PLACEHOLDER_NAME,
  CLEANUP_SITE_ADMINS
- LDAP_HOST_URL, LDAP_BIND_DN, LDAP_KEYRING_SERVICE, LDAP_CONTEXTS,
  LDAP_SEARCH_FILTER, LDAP_USERNAME_ATTRIBUTE, LDAP_USE_SSL, LDAP_PORT
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv

from cleanup.classifier import LdapStatusChecker
from cleanup.config import CleanupConfig, LDAPSettings
from cleanup.exceptions import AccountCleanupError
from database.adapters.database_adapter import create_database_adapter
from database.repositories.account_repository import SQLAccountRepository
from directory.adapters.ldap_adapter import LDAPAdapter
from directory.snapshot import build_directory_snapshot
from services.account_cleanup_service import AccountCleanupService, CleanupReport

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "debug_log_ldapchecker.log"


def configure_logging(log_folder: str, verbose: bool = False) -> None:
    os.makedirs(log_folder, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_folder, LOG_FILE_NAME)),
            logging.StreamHandler(sys.stdout),
        ],
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Evaluate which LDAP-authenticated accounts to suspend, delete or reactivate"
    )
    parser.add_argument(
        "--skip-ldap",
        action="store_true",
        help="Do not contact the directory. Suspend and reactivate lists will be empty.",
    )
    parser.add_argument(
        "--output",
        metavar="CSV",
        help="Write classified accounts to this CSV file",
    )
    parser.add_argument(
        "--log-folder",
        default=os.getenv("CLEANUP_LOG_FOLDER", "logs"),
        help="Folder for the debug log file (default: logs)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def print_report(report: CleanupReport) -> None:
    summary = report.summary()
    print("\n📊 Account Cleanup Summary:")
    print(f"   LDAP Users Found: {summary['directory_size']}")
    print(f"   To Suspend: {summary['suspend']}")
    print(f"   Never Logged In: {summary['never_logged_in']}")
    print(f"   To Delete: {summary['delete']}")
    print(f"   To Reactivate: {summary['reactivate']}")
    print(f"   Integrity Issues: {summary['integrity_issues']}")

    for event in report.diagnostics:
        if event.is_integrity_issue:
            print(f"   ⚠️  [{event.operation}] {event.message}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function to run the cleanup evaluation from command line.
    """
    load_dotenv()
    args = parse_args(argv)
    configure_logging(args.log_folder, args.verbose)

    db_adapter = None
    try:
        config = CleanupConfig.from_env()
        db_adapter = create_database_adapter()
        repository = SQLAccountRepository(db_adapter)
        checker = LdapStatusChecker(config, repository)

        snapshot_provider = None
        if not args.skip_ldap:
            settings = LDAPSettings.from_env()
            ldap_adapter = LDAPAdapter(settings.to_adapter_config())
            snapshot_provider = lambda: build_directory_snapshot(ldap_adapter, settings)

        service = AccountCleanupService(checker, snapshot_provider)

        print("👤 Starting LDAP account cleanup evaluation...")
        report = service.run(skip_directory=args.skip_ldap)
        print_report(report)

        if args.output:
            written = report.write_csv(args.output)
            print(f"\n💾 Wrote {written} accounts to {args.output}")

        return 0

    except (AccountCleanupError, ConnectionError, ValueError) as e:
        logger.error(f"Account cleanup evaluation failed: {e}")
        print(f"❌ Account cleanup evaluation failed: {e}")
        return 1

    finally:
        if db_adapter is not None:
            db_adapter.close()


if __name__ == "__main__":
    sys.exit(main())
