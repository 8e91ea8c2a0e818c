"""
Scripts package for LDAP Account Cleanup.

This package contains command-line scripts organized by functionality.

Subpackages:
- cleanup: Evaluate accounts to suspend, delete or reactivate
"""
