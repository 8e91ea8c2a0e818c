"""
Account cleanup scripts.

Scripts for evaluating LDAP-authenticated accounts against the directory.
"""
