from .account_repository import SQLAccountRepository

__all__ = ['SQLAccountRepository']
