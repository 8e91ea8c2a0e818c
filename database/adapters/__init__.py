from .database_adapter import DatabaseAdapter, create_database_adapter

__all__ = ['DatabaseAdapter', 'create_database_adapter']
