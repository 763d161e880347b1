"""Database module."""
from src.database.client import connect_db, disconnect_db, get_pool

__all__ = ["connect_db", "disconnect_db", "get_pool"]
