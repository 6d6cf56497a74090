"""数据库访问层"""

from .connection import DatabaseManager, db_manager

__all__ = ["DatabaseManager", "db_manager"]
