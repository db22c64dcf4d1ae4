from src.db.connection import Base, JSONColumn, check_db_health, get_db, get_engine, get_sessionmaker

__all__ = ["Base", "JSONColumn", "get_engine", "get_sessionmaker", "get_db", "check_db_health"]
