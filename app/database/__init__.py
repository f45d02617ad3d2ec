from app.database.base import Base
from app.database.engine import enable_sqlite_savepoints, engine
from app.database.session import SessionLocal, get_db, session_scope

__all__ = ["Base", "SessionLocal", "enable_sqlite_savepoints", "engine", "get_db", "session_scope"]
