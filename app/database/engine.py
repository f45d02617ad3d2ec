import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool

from app.config import Settings, get_settings


app_settings: Settings = get_settings()

_SQLITE_BUSY_TIMEOUT_SECONDS = 30
_SQLITE_BUSY_TIMEOUT_MS = _SQLITE_BUSY_TIMEOUT_SECONDS * 1000

_db_url = make_url(app_settings.DATABASE_URL)
is_sqlite = _db_url.get_backend_name() == "sqlite"
is_sqlite_memory = False
if is_sqlite:
    sqlite_db = _db_url.database
    is_sqlite_memory = sqlite_db in (None, "", ":memory:")
    if not is_sqlite_memory and _db_url.query.get("mode") == "memory":
        is_sqlite_memory = True

connect_args = {}
engine_kwargs: dict[str, object] = dict(pool_pre_ping=True)
if is_sqlite:
    connect_args = {"check_same_thread": False, "timeout": _SQLITE_BUSY_TIMEOUT_SECONDS}
    if is_sqlite_memory:
        engine_kwargs.update(poolclass=StaticPool)

engine = create_engine(
    app_settings.DATABASE_URL,
    connect_args=connect_args,
    **engine_kwargs,
)


def set_sqlite_pragmas(dbapi_connection, _connection_record, *, in_memory=False):
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={_SQLITE_BUSY_TIMEOUT_MS}")
        if not in_memory:
            try:
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA synchronous=NORMAL")
            except sqlite3.DatabaseError:
                pass
    finally:
        cursor.close()


def enable_sqlite_savepoints(target_engine, *, in_memory=False, immediate=False):
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT/ROLLBACK work on pysqlite.

    With ``immediate`` each transaction takes the write lock up front, so
    concurrent writers wait on ``busy_timeout`` instead of failing when their
    read snapshot goes stale.
    """
    begin_statement = "BEGIN IMMEDIATE" if immediate else "BEGIN"

    @event.listens_for(target_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        set_sqlite_pragmas(dbapi_connection, connection_record, in_memory=in_memory)
        dbapi_connection.isolation_level = None

    @event.listens_for(target_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(begin_statement)

    return target_engine


if is_sqlite:
    enable_sqlite_savepoints(
        engine,
        in_memory=is_sqlite_memory,
        immediate=app_settings.SQLITE_BEGIN_IMMEDIATE and not is_sqlite_memory,
    )
