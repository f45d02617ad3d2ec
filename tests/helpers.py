from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.base import Base
from app.database.engine import enable_sqlite_savepoints
from app.models import import_all_models
from app.models.item import Item
from app.models.warehouse import Warehouse


def _prepare(engine):
    import_all_models()
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return engine, Session


def make_session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine, in_memory=True)
    return _prepare(engine)


def make_file_session_factory(path):
    """Sessions on a sqlite file, one connection per thread."""
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": 30},
        pool_size=20,
        max_overflow=0,
    )
    enable_sqlite_savepoints(engine, immediate=True)
    return _prepare(engine)


def add_warehouse(db, name, *, is_default=False):
    warehouse = Warehouse(name=name, is_default=is_default, is_active=True)
    db.add(warehouse)
    db.flush()
    return warehouse


def add_item(db, name, **fields):
    item = Item(name=name, **fields)
    db.add(item)
    db.flush()
    return item
