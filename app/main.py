from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import Settings, get_settings
from app.core.logging import setup_logging
from app.database import Base, engine
from app.models import import_all_models
from app.routers import (
    health_router,
    ingest_router,
    items_router,
    stock_router,
    warehouses_router,
)

setup_logging()
settings: Settings = get_settings()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    import_all_models()
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

app.include_router(health_router)
app.include_router(items_router)
app.include_router(stock_router)
app.include_router(warehouses_router)
app.include_router(ingest_router)


__all__ = ["app"]
