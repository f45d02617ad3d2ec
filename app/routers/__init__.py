from app.routers.health import router as health_router
from app.routers.ingest import router as ingest_router
from app.routers.items import router as items_router
from app.routers.stock import router as stock_router
from app.routers.warehouses import router as warehouses_router

__all__ = [
    "health_router",
    "ingest_router",
    "items_router",
    "stock_router",
    "warehouses_router",
]
