from typing import Optional

from fastapi import Header, HTTPException

from app.core.errors import InventoryError
from app.core.security import AuthContext, authenticate_request
from app.database.session import get_db


def require_auth(
    api_key: Optional[str] = Header(None, alias="X-API-Key"),
    api_key_alt: Optional[str] = Header(None, alias="api-key"),
    authorization: Optional[str] = Header(None),
):
    api_key_value = api_key or api_key_alt
    return authenticate_request(
        api_key=api_key_value,
        authorization=authorization,
        require_auth=True,
    )


def actor_of(auth: Optional[AuthContext]) -> Optional[str]:
    return auth.actor if auth else None


def http_error(exc: InventoryError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.to_dict())


__all__ = ["actor_of", "get_db", "http_error", "require_auth"]
