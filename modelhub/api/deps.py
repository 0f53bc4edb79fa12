import secrets
import time
from typing import Optional

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from modelhub.core.database import get_db
from modelhub.core.redis import get_redis_client
from modelhub.services import CatalogQueryEngine, ContentStore, PlaceholderThumbnailProvider, ThumbnailProvider

SESSION_HEADER = "X-Session-Id"
SESSION_COOKIE = "sessionId"

_content_store: Optional[ContentStore] = None


def get_content_store() -> ContentStore:
    global _content_store
    if _content_store is None:
        _content_store = ContentStore()
    return _content_store


def get_thumbnail_provider() -> ThumbnailProvider:
    return PlaceholderThumbnailProvider()


def get_stats_cache():
    return get_redis_client()


def get_catalog(db: Session = Depends(get_db), cache=Depends(get_stats_cache)) -> CatalogQueryEngine:
    return CatalogQueryEngine(db, cache=cache)


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def get_session_id(request: Request, response: Response) -> str:
    """Header first, then cookie, else mint one; echoed back to the caller."""
    session_id = request.headers.get(SESSION_HEADER) or request.cookies.get(SESSION_COOKIE) or new_session_id()
    response.headers[SESSION_HEADER] = session_id
    return session_id


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"
