from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import Request

from database import Store


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_db(request: Request) -> Store:
    return request.app.state.db


def get_now(request: Request) -> datetime:
    return request.app.state.clock()


def original_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url += "?" + request.url.query
    return url


def api_info(request: Request, **extra: Any) -> Dict[str, Any]:
    info = {
        "endpoint": original_url(request),
        "response_time": utcnow().isoformat(),
    }
    info.update(extra)
    return info
