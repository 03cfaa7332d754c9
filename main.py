import logging
import time
from datetime import datetime
from typing import Callable, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import categories
import players
import quests
from config import API_VERSION, Settings, load_settings
from database import Store, seed_store
from deps import utcnow
from errors import ValidationFailed, validation_messages
from logging_setup import setup_logging
from security import DEMO_KEY, API_KEYS, RateLimiter, client_address, enforce_rate_limit, require_api_key

logger = logging.getLogger(__name__)

AVAILABLE_ENDPOINTS = [
    "GET /",
    "GET /health",
    "GET /api/docs",
    "GET /api/status",
    "GET /api/stats",
    "GET /api/quests",
    "GET /api/quests/:id",
    "POST /api/quests",
    "POST /api/quests/:id/complete",
    "GET /api/players",
    "GET /api/players/:username",
    "PUT /api/players/:username/preferences",
    "GET /api/categories",
    "GET /api/categories/:id",
    "GET /api/categories/:id/suggestions",
]


# Utilities

def _uptime(request: Request) -> float:
    return time.monotonic() - request.app.state.started_at


def _error_response(status_code: int, body: dict, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))
    if exc.status_code == 404:
        return _error_response(404, {
            "error": "Endpoint not found",
            "message": f"Cannot {request.method} {request.url.path}",
            "available_endpoints": AVAILABLE_ENDPOINTS,
            "documentation": "/api/docs",
            "hint": "Check the endpoint URL and HTTP method",
        })
    return _error_response(exc.status_code, {"error": str(exc.detail), "message": str(exc.detail)})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationFailed(validation_messages(exc.errors()))
    return _error_response(error.status_code, error.detail)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, {
        "error": "Internal server error",
        "message": "Something went wrong on our end",
        "timestamp": utcnow().isoformat(),
        "request_id": request.headers.get("x-request-id", "unknown"),
    })


# Routes

meta = APIRouter()
api_meta = APIRouter(prefix="/api")


@meta.get("/")
def read_root():
    return {
        "message": "🏆 Quest Tracker API v1.0",
        "documentation": "/api/docs",
        "health_check": "/health",
        "api_status": "/api/status",
        "endpoints": {
            "quests": "/api/quests",
            "players": "/api/players/:username",
            "categories": "/api/categories",
        },
        "authentication": {
            "demo_key": DEMO_KEY,
            "usage": "Include X-API-Key header or api_key query parameter",
        },
        "version": API_VERSION,
        "status": "active",
        "server_time": utcnow().isoformat(),
    }


@meta.get("/health")
def health(request: Request):
    settings: Settings = request.app.state.settings
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "uptime": round(_uptime(request), 3),
        "version": API_VERSION,
        "environment": settings.environment,
        "collections": request.app.state.db.list_collection_names(),
    }


@api_meta.get("/docs")
def api_docs(request: Request):
    settings: Settings = request.app.state.settings
    limiter: RateLimiter = request.app.state.rate_limiter
    return {
        "title": "Quest Tracker API Documentation",
        "version": API_VERSION,
        "description": "A gamified todo/quest management API",
        "base_url": f"http://localhost:{settings.port}/api",
        "authentication": {
            "type": "API Key",
            "header": "X-API-Key",
            "demo_keys": [DEMO_KEY, "test_key_67890"],
            "note": "Include API key in X-API-Key header or api_key query parameter",
        },
        "endpoints": [
            {
                "method": "GET",
                "path": "/api/quests",
                "description": "List quests with filtering, sorting and pagination",
                "parameters": {
                    "status": "pending, in_progress, completed",
                    "priority": "low, medium, high, critical",
                    "category": "work, health, personal, learning, creative, finance",
                    "tags": "comma separated, matches any",
                    "difficulty": "easy, medium, hard",
                    "created_after": "ISO timestamp",
                    "deadline_before": "ISO timestamp",
                    "sort_by": "created_at, priority, deadline, xp_reward, title",
                    "order": "asc, desc (default desc)",
                    "limit": "1-50",
                },
                "example": f"/api/quests?status=pending&priority=high&api_key={DEMO_KEY}",
            },
            {
                "method": "GET",
                "path": "/api/quests/:id",
                "description": "Get specific quest by ID",
                "example": f"/api/quests/1?api_key={DEMO_KEY}",
            },
            {
                "method": "POST",
                "path": "/api/quests",
                "description": "Create a quest",
                "required_fields": ["title", "category", "priority"],
                "optional_fields": ["description", "deadline", "tags", "estimated_time", "difficulty"],
            },
            {
                "method": "POST",
                "path": "/api/quests/:id/complete",
                "description": "Mark a quest as completed",
                "headers": {"X-API-Key": DEMO_KEY},
            },
            {
                "method": "GET",
                "path": "/api/players",
                "description": "Leaderboard",
                "parameters": {
                    "sort_by": "level, xp, streak, activity, completion_rate",
                    "order": "asc, desc (default desc)",
                    "limit": "1-50 (default 10)",
                    "rank": "Beginner, Intermediate, Advanced, Expert, Master",
                },
            },
            {
                "method": "GET",
                "path": "/api/players/:username",
                "description": "Get player profile and quest statistics",
                "parameters": {"include_quests": "true/false", "include_stats": "true/false"},
                "example": f"/api/players/alex?include_quests=true&api_key={DEMO_KEY}",
            },
            {
                "method": "PUT",
                "path": "/api/players/:username/preferences",
                "description": "Partially update player preferences",
            },
            {
                "method": "GET",
                "path": "/api/categories",
                "description": "Get quest categories with optional statistics",
                "parameters": {
                    "search": "name, description or tag substring",
                    "include_stats": "true/false",
                    "sort_by": "name, popularity, xp_multiplier",
                    "order": "asc, desc (default asc)",
                },
                "example": f"/api/categories?include_stats=true&api_key={DEMO_KEY}",
            },
            {
                "method": "GET",
                "path": "/api/categories/:id",
                "description": "Category detail",
                "parameters": {"include_quests": "true/false", "include_tips": "true/false"},
            },
            {
                "method": "GET",
                "path": "/api/categories/:id/suggestions",
                "description": "Generated quest suggestions",
                "parameters": {"difficulty": "any, easy, medium, hard", "time_available": "minutes"},
            },
        ],
        "rate_limits": {
            f"requests_per_{limiter.window_label.replace(' ', '_')}": limiter.max_requests,
        },
        "error_codes": {
            400: "Bad Request - Invalid parameters or validation failed",
            401: "Unauthorized - Invalid or missing API key",
            404: "Not Found - Resource does not exist",
            429: "Too Many Requests - Rate limit exceeded",
            500: "Internal Server Error - Server-side error",
        },
    }


@api_meta.get("/status")
def api_status(request: Request):
    limiter: RateLimiter = request.app.state.rate_limiter
    return {
        "api_status": "operational",
        "version": API_VERSION,
        "endpoints": {
            "quests_list": "GET /api/quests",
            "quest_by_id": "GET /api/quests/:id",
            "create_quest": "POST /api/quests",
            "complete_quest": "POST /api/quests/:id/complete",
            "leaderboard": "GET /api/players",
            "player_profile": "GET /api/players/:username",
            "categories": "GET /api/categories",
        },
        "rate_limits": {
            "window": limiter.window_label,
            "max_requests": limiter.max_requests,
            "remaining": limiter.remaining(client_address(request)),
        },
        "authentication": {
            "type": "API Key",
            "header": "X-API-Key",
            "user": request.state.user,
        },
        "last_updated": utcnow().isoformat(),
    }


@api_meta.get("/stats")
def api_stats(request: Request):
    uptime = _uptime(request)
    total = request.app.state.request_count
    return {
        "total_requests": total,
        "requests_per_minute": round(total / (uptime / 60)) if uptime > 0 else total,
        "server_uptime_seconds": round(uptime),
    }


def create_app(
    store: Optional[Store] = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level)

    app = FastAPI(title="Quest Tracker API", version=API_VERSION)
    app.state.settings = settings
    app.state.db = store if store is not None else seed_store(clock())
    app.state.clock = clock
    app.state.rate_limiter = RateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)
    app.state.request_count = 0
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            app.state.request_count += 1
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %d %.1fms",
            client_address(request), request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    guarded = [Depends(enforce_rate_limit), Depends(require_api_key)]
    app.include_router(meta)
    app.include_router(api_meta, dependencies=guarded)
    app.include_router(quests.router, dependencies=guarded)
    app.include_router(players.router, dependencies=guarded)
    app.include_router(categories.router, dependencies=guarded)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = app.state.settings
    logger.info("Quest Tracker API starting on %s:%s (%s)", settings.host, settings.port, settings.environment)
    logger.info("Demo API key: %s (%d keys configured)", DEMO_KEY, len(API_KEYS))
    uvicorn.run(app, host=settings.host, port=settings.port)
