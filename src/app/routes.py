from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.app.config import Settings
from src.app.dependencies import get_chat_orchestrator, get_settings
from src.orchestrator.chat import ChatOrchestrator
from src.schemas.chat import ErrorResponse

router = APIRouter()

CHAT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _cors_headers(origin: Optional[str], allowed_origins: List[str]) -> Dict[str, str]:
    if not allowed_origins or "*" in allowed_origins:
        allow_origin = "*"
    elif origin in allowed_origins:
        allow_origin = origin
    else:
        allow_origin = allowed_origins[0]
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code != status.HTTP_405_METHOD_NOT_ALLOWED:
        return await http_exception_handler(request, exc)
    # Unlisted methods never reach the route, so settings are resolved here.
    settings = request.app.dependency_overrides.get(get_settings, get_settings)()
    headers = _cors_headers(request.headers.get("origin"), settings.allowed_origins)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error="Method not allowed").model_dump(),
        headers=headers,
    )


@router.get("/health", status_code=status.HTTP_200_OK)
def health(settings: Settings = Depends(get_settings)) -> dict:
    return {"app": settings.app_name, "status": "ok"}


@router.api_route("/api/chat", methods=CHAT_METHODS)
async def chat(
    request: Request,
    settings: Settings = Depends(get_settings),
    orchestrator: ChatOrchestrator = Depends(get_chat_orchestrator),
) -> Response:
    body = await request.body()
    headers = _cors_headers(request.headers.get("origin"), settings.allowed_origins)
    # Provider calls and run polling block; keep them off the event loop.
    result = await run_in_threadpool(orchestrator.handle, request.method, body or None)
    if result.status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=result.status_code, headers=headers)
    return JSONResponse(status_code=result.status_code, content=result.body, headers=headers)
