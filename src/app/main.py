from __future__ import annotations

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.app.config import get_settings
from src.app.routes import http_error_handler, router
from src.utils.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.include_router(router)
