import logging
import sys
from typing import Any, Optional
from fastapi import Request
from app.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"

def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for the whole service"""
    root = logging.getLogger()
    root.setLevel((level or settings.log_level).upper())

    if not any(getattr(h, "_costcontrol", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._costcontrol = True
        root.addHandler(handler)

    # asyncpg and uvicorn access logs are noisy at INFO
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

def log_request_context(
    logger: logging.Logger,
    request: Request,
    message: str,
    level: int = logging.INFO,
    exc_info: Any = None
) -> None:
    """Log a message tagged with method, path, tenant and user of the current request"""
    session_context = getattr(request.state, 'session_context', None)
    tenant_id = getattr(session_context, 'tenant_id', None) or 'unknown'
    user_id = getattr(session_context, 'user_id', None) or 'anonymous'
    logger.log(
        level,
        f"{message} | {request.method} {request.url.path} | tenant={tenant_id} | user={user_id}",
        exc_info=exc_info
    )
