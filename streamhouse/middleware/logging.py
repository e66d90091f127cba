"""
Logging Setup and Request/Response Logging Middleware

This module configures application logging and logs every HTTP request.
The middleware captures:
- Request method and path
- Response status code
- Request processing time
- Client IP address

Design Decisions:
- Uses Starlette's BaseHTTPMiddleware for compatibility
- Logs to standard Python logging; handlers are installed once at startup
- The redirect path logs like every other path, without the viewer id
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("streamhouse")


def configure_logging(level: str = "INFO") -> None:
    """
    Install a stream handler on the root logger.
    
    Safe to call more than once; an existing handler is reused.
    
    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging HTTP requests and responses.
    
    It wraps the request/response cycle to add logging without
    modifying endpoint code.
    """
    
    async def dispatch(self, request: Request, call_next):
        client_ip = self._get_client_ip(request)
        start_time = time.perf_counter()
        
        response = await call_next(request)
        
        process_time = time.perf_counter() - start_time
        
        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS CLIENT_IP
        logger.info(
            f"{request.method} {request.url.path} "
            f"{response.status_code} {process_time*1000:.2f}ms "
            f"IP:{client_ip}"
        )
        response.headers["X-Process-Time"] = f"{process_time:.6f}"
        
        return response
    
    def _get_client_ip(self, request: Request) -> str:
        """First X-Forwarded-For entry, falling back to the socket peer."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        return request.client.host if request.client else "unknown"


def add_logging_middleware(app):
    """
    Add logging middleware to FastAPI app.
    
    Args:
        app: FastAPI application instance
    """
    app.add_middleware(LoggingMiddleware)
