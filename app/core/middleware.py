import logging
import time
from typing import Optional, Dict, Any
from fastapi import Request
from app.core.exceptions import AuthenticationError
from app.database import get_db_connection

logger = logging.getLogger(__name__)

PUBLIC_ENDPOINTS = ['/docs', '/redoc', '/openapi.json', '/health']

class SessionContext:
    """Session context object"""
    def __init__(self, session_data: Optional[Dict[str, Any]] = None):
        if session_data:
            self.user_id = session_data['user_id']
            self.tenant_id = session_data['tenant_id']
            self.email = session_data.get('email')
            self.expires_at = session_data.get('expires_at')
            self.is_valid = True
        else:
            self.user_id = None
            self.tenant_id = None
            self.email = None
            self.expires_at = None
            self.is_valid = False

async def session_validation_middleware(request: Request, call_next):
    """
    Resolves the session cookie to a user and tenant.
    Sets request.state.session_context; endpoints decide whether a session is required.
    """
    path = request.url.path
    request.state.session_context = SessionContext()

    if path == '/' or any(path.startswith(endpoint) for endpoint in PUBLIC_ENDPOINTS):
        return await call_next(request)

    session_token = request.cookies.get("session-token")
    if not session_token:
        return await call_next(request)

    try:
        async with get_db_connection() as conn:
            session_result = await conn.fetchrow("""
                SELECT s.user_id, s.tenant_id, s.expires_at, p.email
                FROM sessions s
                JOIN profile p ON s.user_id = p.id
                WHERE s.id = $1
                  AND s.expires_at > NOW()
                  AND s.is_active = true
                LIMIT 1
            """, session_token)

            if session_result:
                await conn.execute(
                    'UPDATE sessions SET last_activity_at = NOW() WHERE id = $1',
                    session_token
                )
                request.state.session_context = SessionContext(dict(session_result))
    except Exception as e:
        logger.error(f"❌ Session validation error: {e}")

    return await call_next(request)

def get_session_context(request: Request) -> SessionContext:
    return getattr(request.state, 'session_context', SessionContext())

def require_valid_session(request: Request) -> SessionContext:
    """Raises AuthenticationError unless the request carries a valid session"""
    session_context = get_session_context(request)
    if not session_context.is_valid:
        raise AuthenticationError("Valid session required")
    return session_context

async def request_logging_middleware(request: Request, call_next):
    """
    Simple request logging middleware for production monitoring
    Logs endpoint calls with basic info
    """
    start_time = time.time()

    method = request.method
    path = request.url.path

    response = await call_next(request)

    # Session middleware runs inside this one, so the context is set by now
    session_context = getattr(request.state, 'session_context', None)
    tenant_id = getattr(session_context, 'tenant_id', None) or 'unknown'
    user_id = getattr(session_context, 'user_id', None) or 'anonymous'

    duration = round((time.time() - start_time) * 1000, 2)  # milliseconds

    logger.info(f"API {method} {path} | {response.status_code} | {duration}ms | {tenant_id} | {user_id}")

    return response
