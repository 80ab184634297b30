import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from app.routers import alerts, ingredients, inventory, recipes
from app.config import settings
from app.core.dependencies import build_container
from app.core.logging import setup_logging
from app.core.exceptions import api_exception_handler, general_exception_handler, APIError
from app.core.middleware import request_logging_middleware, session_validation_middleware
from app.database import DatabasePool, get_db_connection

# Initialize logging
setup_logging()

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    await DatabasePool.create_pool()
    container = build_container(get_db_connection, settings)
    app.state.container = container

    flush_task = asyncio.create_task(
        container.outbox.run(get_db_connection, settings.movement_outbox_flush_interval)
    )
    logger.info("✅ Cost control service started")
    try:
        yield
    finally:
        flush_task.cancel()
        try:
            await flush_task
        except asyncio.CancelledError:
            pass

        if container.outbox.pending_count:
            try:
                async with get_db_connection() as conn:
                    await container.outbox.flush(conn)
            except Exception as e:
                logger.error(f"❌ Final movement outbox flush failed: {e}")
            if container.outbox.pending_count:
                logger.error(f"❌ {container.outbox.pending_count} stock movement(s) lost on shutdown")

        await DatabasePool.close_pool()

app = FastAPI(
    title="Cost Control Service",
    version="1.0.0",
    debug=settings.debug,
    docs_url="/docs",
    lifespan=lifespan
)

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Cost Control Service",
        version="1.0.0",
        description="Inventory ledger, recipe costing and cost alerts",
        routes=app.routes,
    )
    # Configure cookie authentication
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "cookieAuth": {
            "type": "apiKey",
            "in": "cookie",
            "name": "session-token"
        }
    }
    for path in openapi_schema["paths"]:
        for method in openapi_schema["paths"][path]:
            if method in ["get", "post", "put", "delete", "patch"]:
                openapi_schema["paths"][path][method]["security"] = [{"cookieAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# Exception handlers
app.add_exception_handler(APIError, api_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Last registered runs first: logging wraps session validation
app.middleware("http")(session_validation_middleware)
app.middleware("http")(request_logging_middleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(ingredients.router, prefix="/ingredients", tags=["ingredients"])
app.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
app.include_router(recipes.router, prefix="/recipes", tags=["recipes"])
app.include_router(alerts.router, prefix="/alerts", tags=["alerts"])

@app.get("/")
async def root():
    return {
        "message": "Cost Control Service",
        "version": "1.0.0",
        "database": settings.db_name,
        "environment": settings.environment
    }

@app.get("/health")
async def health():
    return {
        "status": "healthy",
        "database": settings.db_name,
        "host": settings.db_host
    }
