import time

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import get_settings
from app.database import close_db, init_db, ping_db
from app.rate_limit import limiter
from app.services.realtime import drain_pending_emits
from app.services.socket_service import get_socket_app
from app.utils.logger import get_logger

# Routers
from app.routers import admin as admin_router
from app.routers import auth as auth_router
from app.routers import blogs as blogs_router
from app.routers import comments as comments_router
from app.routers import diets as diets_router
from app.routers import diseases as diseases_router
from app.routers import event_posts as event_posts_router
from app.routers import events as events_router
from app.routers import exercises as exercises_router
from app.routers import messages as messages_router
from app.routers import notifications as notifications_router
from app.routers import posts as posts_router
from app.routers import stats as stats_router
from app.routers import users as users_router

logger = get_logger("main")
settings = get_settings()

app = FastAPI(
    title="Patient Social API",
    debug=settings.APP_DEBUG,
)

# Mount Socket.IO app
app.mount("/socket.io", get_socket_app())

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version="1.0.0",
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    security_schemes = components.setdefault("securitySchemes", {})
    security_schemes["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    for path in openapi_schema.get("paths", {}):
        for method in openapi_schema["paths"][path]:
            openapi_schema["paths"][path][method]["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (
    auth_router,
    users_router,
    posts_router,
    blogs_router,
    comments_router,
    events_router,
    event_posts_router,
    messages_router,
    notifications_router,
    diseases_router,
    diets_router,
    exercises_router,
    stats_router,
    admin_router,
):
    app.include_router(module.router)


# Error handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(f"HTTP {exc.status_code}: {exc.detail} - Path: {request.url.path}")
    content = {"message": exc.detail, "status_code": exc.status_code}
    content.update(getattr(exc, "extra", None) or {})
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(content),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error: {exc.errors()} - Path: {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "message": "Validation error",
            "status_code": status.HTTP_400_BAD_REQUEST,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    content = {"message": "Internal server error", "status_code": 500}
    if settings.is_dev:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Middleware Logging
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Time: {process_time:.3f}s"
    )
    return response


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


@app.get("/readyz")
async def readyz():
    if not await ping_db():
        raise HTTPException(status_code=503, detail="Database not ready")
    return {"status": "ok", "database": "up"}


@app.on_event("startup")
async def on_startup():
    logger.info("Starting application...")
    await init_db()
    logger.info("Database initialized")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Shutting down application...")
    await drain_pending_emits()
    await close_db()
