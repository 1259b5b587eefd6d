import os
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from car_rental.config.logger import app_logger, log_request_start, log_request_end, log_request_error
from car_rental.config.settings import settings
from car_rental.db.db import init_db, close_db, ping_database
from car_rental.db.seed import ensure_seed_admin_user
from car_rental.services.errors import AuthError
from car_rental.utils.responses import error_response
from car_rental.api.auth.router import router as auth_router
from car_rental.api.users.router import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager for startup and shutdown events."""
    app_logger.info(f"{settings.APP_NAME} starting up")

    await init_db()
    await ensure_seed_admin_user()

    app_logger.info("Application initialized successfully")

    yield

    await close_db()
    app_logger.info(f"{settings.APP_NAME} shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map account/auth errors to a uniform ErrorResponse body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(error=exc.code, detail=exc.message).model_dump(mode="json"),
        headers=exc.headers,
    )


# Logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing information using Loguru."""
    start_time = datetime.now()

    log_request_start(request)

    try:
        response = await call_next(request)

        process_time = (datetime.now() - start_time).total_seconds()
        log_request_end(request, response.status_code, process_time)

        return response

    except Exception as e:
        process_time = (datetime.now() - start_time).total_seconds()
        log_request_error(request, e, process_time)
        raise


@app.get("/", tags=["health"])
async def root():
    """Root endpoint with basic API information."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "status": "operational",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/status", tags=["health"])
async def status():
    """Deployment environment and the account-security settings in effect."""
    return {
        "status": "ok",
        "version": settings.APP_VERSION,
        "env": settings.ENVIRONMENT,
        "email_backend": settings.EMAIL_BACKEND,
        "security": {
            "max_failed_login_attempts": settings.MAX_FAILED_LOGIN_ATTEMPTS,
            "lockout_minutes": settings.LOCKOUT_MINUTES,
            "otp_expires_in": settings.OTP_EXP_SECONDS,
            "session_expires_in": settings.SESSION_TOKEN_EXP_SECONDS,
        },
    }


@app.get("/health/db", tags=["health"])
async def health_db():
    """Database health endpoint."""
    is_ok, message = await ping_database()
    if not is_ok:
        return JSONResponse(
            status_code=503,
            content={"status": "degraded", "db": "unavailable", "message": message}
        )
    return {"status": "ok", "db": "available", "message": message}


app.include_router(auth_router)
app.include_router(users_router)


if __name__ == "__main__":
    import uvicorn

    app_logger.info(f"Starting {settings.APP_NAME} server")

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_config=None  # Use our custom logger
    )
