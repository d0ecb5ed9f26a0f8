from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.deps import get_credential_provider
from app.api.routes import files, sas, status
from app.core.config import get_settings
from app.core.errors import ApiError
from app.core.logging_config import configure_logging
from app.middleware.request_id import RequestIdMiddleware
from app.schemas.status import HealthResponse
from app.services.verify import log_verification_failure, verify_configured_account

settings = get_settings()
log = configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")

app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def handle_api_error(_, exc: ApiError):
    if exc.status_code >= 500:
        log.error(
            "Request failed code=%s account=%s message=%s details=%s",
            exc.code,
            settings.azure_storage_account_name or "-",
            exc.message,
            exc.details,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_content(),
        headers={"x-error-code": exc.code},
    )


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc).isoformat())


@app.on_event("startup")
def on_startup() -> None:
    log.info(
        "Starting %s env=%s storage_account=%s origins=%s",
        settings.app_name,
        settings.app_env,
        settings.azure_storage_account_name or "not set",
        settings.cors_origins or "none",
    )
    if not settings.verify_on_startup:
        return

    if not settings.azure_storage_account_name:
        if settings.is_production:
            raise RuntimeError("AZURE_STORAGE_ACCOUNT_NAME must be set in production")
        log.warning("AZURE_STORAGE_ACCOUNT_NAME not set, skipping permission verification")
        return

    result = verify_configured_account(settings, get_credential_provider())
    if result.success:
        log.info("All storage permissions verified successfully")
        return

    log_verification_failure(result)
    if settings.is_production:
        raise RuntimeError(f"Storage permission verification failed: {result.message}")
    log.warning("Continuing in development mode despite permission issues")


app.include_router(sas.router)
app.include_router(files.router)
app.include_router(status.router)


def run() -> None:
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.app_port)
