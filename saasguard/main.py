# saasguard/main.py

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from saasguard.core.config import settings
from saasguard.core.database import db
from saasguard.core.encryption import cipher
from saasguard.core.exceptions import CredentialCipherError

# Routers
from saasguard.modules.integrations.router import router as integrations_router
from saasguard.modules.system.router import router as system_router

logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup/shutdown lifecycle.
    """
    logger.info("Starting SaaSGuard application...")
    if not cipher.is_enabled():
        logger.warning("ENCRYPTION_KEY not set - integration credentials will be stored in plaintext")
    await db.connect()
    logger.info("Database connection established.")
    yield
    logger.info("Shutting down SaaSGuard application...")
    await db.disconnect()
    logger.info("Database connection closed.")


app = FastAPI(
    title=settings.APP_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# CORS (tighten allow_origins in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CredentialCipherError)
async def credential_cipher_error_handler(request: Request, exc: CredentialCipherError):
    # never echo the message back; it may name the field being protected
    logger.error(f"Credential encryption failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Credentials could not be processed securely"},
    )


# -------------------------------------------------------------------
# HEALTH CHECK
# -------------------------------------------------------------------
@app.get("/health", tags=["System"])
async def health_check():
    """
    Runtime liveness probe used by infra / load balancers.
    """
    db_health = await db.ping()

    status_code = 200 if db_health else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ok" if status_code == 200 else "unhealthy",
            "components": {
                "database": "connected" if db_health else "disconnected",
                "encryption": "enabled" if cipher.is_enabled() else "disabled",
            },
        },
    )


# -------------------------------------------------------------------
# API ROUTERS (versioned)
# -------------------------------------------------------------------
API_PREFIX = "/api/v1"

app.include_router(integrations_router, prefix=API_PREFIX)
app.include_router(system_router, prefix=API_PREFIX)
