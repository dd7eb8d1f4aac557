"""
Vault Ledger API Application Factory
"""

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .users import router as users_router
from .vaults import router as vaults_router
from .wallets import router as wallets_router
from .deductions import router as deductions_router
from ..config import LedgerConfig, get_config
from ..errors import InvalidInput, LedgerError, StoreError
from ..logging_config import get_logger, setup_logging


logger = get_logger("vault_ledger.api")


def _error_response(error: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message, "error_code": error.error_code}
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP responses"""

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        # Store detail stays in the server log
        logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(StoreError())

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid input") if errors else "Invalid input"
        return _error_response(InvalidInput(message))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(LedgerError())


def create_app(config: Optional[LedgerConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    config = config or get_config()
    setup_logging(config.log_level, fmt=config.log_format)

    app = FastAPI(
        title="Vault Ledger API",
        description="Wallets, savings vaults and scheduled vault deductions",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    prefix = config.api_prefix.rstrip("/")
    app.include_router(users_router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(vaults_router, prefix=f"{prefix}/vaults", tags=["Vaults"])
    app.include_router(wallets_router, prefix=f"{prefix}/wallets", tags=["Wallets"])
    app.include_router(deductions_router, prefix=f"{prefix}/deductions", tags=["Deductions"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "vault_ledger_api",
            "version": "1.0.0"
        }

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the API with uvicorn"""
    config = get_config()
    uvicorn.run(
        create_app(config),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level=config.log_level.lower()
    )


app = create_app()
