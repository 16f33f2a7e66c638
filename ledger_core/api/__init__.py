"""
Transaction Ledger API Application Factory
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .accounts import router as accounts_router
from .ledger import router as ledger_router
from .. import __version__
from ..config import get_config
from ..exceptions import InsufficientFundsError, InternalError, ValidationError
from ..logging_config import get_logger


logger = get_logger("ledger.api")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Map ledger errors to HTTP responses"""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        return _error(400, str(exc))

    @app.exception_handler(InsufficientFundsError)
    async def handle_insufficient_funds(request: Request, exc: InsufficientFundsError):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return _error(400, "; ".join(messages))

    @app.exception_handler(InternalError)
    async def handle_internal_error(request: Request, exc: InternalError):
        logger.error(f"Internal ledger error: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}")
        return _error(500, str(exc))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()

    app = FastAPI(
        title="Transaction Ledger API",
        description="Append-only transaction ledger with idempotent recording",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(ledger_router, prefix="/ledger", tags=["Ledger"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "transaction_ledger_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8080, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "ledger_core.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
