import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from api.auth import authenticate
from api.config.logging import configure_logging
from api.config.settings import get_settings
from api.routes.admin import router as admin_router
from api.routes.notifications import router as notifications_router
from api.routes.orders import router as orders_router
from api.routes.ratings import router as ratings_router
from api.routes.trades import router as trades_router
from api.services.container import ServiceContainer
from src.errors import DomainError

load_dotenv()

logger = logging.getLogger(__name__)


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        container: Pre-built services (tests); built from settings when None

    Returns:
        FastAPI application
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        if getattr(app.state, "container", None) is None:
            app.state.container = ServiceContainer.from_settings(settings)
        logger.info("Tarodan marketplace API started")
        yield
        app.state.container.close()
        logger.info("Tarodan marketplace API stopped")

    app = FastAPI(
        title="Tarodan Marketplace API",
        description="Trades, orders, ratings and notifications for the Tarodan diecast marketplace",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    secured = [Depends(authenticate)]
    app.include_router(trades_router, prefix="/api", tags=["Trades"], dependencies=secured)
    app.include_router(orders_router, prefix="/api", tags=["Orders"], dependencies=secured)
    app.include_router(ratings_router, prefix="/api", tags=["Ratings"], dependencies=secured)
    app.include_router(notifications_router, prefix="/api", tags=["Notifications"], dependencies=secured)
    app.include_router(admin_router, prefix="/api", tags=["Admin"], dependencies=secured)

    @app.get("/health")
    def health():
        return {"status": "Up and running!"}

    return app


app = create_app()
