import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from servicehub.core.config import Settings
from servicehub.core.dependencies import LoginRedirect
from servicehub.core.logging_config import setup_logging
from servicehub.core.notifications import NotificationCenter
from servicehub.core.security import IdentityClient
from servicehub.db.firebase_ops import FirebaseManager, FirestoreBaseModel
from servicehub.routers import auth as auth_router
from servicehub.routers import client as client_router
from servicehub.routers import dashboard as dashboard_router
from servicehub.routers import notifications as notifications_router
from servicehub.routers import provider as provider_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing Firebase settings stop the server here, before it accepts requests.
    settings = app.state.settings.validate()
    manager = FirebaseManager(settings)
    app.state.firestore_ops = FirestoreBaseModel(manager.db)
    app.state.identity = IdentityClient(settings, manager.app)
    logger.info("%s %s started", settings.project_name, settings.api_version)
    yield


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.notifications = NotificationCenter(
        limit=settings.notification_limit,
        duration_ms=settings.notification_duration_ms,
    )

    app.include_router(auth_router.router)
    app.include_router(dashboard_router.router)
    app.include_router(client_router.router)
    app.include_router(provider_router.router)
    app.include_router(notifications_router.router)

    @app.exception_handler(LoginRedirect)
    async def login_redirect_handler(request: Request, exc: LoginRedirect):
        return RedirectResponse(url=exc.location, status_code=303)

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to ServiceHub, the marketplace where clients post service requests and providers send offers",
            "login": "/auth/login",
            "signup": "/auth/signup",
            "dashboard": "/dashboard",
        }

    return app


app = create_app()


def main():
    """Run the FastAPI application."""
    uvicorn.run(
        "servicehub.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )

if __name__ == "__main__":
    main()
