"""
Main FastAPI application entry point.
Configures the application, middleware, and includes routers.
"""
from dotenv import load_dotenv

# Load environment variables from .env file first
load_dotenv()

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .auth.router import router as auth_router
from .auth.utils import Mailer
from .config import Settings, get_settings
from .core.bootstrap import bootstrap_admin_if_needed
from .core.cloudinary import CloudinaryStorage
from .core.middleware import setup_middlewares
from .core.security import TokenService
from .database import Database
from .doctors.router import router as doctors_router
from .exceptions import register_exception_handlers

# Import all models here for creating tables
from .auth import models as auth_models  # noqa: F401
from .doctors import models as doctor_models  # noqa: F401
from .patients import models as patient_models  # noqa: F401

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application with its collaborators.

    Args:
        settings: Application settings (default: loaded from the environment)
        database: Database wrapper (default: built from ``settings.database_url``)

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()
    database = database or Database(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting MediMantra API...")
        database.create_all()
        db = database.SessionLocal()
        try:
            bootstrap_admin_if_needed(db, settings)
        except Exception as e:
            logger.error(f"Bootstrap process failed: {str(e)}")
        finally:
            db.close()
        yield
        logger.info("Shutting down MediMantra API...")

    app = FastAPI(
        title="MediMantra API",
        description="Registration and authentication API for the MediMantra healthcare platform",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.token_service = TokenService(settings)
    app.state.mailer = Mailer(settings)
    app.state.storage = CloudinaryStorage(settings)

    # Register exception handlers
    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup custom middleware
    setup_middlewares(app)

    # Include routers
    app.include_router(auth_router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(doctors_router, prefix="/api/v1/doctors", tags=["Doctors"])

    @app.get("/")
    def root():
        """
        Root endpoint for API health check.

        Returns:
            dict: Simple welcome message
        """
        return {"message": "Welcome to MediMantra API"}

    @app.get("/health")
    def health_check():
        """
        Health check endpoint for monitoring.

        Returns:
            dict: Health status information
        """
        try:
            with database.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            db_status = "connected"
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            db_status = "unavailable"
        return {"status": "healthy" if db_status == "connected" else "degraded", "database": db_status}

    return app


app = create_app()
