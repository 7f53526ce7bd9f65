import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.config import settings
from .core.errors import register_exception_handlers
from .db.base_class import Base
from .db.repository import FunctionRepository
from .db.session import SessionLocal, engine
from .models import function  # noqa: F401  registers the functions table
from .routers import config, functions

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def initialize_database():
    """Create tables and, unless disabled, the sample functions."""
    Base.metadata.create_all(bind=engine)
    if not settings.SEED_SAMPLE_FUNCTIONS:
        return
    db = SessionLocal()
    try:
        added = FunctionRepository(db).seed_sample_functions()
        if added:
            logger.info(f"Seeded {added} sample functions")
    except Exception as e:
        db.rollback()
        logger.warning(f"Could not seed sample functions: {e}")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_database()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for managing serverless function configurations",
    version=settings.VERSION,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include routers
app.include_router(functions.router, prefix=settings.API_PREFIX)
app.include_router(config.router, prefix=settings.API_PREFIX)


@app.get("/")
async def root():
    return {
        "message": f"Welcome to the {settings.PROJECT_NAME} API",
        "version": settings.VERSION,
        "runtimes": list(settings.SUPPORTED_RUNTIMES),
    }
