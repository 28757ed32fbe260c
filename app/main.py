from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router as api_router
from app.config.settings import get_settings
from app.storage.database import init_db
from app.utils.logging_config import setup_logging


# Setup logging
logger = setup_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name}...")
    init_db()
    logger.info("Database initialized")
    logger.info(f"View cache: {'enabled' if settings.cache_enabled else 'disabled'}")
    yield
    logger.info(f"Shutting down {settings.app_name}...")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    description="Schedule lanes, cross-project conflicts and weekly capacity for project teams",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1", tags=["scheduling"])


@app.get("/health", tags=["health"])
def health_check():
    """Health check endpoint for monitoring and load balancers."""
    return {"status": "ok", "app": settings.app_name, "version": "1.0.0"}
