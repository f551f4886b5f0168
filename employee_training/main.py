"""Employee Training Events Web Application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from employee_training.core.config import settings
from employee_training.core.database import create_db_and_tables
from employee_training.core.dependencies import close_http_client
from employee_training.core.errors import ConcurrencyConflictError, InvalidEventError
from employee_training.core.scheduler import shutdown_scheduler, start_scheduler
from employee_training.routes import auth, categories, conversations, events, user_events

# Configure logging
log_dir = Path.home() / ".logs" / "employee_training"
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Employee Training application")
    create_db_and_tables()
    start_scheduler()
    yield
    shutdown_scheduler()
    await close_http_client()
    logger.info("Employee Training application shut down")


app = FastAPI(
    title=settings.app_name,
    description="Training events for L&D teams: publishing, registration and reminders",
    version="0.1.0",
    lifespan=lifespan,
)

origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(events.router)
app.include_router(user_events.router)
app.include_router(conversations.router)
app.include_router(categories.router)


@app.exception_handler(InvalidEventError)
async def invalid_event_handler(request: Request, exc: InvalidEventError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConcurrencyConflictError)
async def conflict_handler(request: Request, exc: ConcurrencyConflictError):
    logger.warning(f"Giving up after repeated write conflicts: {exc}")
    return JSONResponse(status_code=503, content={"detail": "The event is being modified, please try again"})


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
