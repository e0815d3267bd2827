import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from loguru import logger

from swim_menu.api.menus import router as menus_router
from swim_menu.config.settings import settings
from swim_menu.core.logger import setup_logger
from swim_menu.db.session import init_db

# Initialize logger
setup_logger(level=settings.log_level, log_file=settings.log_file or None, json_logs=settings.log_json)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist before serving requests."""
    logger.info("Ensuring database tables exist")
    await asyncio.to_thread(init_db)
    yield
    logger.info("Swim menu service shutting down")


app = FastAPI(title="Swim Menu Generator", lifespan=lifespan)

app.include_router(menus_router)

logger.info("FastAPI application initialized")


@app.get("/health")
def health():
    return {"status": "ok"}


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.debug(f"Request: {request.method} {request.url.path}")
    response = await call_next(request)
    logger.debug(f"Response: {response.status_code} for {request.method} {request.url.path}")
    return response
