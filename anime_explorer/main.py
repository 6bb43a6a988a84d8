"""Anime Explorer: browse the MyAnimeList catalog and keep a favorites list."""
import logging
import time
from contextlib import asynccontextmanager
from urllib.parse import urlencode

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from anime_explorer.app_state import AppState, get_app_state, init_app_state
from anime_explorer.auth.dependencies import LoginRequired
from anime_explorer.auth.router import router as auth_router
from anime_explorer.catalog.router import router as catalog_router
from anime_explorer.favorites.router import router as favorites_router
from anime_explorer.limiter import limiter
from anime_explorer.rendering import STATIC_DIR, is_script_request
from anime_explorer.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s | %(levelname)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create shared HTTP clients at startup and close them on shutdown."""
    app_state = init_app_state()
    app.state.app_state = app_state
    logger.info("Startup complete")

    yield

    logger.info("Shutting down")
    app_state.close()


app = FastAPI(
    title="Anime Explorer",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    """Send anonymous page requests to the login form."""
    return RedirectResponse(f"/login?{urlencode({'next': exc.next_path})}", status_code=status.HTTP_302_FOUND)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Errors carry a free-text ``error`` field; browser navigation gets plain text."""
    if request.method == "GET" and not is_script_request(request):
        return PlainTextResponse(str(exc.detail), status_code=exc.status_code, headers=exc.headers)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"{request.method} {request.url.path} | Invalid request: {exc.errors()}")
    return JSONResponse({"error": "Invalid request"}, status_code=422)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log request method, path, status, and duration."""
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    if request.url.path != "/health" and not request.url.path.startswith("/static"):
        logger.info(f"{request.method} {request.url.path} | Status: {response.status_code} | Duration: {duration:.3f}s")

    return response


@app.get("/health")
async def health(app_state: AppState = Depends(get_app_state)):
    """Health check endpoint for monitoring."""
    return app_state.get_health_status()


app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
app.include_router(auth_router)
app.include_router(favorites_router)
app.include_router(catalog_router)


if __name__ == "__main__":
    uvicorn.run("anime_explorer.main:app", host="0.0.0.0", port=8000, reload=True)
