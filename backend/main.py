import logging
import traceback
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src import config
from src.models.db import Base, engine
from src.models.auth_models import User, MagicLink  # noqa: F401  (registers tables on Base)

from src.api.auth import router as auth_router
from src.api.pages import router as pages_router
from src.api.jobs import router as jobs_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.check_production_settings()
    if config.AUTH_STORE_BACKEND == "sql":
        Base.metadata.create_all(bind=engine)
        logger.info(f"Auth store: SQL ({engine.url.render_as_string(hide_password=True)})")
    else:
        logger.info(f"Auth store: JSON file at {config.AUTH_DB_PATH.resolve()}")
    yield


app = FastAPI(title="Rakamin API", lifespan=lifespan)

# CORS middleware must be added before routes
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def make_cors_response(request: Request, status_code: int, content: dict):
    """JSONResponse carrying CORS headers for allowed origins."""
    headers = {}
    origin = request.headers.get("origin")
    if origin and origin in config.CORS_ORIGINS:
        headers = {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
        }
    return JSONResponse(status_code=status_code, content=content, headers=headers)


# Exception handlers to ensure CORS headers are always present
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors (422) with CORS headers."""
    logger.warning(f"Validation error: {exc.errors()}")
    return make_cors_response(request, 422, {"detail": jsonable_errors(exc)})


def jsonable_errors(exc: RequestValidationError):
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return make_cors_response(request, exc.status_code, {"detail": exc.detail})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")
    return make_cors_response(request, 500, {"detail": "Internal server error"})


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(auth_router)
app.include_router(pages_router)
app.include_router(jobs_router)
