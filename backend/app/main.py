import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import get_settings
from .db.base import SessionLocal, engine, init_db
from .services.flags import FlagNotFound, InvalidReviewAction

LOGS_DIR = Path(__file__).parent.parent / "logs"
LOGS_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.FileHandler(LOGS_DIR / "healthmate.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(
        "startup",
        extra={"environment": settings.ENVIRONMENT, "moderation_enabled": settings.MODERATION_ENABLED},
    )
    yield
    # Background flag writes must land before the engine goes away
    from .services.chat import get_chat_service

    if get_chat_service.cache_info().currsize:
        await get_chat_service().moderation.drain()
    SessionLocal.remove()
    engine.dispose()
    logger.info("shutdown")


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Content moderation, safe response generation and feed ranking",
    version=settings.VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "environment": settings.ENVIRONMENT,
        "moderation_enabled": settings.MODERATION_ENABLED,
    }


from .api.v1.api import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")


# Error handlers


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(ValidationError)
async def domain_validation_handler(request: Request, exc: ValidationError):
    # Raised by domain models built inside a handler, e.g. a report without a single target
    messages = [err["msg"] for err in exc.errors(include_input=False)]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": messages})


@app.exception_handler(InvalidReviewAction)
async def invalid_review_handler(request: Request, exc: InvalidReviewAction):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(FlagNotFound)
async def flag_not_found_handler(request: Request, exc: FlagNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": "Flag not found"})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("unhandled_exception", extra={"path": request.url.path}, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )
