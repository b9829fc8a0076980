import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskboard.config import settings
from taskboard.database import init_models
from taskboard.exceptions import ApiError, StoreError
from taskboard.logging_setup import setup_logging
from taskboard.routers.tasks import router as tasks_router
from taskboard.routers.users import router as users_router

setup_logging(settings.log_level, settings.log_file or None)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    logger.info("Taskboard API ready under %s", settings.api_prefix)
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Taskboard API",
    description="Users and tasks with two-way assignment tracking",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def envelope(status_code: int, message: str, data) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "data": data})


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if isinstance(exc, StoreError):
        logger.error("%s %s failed in the store", request.method, request.url.path, exc_info=exc.original)
    return envelope(exc.status_code, exc.message, exc.data)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return envelope(exc.status_code, str(exc.detail), {})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return envelope(status.HTTP_400_BAD_REQUEST, "Bad Request", {"errors": jsonable_encoder(exc.errors())})


# Global exception handler; error details are returned to the caller as-is
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Server Error", "data": {"name": type(exc).__name__, "message": str(exc)}},
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Credentials": "true"
        }
    )


app.include_router(users_router, prefix=settings.api_prefix)
app.include_router(tasks_router, prefix=settings.api_prefix)


@app.get("/")
def root():
    return {"message": "OK", "data": {"service": "Taskboard API", "api": settings.api_prefix}}
