from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from api.routes.course_routes import course_routes
from api.routes.exam_routes import exam_routes
from api.routes.progress_routes import progress_routes
from api.config import create_db, get_settings
from api.services.errors import DomainError
from api.services.exam_service import InFlightGuard
from api.services.invalidation import InvalidationBus, ViewCache
from api.utils.logger import configure_logging, set_request_id, clear_request_id
from fastapi import Request
from starlette.responses import Response, JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    create_db()
    # App-scoped: one bus and one view cache per process, shared by all requests.
    app.state.invalidation_bus = InvalidationBus()
    app.state.view_cache = ViewCache(settings.progress_cache_ttl_seconds, bus=app.state.invalidation_bus)
    app.state.submit_guard = InFlightGuard()
    logger.info("lms startup pass_score=%s max_attempts=%s", settings.exam_pass_score, settings.exam_max_attempts)
    yield
    app.state.view_cache.clear()
    logger.info("lms shutdown")


app = FastAPI(lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    try:
        logger.info("request start method=%s path=%s client=%s", request.method, request.url.path, request.client)
        response: Response = await call_next(request)
        logger.info("request end status=%s method=%s path=%s", response.status_code, request.method, request.url.path)
        response.headers["x-request-id"] = rid
        return response
    except Exception:
        logger.exception("request error method=%s path=%s", request.method, request.url.path)
        raise
    finally:
        clear_request_id()


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.warning("domain error status=%s type=%s method=%s path=%s detail=%s", exc.status_code, type(exc).__name__, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    # Server-side errors with stack traces; client errors as warnings.
    if exc.status_code >= 500:
        logger.exception("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    else:
        logger.warning("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("validation error method=%s path=%s errors=\n%s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/")
def read_root():
    return {"message": "LMS is Healthy"}

app.include_router(exam_routes, prefix="/lms")
app.include_router(progress_routes, prefix="/lms")
app.include_router(course_routes, prefix="/lms")

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
