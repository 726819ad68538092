import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.background import BackgroundTask
from starlette.concurrency import run_in_threadpool

from ticketing.core.config import Settings, get_settings
from ticketing.db.engine import init_db, make_engine
from ticketing.domain.errors import AppError, InternalError
from ticketing.api.routers.analytics import router as analytics_router
from ticketing.api.routers.tickets import router as tickets_router
from ticketing.api.routers.users import router as users_router
from ticketing.services.request_log_service import record_request

logger = logging.getLogger("ticketing")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db(app.state.engine)
    try:
        yield
    finally:
        # Shutdown
        app.state.engine.dispose()


def _error_body(exc: AppError) -> dict:
    return {"detail": exc.message, "error": type(exc).__name__}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc))

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError):
        content = {"detail": "Invalid request.", "error": "ValidationError", "errors": jsonable_encoder(exc.errors())}
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=_error_body(InternalError("Internal server error.")))


def install_request_log(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_request(request: Request, call_next):
        settings = app.state.settings
        if not settings.REQUEST_LOG_ENABLED:
            return await call_next(request)

        write = partial(
            record_request,
            app.state.engine,
            settings,
            method=request.method,
            path=request.url.path,
            authorization=request.headers.get("authorization"),
            forwarded_for=request.headers.get("x-forwarded-for"),
            remote=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
        )
        try:
            response = await call_next(request)
        except Exception:
            await run_in_threadpool(write, status_code=500)
            raise

        # written once the response has been sent
        response.background = BackgroundTask(write, status_code=response.status_code)
        return response


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.LOG_LEVEL)

    app = FastAPI(title="Ticketing Backend", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = make_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)

    install_error_handlers(app)
    install_request_log(app)

    # analytics first: /tickets/analytics must not be captured by /tickets/{ticket_id}
    app.include_router(analytics_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(tickets_router, prefix="/api")

    @app.get("/", response_class=PlainTextResponse)
    def root():
        return "The server is running."

    return app
