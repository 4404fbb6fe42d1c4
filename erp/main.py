import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from erp.core.config import settings
from erp.core.exceptions import ServiceError
from erp.core.logging import setup_logging
from erp.db.session import create_tables

from erp.api.v1.admissions.router import router as admissions_router
from erp.api.v1.audit.router import router as audit_router
from erp.api.v1.courses.router import router as courses_router
from erp.api.v1.data.router import router as data_router
from erp.api.v1.exams.router import router as exams_router
from erp.api.v1.fees.router import router as fees_router
from erp.api.v1.hostel.router import router as hostel_router
from erp.api.v1.students.router import router as students_router

logger = logging.getLogger("erp.main")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("%s started", settings.app_name)
    yield


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(admissions_router)
    app.include_router(students_router)
    app.include_router(courses_router)
    app.include_router(hostel_router)
    app.include_router(fees_router)
    app.include_router(exams_router)
    app.include_router(audit_router)
    app.include_router(data_router)

    return app


app = create_app()
