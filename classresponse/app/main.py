# app/main.py
import asyncio

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from classresponse.app.core.config import settings
from classresponse.app.core.errors import CollaboratorUnavailable, NotFoundError, StateConflictError, ValidationError
from classresponse.app.core.logging import get_logs_writer_logger
from classresponse.app.routers import feedback, sessions, templates, universities
from classresponse.app.services.status_manager import run_status_manager_loop
from classresponse.db import Base
from classresponse.db.session import engine

logger = get_logs_writer_logger()

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

app.include_router(universities.router)
app.include_router(templates.router)
app.include_router(sessions.router)
app.include_router(feedback.router)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    body = {"detail": exc.detail}
    if exc.missing_count is not None:
        body["missing_count"] = exc.missing_count
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.detail})


@app.exception_handler(StateConflictError)
async def state_conflict_handler(request: Request, exc: StateConflictError):
    body = {"detail": exc.detail}
    if exc.current_status is not None:
        body["current_status"] = exc.current_status
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body)


@app.exception_handler(CollaboratorUnavailable)
async def storage_unavailable_handler(request: Request, exc: CollaboratorUnavailable):
    logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": exc.detail})


# lazy relationship loads run outside the services' storage wrappers
@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("%s %s storage error: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": "Storage unavailable"})


@app.on_event("startup")
async def on_startup():
    Base.metadata.create_all(bind=engine)

    # sweep elapsed sessions in the background
    if settings.SWEEP_ENABLED:
        asyncio.create_task(run_status_manager_loop())


@app.get("/health")
def health():
    return {"status": "ok"}
