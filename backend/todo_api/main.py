from __future__ import annotations

import logging
import secrets
import sys
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .auth import TokenService, hash_password, verify_password
from .config import Settings, load_settings
from .db import get_engine, init_db
from .deps import get_current_user_id, get_session, get_token_service
from .errors import AuthError, TodoApiError
from .models import Todo
from .repositories import DEFAULT_LIMIT, TodoRepository, UserRepository
from .schemas import LoginIn, RegisterIn, TodoCreate, TodoOut, TodoUpdate

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"

MAX_LIMIT = 100
MAX_PAGE = 1_000_000

router = APIRouter(prefix="/api/v1")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        stream=sys.stdout,
    )


def _utc(value: datetime | None) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_todo_out(t: Todo) -> TodoOut:
    created = _utc(t.created_at or t.updated_at)
    updated = _utc(t.updated_at) if t.updated_at else created
    return TodoOut(
        id=t.id,
        title=t.title,
        description=t.description,
        is_completed=bool(t.is_completed),
        created_at=created,
        updated_at=updated,
    )


def _todo_payload(t: Todo) -> dict:
    return {"status": "success", "data": {"todo": to_todo_out(t)}}


@router.get("/healthcheck")
def health_check():
    return {"status": "ok", "message": "API Services"}


@router.post("/auth/register")
def register(body: RegisterIn, request: Request, s: Session = Depends(get_session)):
    settings: Settings = request.app.state.settings
    pw_hash = hash_password(body.password, iterations=settings.pbkdf2_iters)
    user_id = UserRepository(s).create(body.username.strip(), body.email.strip(), pw_hash)
    logger.info("Registered user %s", user_id)
    return {"status": "success", "user_id": user_id}


@router.post("/auth/login")
def login(
    body: LoginIn,
    request: Request,
    s: Session = Depends(get_session),
    tokens: TokenService = Depends(get_token_service),
):
    u = UserRepository(s).find_by_email(body.email.strip())
    # unknown emails still pay for one hash so timing does not reveal them
    pw_hash = u.password_hash if u is not None else request.app.state.dummy_hash
    ok = verify_password(body.password, pw_hash)
    if u is None or not ok:
        logger.info("Failed login attempt")
        raise AuthError(INVALID_CREDENTIALS)
    return {"status": "success", "token": tokens.issue(u.id)}


@router.get("/todos")
def todo_list(
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    user_id: str = Depends(get_current_user_id),
    s: Session = Depends(get_session),
):
    offset = (page - 1) * limit
    todos = [to_todo_out(t) for t in TodoRepository(s).list(user_id, limit=limit, offset=offset)]
    return {"status": "ok", "count": len(todos), "todos": todos}


@router.post("/todos")
def create_todo(
    body: TodoCreate,
    user_id: str = Depends(get_current_user_id),
    s: Session = Depends(get_session),
):
    t = TodoRepository(s).create(user_id, body.title, body.description, body.is_completed)
    return _todo_payload(t)


@router.get("/todos/{todo_id}")
def get_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    s: Session = Depends(get_session),
):
    return _todo_payload(TodoRepository(s).get(user_id, todo_id))


@router.patch("/todos/{todo_id}")
def edit_todo(
    todo_id: str,
    body: TodoUpdate,
    user_id: str = Depends(get_current_user_id),
    s: Session = Depends(get_session),
):
    t = TodoRepository(s).update(user_id, todo_id, **body.model_dump(exclude_unset=True))
    return _todo_payload(t)


@router.delete("/todos/{todo_id}")
def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_current_user_id),
    s: Session = Depends(get_session),
):
    TodoRepository(s).delete(user_id, todo_id)
    return Response(status_code=200)


def _api_error(request: Request, exc: TodoApiError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": exc.status, "message": exc.message},
        headers=headers,
    )


def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=jsonable_encoder({"status": "fail", "message": "Invalid request", "errors": exc.errors()}),
    )


def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"status": "error", "message": "Internal server error"})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Todo API")

    # CORS for dev
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.engine = get_engine(settings)
    app.state.token_service = TokenService(settings.jwt_secret, ttl_seconds=settings.jwt_ttl_minutes * 60)
    app.state.dummy_hash = hash_password(secrets.token_urlsafe(16), iterations=settings.pbkdf2_iters)

    app.add_exception_handler(TodoApiError, _api_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(Exception, _unhandled_error)
    app.include_router(router)

    @app.on_event("startup")
    def _startup():
        init_db(app.state.engine, attempts=settings.db_init_attempts)

    @app.on_event("shutdown")
    def _shutdown():
        app.state.engine.dispose()

    return app


def serve() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run("todo_api.main:create_app", factory=True, host=settings.host, port=settings.port)
