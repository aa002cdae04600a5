import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from auth import ensure_default_user
from config import (
    APP_ENV,
    DATABASE_URL,
    LOG_LEVEL,
    LOGIN_RATE_LIMIT_MAX,
    RATE_LIMIT_MAX,
    RATE_LIMIT_WINDOW_MINUTES,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_SAMESITE,
    SESSION_COOKIE_SECURE,
    SESSION_SECRET,
    SESSION_TTL_MINUTES,
)
from database import Base, SessionLocal, engine, get_db
from errors import AuthError, InternalError, KakeiboError, RateLimitError, ValidationError
from expenses import create_expense, delete_expense, list_expenses, update_expense
from ratelimit import RateLimiter
from schemas import ExpenseIn, LoginIn
from sessions import SessionGate, SessionStore

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("kakeibo")


Base.metadata.create_all(bind=engine)
with SessionLocal() as _db:
    ensure_default_user(_db)
logger.info("Database ready at %s (env: %s)", DATABASE_URL, APP_ENV)

app = FastAPI(title="Kakeibo API")
app.add_middleware(
    SessionMiddleware,
    secret_key=SESSION_SECRET,
    session_cookie=SESSION_COOKIE_NAME,
    max_age=SESSION_TTL_MINUTES * 60,
    same_site=SESSION_COOKIE_SAMESITE,
    https_only=SESSION_COOKIE_SECURE,
)

app.state.sessions = SessionStore()
app.state.gate = SessionGate(app.state.sessions)
app.state.limiter = RateLimiter(RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_MINUTES * 60)
app.state.login_limiter = RateLimiter(
    LOGIN_RATE_LIMIT_MAX,
    RATE_LIMIT_WINDOW_MINUTES * 60,
    message=f"ログイン試行回数が多すぎます。{RATE_LIMIT_WINDOW_MINUTES}分後に再試行してください。",
)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; style-src 'self' 'unsafe-inline'; script-src 'self' 'unsafe-inline'"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


# ---- error mapping ----------------------------------------------------------

@app.exception_handler(KakeiboError)
async def kakeibo_error_handler(request: Request, exc: KakeiboError):
    headers = None
    if isinstance(exc, RateLimitError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "リクエストの形式が正しくありません"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "ページが見つかりません" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError()
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


# ---- dependencies -----------------------------------------------------------

def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def session_handle(request: Request) -> Optional[str]:
    return request.session.get("sid")


def get_gate(request: Request) -> SessionGate:
    return request.app.state.gate


def rate_limit(request: Request):
    request.app.state.limiter.hit(client_key(request))


def login_rate_limit(request: Request):
    request.app.state.login_limiter.hit(client_key(request))


def require_auth(request: Request, gate: SessionGate = Depends(get_gate)):
    return gate.require_authenticated(session_handle(request))


# ---- routes -----------------------------------------------------------------

@app.get("/healthz")
def healthz():
    return {"status": "ok"}


api = APIRouter(prefix="/api", dependencies=[Depends(rate_limit)])


@api.get("/auth/status")
def auth_status(request: Request, gate: SessionGate = Depends(get_gate)):
    return gate.status(session_handle(request))


@api.post("/auth/login", dependencies=[Depends(login_rate_limit)])
def login(request: Request, payload: LoginIn,
          db: Session = Depends(get_db),
          gate: SessionGate = Depends(get_gate)):
    if not payload.password:
        raise ValidationError("パスワードが必要です")

    try:
        session = gate.login(db, session_handle(request), payload.password)
    except AuthError:
        logger.warning("Failed login attempt from %s", client_key(request))
        raise

    request.session.clear()
    request.session["sid"] = session.token
    logger.info("User %s logged in from %s", session.user["username"], client_key(request))
    return {
        "success": True,
        "message": "ログインしました",
        "user": {"username": session.user["username"]},
    }


@api.post("/auth/logout")
def logout(request: Request, gate: SessionGate = Depends(get_gate)):
    gate.logout(session_handle(request))
    request.session.clear()
    return {"success": True, "message": "ログアウトしました"}


@api.get("/expenses", dependencies=[Depends(require_auth)])
def get_expenses(year: Optional[int] = None, month: Optional[int] = None,
                 db: Session = Depends(get_db)):
    return [e.to_dict() for e in list_expenses(db, year=year, month=month)]


@api.post("/expenses", dependencies=[Depends(require_auth)])
def add_expense(payload: ExpenseIn, db: Session = Depends(get_db)):
    return create_expense(db, payload.model_dump()).to_dict()


@api.put("/expenses/{expense_id}", dependencies=[Depends(require_auth)])
def edit_expense(expense_id: int, payload: ExpenseIn, db: Session = Depends(get_db)):
    return update_expense(db, expense_id, payload.model_dump()).to_dict()


@api.delete("/expenses/{expense_id}", dependencies=[Depends(require_auth)])
def remove_expense(expense_id: int, db: Session = Depends(get_db)):
    delete_expense(db, expense_id)
    return {"success": True, "message": "データを削除しました"}


app.include_router(api)
