from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from emporium.config import Settings
from emporium.deps import get_app_settings, get_db
from emporium.models import Admin, User
from emporium.schemas.user import AdminLoginSchema, AdminOut, LoginSchema, SessionUser, SignupSchema, UserOut
from emporium.services import auth_service
from emporium.services.tokens import ADMIN_REALM, USER_REALM, TokenService
from emporium.utils.security import (
    Identity,
    clear_session_cookies,
    optional_user,
    require_admin,
    set_session_cookies,
)
from emporium.errors import UnauthorizedError

router = APIRouter()
admin_router = APIRouter()


def to_user_out(user: User) -> UserOut:
    return UserOut(id=user.id, email=user.email, name=user.name, createdAt=user.created_at, updatedAt=user.updated_at)


def to_admin_out(admin: Admin) -> AdminOut:
    return AdminOut(id=admin.id, email=admin.email, role=admin.role)


def _start_session(db: Session, settings: Settings, response: Response, user: User) -> None:
    tokens = TokenService(db, settings, USER_REALM)
    access_token = tokens.issue_access_token(user.id, user.email)
    refresh_token = tokens.issue_and_persist_refresh_token(user.id)
    set_session_cookies(response, tokens, access_token, refresh_token)


@router.post("/api/auth/signup", status_code=201)
def signup(
    payload: SignupSchema,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = auth_service.signup(db, payload.email, payload.password, payload.name)
    _start_session(db, settings, response, user)
    return {"user": to_user_out(user)}


@router.post("/api/auth/login")
def login(
    payload: LoginSchema,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = auth_service.login(db, payload.email, payload.password)
    _start_session(db, settings, response, user)
    return {"user": to_user_out(user)}


@router.post("/api/logout")
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    refresh_token = request.cookies.get(USER_REALM.refresh_cookie)
    if refresh_token:
        TokenService(db, settings, USER_REALM).revoke_refresh_token(refresh_token)
    clear_session_cookies(response, USER_REALM, settings)
    return {"message": "Logged out successfully"}


@router.get("/api/check-session")
def check_session(identity: Identity | None = Depends(optional_user)):
    if identity is None:
        raise UnauthorizedError("Unauthorized")
    return {"message": "Logged In", "user": SessionUser(id=identity.id, email=identity.email)}


# ===== Admin console =====
@admin_router.post("/api/admin/auth/login")
def admin_login(
    payload: AdminLoginSchema,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    admin = auth_service.admin_login(db, payload.email, payload.password)
    tokens = TokenService(db, settings, ADMIN_REALM)
    access_token = tokens.issue_access_token(admin.id, admin.email, role=admin.role)
    refresh_token = tokens.issue_and_persist_refresh_token(admin.id)
    set_session_cookies(response, tokens, access_token, refresh_token)
    return {"message": "Admin login successful", "admin": to_admin_out(admin)}


@admin_router.post("/api/admin/auth/logout")
def admin_logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    refresh_token = request.cookies.get(ADMIN_REALM.refresh_cookie)
    if refresh_token:
        TokenService(db, settings, ADMIN_REALM).revoke_refresh_token(refresh_token)
    clear_session_cookies(response, ADMIN_REALM, settings)
    return {"message": "Logged out successfully"}


@admin_router.get("/api/admin/check-session")
def admin_check_session(admin: Identity = Depends(require_admin)):
    return {"message": "Logged In", "user": SessionUser(id=admin.id, email=admin.email, role=admin.role)}
