from dataclasses import dataclass
from typing import Optional
import logging

import bcrypt
from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from emporium.config import Settings
from emporium.deps import get_app_settings, get_db
from emporium.errors import ForbiddenError, UnauthorizedError
from emporium.services.tokens import ADMIN_REALM, USER_REALM, InvalidTokenError, TokenRealm, TokenService

logger = logging.getLogger(__name__)


# ===== Passwords =====
def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ===== Cookies =====
def set_auth_cookie(response: Response, name: str, value: str, max_age: int, settings: Settings) -> None:
    response.set_cookie(
        key=name,
        value=value,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def set_session_cookies(response: Response, tokens: TokenService, access_token: str, refresh_token: str) -> None:
    realm = tokens.realm
    set_auth_cookie(
        response, realm.access_cookie, access_token, int(tokens.access_lifetime.total_seconds()), tokens.settings
    )
    set_auth_cookie(
        response, realm.refresh_cookie, refresh_token, int(tokens.refresh_lifetime.total_seconds()), tokens.settings
    )


def clear_session_cookies(response: Response, realm: TokenRealm, settings: Settings) -> None:
    for name in (realm.access_cookie, realm.refresh_cookie):
        response.delete_cookie(name, path="/", secure=settings.is_production, httponly=True, samesite="lax")


# ===== Request authentication =====
@dataclass(frozen=True)
class Identity:
    id: int
    email: Optional[str] = None
    role: Optional[str] = None


class SessionAuthenticator:
    """Resolve the caller's identity from the realm's cookies.

    With ``fail_open`` a missing or bad session resolves to ``None`` so anonymous
    requests keep working; otherwise it raises ``UnauthorizedError``. When only
    the refresh cookie is present and it checks out, a fresh access token is
    minted and set as a cookie on the outgoing response.
    """

    def __init__(self, realm: TokenRealm, fail_open: bool):
        self.realm = realm
        self.fail_open = fail_open

    def _reject(self, reason: str) -> None:
        if self.fail_open:
            logger.debug("[%s] proceeding unauthenticated: %s", self.realm.scope, reason)
            return None
        raise UnauthorizedError(reason)

    def __call__(
        self,
        request: Request,
        response: Response,
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_app_settings),
    ) -> Optional[Identity]:
        access_token = request.cookies.get(self.realm.access_cookie)
        refresh_token = request.cookies.get(self.realm.refresh_cookie)
        tokens = TokenService(db, settings, self.realm)

        if not access_token and not refresh_token:
            return self._reject("No tokens provided")

        if access_token:
            try:
                payload = tokens.verify_access_token(access_token)
            except InvalidTokenError:
                return self._reject("Invalid or expired access token")
            identity = Identity(id=int(payload["sub"]), email=payload.get("email"), role=payload.get("role"))
        else:
            try:
                subject = tokens.verify_refresh_token(refresh_token)
            except InvalidTokenError:
                return self._reject("Invalid or expired refresh token")
            role = getattr(subject, "role", None)
            new_access = tokens.issue_access_token(subject.id, subject.email, role=role)
            set_auth_cookie(
                response,
                self.realm.access_cookie,
                new_access,
                int(tokens.access_lifetime.total_seconds()),
                settings,
            )
            logger.info("[%s] access token refreshed for subject %s", self.realm.scope, subject.id)
            identity = Identity(id=subject.id, email=subject.email, role=role)

        request.state.identity = identity
        return identity


optional_user = SessionAuthenticator(USER_REALM, fail_open=True)
require_admin = SessionAuthenticator(ADMIN_REALM, fail_open=False)


def require_user(identity: Optional[Identity] = Depends(optional_user)) -> Identity:
    if identity is None:
        raise UnauthorizedError("Unauthorized")
    return identity


def require_admin_role(*roles: str):
    """Dependency factory: the admin must hold one of ``roles``."""

    def _dependency(admin: Identity = Depends(require_admin)) -> Identity:
        if admin.role not in roles:
            raise ForbiddenError("Insufficient admin role")
        return admin

    return _dependency
