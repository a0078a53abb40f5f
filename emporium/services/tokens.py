"""
Access/refresh token issuance and verification.

Access tokens are short-lived JWTs carrying the subject id and email. Refresh
tokens are long-lived JWTs whose SHA-256 digest is persisted, so a refresh is
only honoured while the stored row exists, is unexpired and is not revoked.
Storefront users and admin operators live in separate realms: different
cookies, different token tables and a different ``scope`` claim, so a token
minted for one realm never validates in the other.
"""

import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from sqlalchemy.orm import Session

from emporium.config import Settings
from emporium.models import Admin, AdminRefreshToken, RefreshToken, User

logger = logging.getLogger(__name__)


class InvalidTokenError(Exception):
    """Raised when a token fails signature, expiry, scope or storage checks."""


@dataclass(frozen=True)
class TokenRealm:
    scope: str
    access_cookie: str
    refresh_cookie: str
    subject_model: type
    token_model: type
    owner_column: str
    access_expiry_setting: str


USER_REALM = TokenRealm(
    scope="user",
    access_cookie="accessToken",
    refresh_cookie="refreshToken",
    subject_model=User,
    token_model=RefreshToken,
    owner_column="user_id",
    access_expiry_setting="ACCESS_TOKEN_EXPIRE_MINUTES",
)

ADMIN_REALM = TokenRealm(
    scope="admin",
    access_cookie="adminAccessToken",
    refresh_cookie="adminRefreshToken",
    subject_model=Admin,
    token_model=AdminRefreshToken,
    owner_column="admin_id",
    access_expiry_setting="ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES",
)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenService:
    def __init__(self, db: Session, settings: Settings, realm: TokenRealm):
        self.db = db
        self.settings = settings
        self.realm = realm

    @property
    def access_lifetime(self) -> timedelta:
        return timedelta(minutes=int(getattr(self.settings, self.realm.access_expiry_setting)))

    @property
    def refresh_lifetime(self) -> timedelta:
        return timedelta(days=int(self.settings.REFRESH_TOKEN_EXPIRE_DAYS))

    def _encode(self, claims: dict, secret: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "scope": self.realm.scope,
            "iat": now,
            "nbf": now,
            "exp": now + lifetime,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, secret, algorithm=self.settings.ALGORITHM)

    def _decode(self, token: str, secret: str, token_type: str) -> dict:
        if not token:
            raise InvalidTokenError("Missing token")
        try:
            payload = jwt.decode(token, secret, algorithms=[self.settings.ALGORITHM])
        except JWTError as exc:
            raise InvalidTokenError("Invalid or expired token") from exc
        if payload.get("scope") != self.realm.scope or payload.get("type") != token_type:
            raise InvalidTokenError("Token issued for another realm")
        if not payload.get("sub"):
            raise InvalidTokenError("Invalid token payload")
        return payload

    def issue_access_token(self, subject_id: int, email: str, role: Optional[str] = None) -> str:
        claims = {"sub": str(subject_id), "email": email, "type": "access"}
        if role:
            claims["role"] = role
        return self._encode(claims, self.settings.JWT_SECRET, self.access_lifetime)

    def issue_and_persist_refresh_token(self, subject_id: int) -> str:
        token = self._encode(
            {"sub": str(subject_id), "type": "refresh"},
            self.settings.REFRESH_TOKEN_SECRET,
            self.refresh_lifetime,
        )
        row = self.realm.token_model(
            token_hash=hash_token(token),
            expires_at=datetime.utcnow() + self.refresh_lifetime,
            revoked=False,
        )
        setattr(row, self.realm.owner_column, subject_id)
        self.db.add(row)
        self.db.commit()
        return token

    def verify_access_token(self, token: str) -> dict:
        return self._decode(token, self.settings.JWT_SECRET, "access")

    def verify_refresh_token(self, token: str):
        """Validate a refresh token and return its subject (User or Admin)."""
        payload = self._decode(token, self.settings.REFRESH_TOKEN_SECRET, "refresh")
        model = self.realm.token_model
        stored = (
            self.db.query(model)
            .filter(
                model.token_hash == hash_token(token),
                model.expires_at > datetime.utcnow(),
                model.revoked.is_(False),
            )
            .first()
        )
        if not stored:
            raise InvalidTokenError("Refresh token not recognised")
        owner_id = getattr(stored, self.realm.owner_column)
        if str(owner_id) != str(payload["sub"]):
            raise InvalidTokenError("Refresh token subject mismatch")
        subject = self.db.get(self.realm.subject_model, owner_id)
        if subject is None:
            raise InvalidTokenError("Refresh token subject no longer exists")
        return subject

    def revoke_refresh_token(self, token: str) -> bool:
        if not token:
            return False
        model = self.realm.token_model
        deleted = self.db.query(model).filter(model.token_hash == hash_token(token)).delete(
            synchronize_session=False
        )
        self.db.commit()
        return bool(deleted)
