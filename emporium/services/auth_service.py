import logging

from sqlalchemy.orm import Session

from emporium.models import Admin, ADMIN_ROLES, User
from emporium.errors import ConflictError, UnauthorizedError, ValidationError
from emporium.utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


def signup(db: Session, email: str, password: str, name: str) -> User:
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered")
    user = User(email=email, name=name, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s signed up", user.id)
    return user


def login(db: Session, email: str, password: str) -> User:
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    # OAuth-only accounts have no password hash and can never log in here
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login for %s", email)
        raise UnauthorizedError("Invalid email or password")
    return user


def admin_login(db: Session, email: str, password: str) -> Admin:
    email = email.strip().lower()
    admin = db.query(Admin).filter(Admin.email == email).first()
    if not admin or not verify_password(password, admin.password_hash):
        logger.warning("Failed admin login for %s", email)
        raise UnauthorizedError("Invalid email or password")
    return admin


def create_admin(db: Session, email: str, password: str, role: str) -> Admin:
    """Create an admin operator. Admins are provisioned out-of-band (CLI), never via the API."""
    role = role.upper()
    if role not in ADMIN_ROLES:
        raise ValidationError(f"Invalid role. Expected one of: {', '.join(ADMIN_ROLES)}")
    email = email.strip().lower()
    if db.query(Admin).filter(Admin.email == email).first():
        raise ConflictError("Admin email already registered")
    admin = Admin(email=email, password_hash=hash_password(password), role=role)
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin
