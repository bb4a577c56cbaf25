from datetime import datetime, timedelta, timezone
from typing import NamedTuple
from uuid import UUID

import jwt
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import ACCESS_TOKEN_EXPIRE_HOURS, BCRYPT_ROUNDS, JWT_ALGORITHM, get_admin_secret, get_jwt_secret
from models import User
from schemas import RegisterSchema
from utils.errors import Conflict, Forbidden, InvalidCredentials, NotFound, ServerFault, Unauthenticated
from utils.logger import get_logger

logger = get_logger("auth")

pwd_context = CryptContext(schemes=["bcrypt"], bcrypt__rounds=BCRYPT_ROUNDS, deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


class Identity(NamedTuple):
    user_id: UUID
    role: str


# ---------------------- PASSWORDS ----------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


# ---------------------- JWT UTILITIES ----------------------
def _signing_secret() -> str:
    secret = get_jwt_secret()
    if not secret:
        logger.error("JWT_SECRET is not configured")
        raise ServerFault("Server configuration error")
    return secret


def create_access_token(user_id, role: str, expires_delta=None) -> str:
    secret = _signing_secret()
    now = datetime.now(timezone.utc)
    payload = {
        "userId": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + (expires_delta or timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Identity:
    secret = _signing_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        return Identity(UUID(payload["userId"]), payload["role"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError) as exc:
        logger.warning("Token verification failed: %s", exc)
        raise Unauthenticated("Invalid token")


# ---------------------- DEPENDENCIES ----------------------
def get_current_identity(request: Request, token: str = Depends(oauth2_scheme)) -> Identity:
    if not token:
        raise Unauthenticated("No token provided")
    identity = decode_access_token(token)
    request.state.identity = identity
    return identity


def require_roles(*roles):
    allowed = set(roles)

    def checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in allowed:
            logger.warning(
                "Role %s denied, requires one of %s", identity.role, sorted(allowed),
                extra={"user_id": str(identity.user_id)},
            )
            raise Forbidden()
        return identity

    return checker


# ---------------------- REGISTER / LOGIN ----------------------
def register_user(db: Session, data: RegisterSchema):
    # Fail fast on configuration before touching the database.
    _signing_secret()

    email = data.email.lower()
    existing = db.query(User).filter(or_(User.email == email, User.username == data.username)).first()
    if existing:
        if existing.email == email:
            raise Conflict("Email already in use")
        raise Conflict("Username already in use")

    if data.role == "admin":
        admin_secret = get_admin_secret()
        if not admin_secret or data.admin_secret != admin_secret:
            logger.warning("Rejected admin registration for %s: invalid admin secret", email)
            raise Forbidden("Invalid admin secret")

    user = User(
        username=data.username,
        email=email,
        password=hash_password(data.password),
        role=data.role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Email already in use")
    db.refresh(user)

    logger.info("User registered successfully: %s", email, extra={"user_id": str(user.id)})
    return user, create_access_token(user.id, user.role)


def login_user(db: Session, email: str, password: str):
    _signing_secret()

    user = db.query(User).filter(User.email == email.strip().lower()).first()
    # Same error for unknown email and wrong password
    if not user or not verify_password(password, user.password):
        logger.warning("Failed login attempt for %s", email)
        raise InvalidCredentials()

    logger.info("User logged in successfully: %s", user.email, extra={"user_id": str(user.id)})
    return user, create_access_token(user.id, user.role)


def resolve_identity_user(db: Session, identity: Identity) -> User:
    user = db.query(User).filter(User.id == identity.user_id).first()
    if not user:
        raise NotFound("User not found")
    return user
