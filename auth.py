import base64
import binascii
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, WebSocket
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from passlib.context import CryptContext

from config import PASSWORD_RESETS, USERS
from database import create_document, get_database
from errors import ValidationFailed
from schemas import RegisterRequest

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
security = HTTPBasic()

MIN_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Session:
    """The signed-in shop owner, handed explicitly to every service call."""
    owner_email: str
    owner_name: str = ""


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _normalise_email(email: str) -> str:
    return (email or "").strip().lower()


def register(database, payload: RegisterRequest) -> Session:
    email = _normalise_email(payload.email)
    missing = [
        label for label, value in (
            ("Email", email),
            ("Owner name", payload.owner_name),
            ("Shop name", payload.shop_name),
            ("Mobile", payload.mobile),
            ("Address", payload.address),
        )
        if not value.strip()
    ]
    if missing:
        raise ValidationFailed(f"{', '.join(missing)} required")
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if database[USERS].find_one({"email": email}):
        raise ValidationFailed("This email address is already in use")

    create_document(database, USERS, {
        "email": email,
        "owner_name": payload.owner_name.strip(),
        "shop_name": payload.shop_name.strip(),
        "mobile": payload.mobile.strip(),
        "address": payload.address.strip(),
        "password_hash": get_password_hash(payload.password),
    })
    logger.info("Registered shop owner %s", email)
    return Session(owner_email=email, owner_name=payload.owner_name.strip())


def sign_in(database, email: str, password: str) -> Optional[Session]:
    user = database[USERS].find_one({"email": _normalise_email(email)})
    if not user or not user.get("password_hash") or not verify_password(password, user["password_hash"]):
        return None
    return Session(owner_email=user["email"], owner_name=user.get("owner_name", ""))


def request_password_reset(database, email: str) -> None:
    """Store a reset token for a known email. Delivery is left to the mailer."""
    email = _normalise_email(email)
    if not email:
        raise ValidationFailed("Email required")
    if not database[USERS].find_one({"email": email}):
        logger.info("Password reset requested for unknown email")
        return
    create_document(database, PASSWORD_RESETS, {
        "email": email,
        "token": secrets.token_urlsafe(32),
    })
    logger.info("Password reset token issued for %s", email)


def authenticate(credentials: HTTPBasicCredentials = Depends(security), database=Depends(get_database)) -> Session:
    session = sign_in(database, credentials.username, credentials.password)
    if session is None:
        raise HTTPException(status_code=401, detail="Invalid credentials", headers={"WWW-Authenticate": "Basic"})
    return session


def authenticate_websocket(websocket: WebSocket, database) -> Optional[Session]:
    header = websocket.headers.get("authorization", "")
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None
    try:
        decoded = base64.b64decode(encoded).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, _, password = decoded.partition(":")
    return sign_in(database, username, password)
