import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Header, HTTPException, Request, status
from jose import jwt, JWTError
from passlib.context import CryptContext

load_dotenv(dotenv_path=Path(__file__).parent.parent.parent / ".env")

logger = logging.getLogger(__name__)

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

PREFLIGHT_METHODS = {"OPTIONS"}

pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, decoded from a verified bearer token."""

    user_id: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {"sub": user_id, "email": email, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _auth_failed() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication failed!",
        headers={"WWW-Authenticate": "Bearer"},
    )


def authenticate_request(method: str, authorization: Optional[str]) -> Optional[AuthContext]:
    """
    Verify an ``Authorization: Bearer <token>`` header.

    Preflight requests pass through and yield ``None``. Every other failure
    (missing header, wrong scheme, empty token, bad signature, expired token,
    no subject claim) raises a 401 ``HTTPException``.
    """
    if method.upper() in PREFLIGHT_METHODS:
        return None

    if not authorization:
        logger.info("[AUTH] Authorization header missing")
        raise _auth_failed()

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        logger.info("[AUTH] Malformed Authorization header")
        raise _auth_failed()

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.info(f"[AUTH] Token rejected: {e}")
        raise _auth_failed()

    user_id = payload.get("sub")
    if not user_id:
        logger.info("[AUTH] Token has no subject claim")
        raise _auth_failed()

    return AuthContext(user_id=str(user_id))


async def get_auth_context(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> AuthContext:
    """
    Authorization: Bearer <token>

    CORSMiddleware answers preflights before routing, so protected routes
    never see one. Should one arrive anyway it carries no identity and is
    rejected like any other unauthenticated request.
    """
    context = authenticate_request(request.method, authorization)
    if context is None:
        raise _auth_failed()
    return context
