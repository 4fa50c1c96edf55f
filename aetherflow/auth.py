from datetime import datetime, timedelta
from jose import jwt, JWTError
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .database import get_db
from .models import Profile

security = HTTPBearer()

myctx = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    """Create an access token"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_profile(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Profile:
    """Get the signed-in profile from the Bearer token"""
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _credentials_error()

    username: str = payload.get("sub")
    if username is None:
        raise _credentials_error()
    if payload.get("type") != "access":
        raise _credentials_error("Invalid token type")

    profile = db.query(Profile).filter(Profile.username == username).first()
    if profile is None or not profile.is_active:
        raise _credentials_error("User not found")
    return profile


def hash_password(password: str) -> str:
    return myctx.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return myctx.verify(plain_password, hashed_password)
