from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, List
from jose import jwt, JWTError
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel, Field
from framework.config import settings
from framework.exceptions.handler import BusinessException

# 1. Password and client secret hashing (BCrypt)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# 2. OAuth2 scheme; token URL is only used for the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


class Scope(str, Enum):
    """OAuth scopes a token may carry."""
    AUTHENTICATE = "/authenticate"
    READ_PUBLIC = "/read-public"
    READ_LIMITED = "/read-limited"
    ACTIVITIES_UPDATE = "/activities/update"
    PERSON_UPDATE = "/person/update"
    OPENID = "openid"


# Scopes of a session token issued to the record owner at login
USER_TOKEN_SCOPES = [
    Scope.AUTHENTICATE.value,
    Scope.READ_LIMITED.value,
    Scope.ACTIVITIES_UPDATE.value,
    Scope.PERSON_UPDATE.value,
]

# --- Core models ---

class CurrentUser(BaseModel):
    """Caller context: the record owner, or a member client acting on a record it was granted."""
    orcid: str
    client_id: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)

    @property
    def is_api_request(self) -> bool:
        return self.client_id is not None

    def is_owner(self, orcid: str) -> bool:
        return self.client_id is None and self.orcid == orcid

    def has_scope(self, scope: Scope) -> bool:
        return scope.value in self.scopes

    def can_act_on(self, orcid: str, scope: Scope) -> bool:
        return self.orcid == orcid and self.has_scope(scope)

# --- Helpers ---

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm="HS256")
    return encoded_jwt

def require_record_access(user: CurrentUser, orcid: str, scope: Scope) -> None:
    """Raise unless the caller may perform an action needing `scope` on record `orcid`."""
    if not user.can_act_on(orcid, scope):
        raise BusinessException(
            f"Insufficient permissions on record {orcid}: {scope.value} required",
            code=403
        )

def require_owner(user: CurrentUser, orcid: str) -> None:
    """Raise unless the caller is the record owner using their own session."""
    if not user.is_owner(orcid):
        raise BusinessException("Only the record owner can perform this action", code=403)

# --- FastAPI dependencies ---

def get_token_from_request(
    request: Request,
    token_from_header: Optional[str] = Depends(oauth2_scheme)
) -> Optional[str]:
    """
    Get token from request: prefer cookie, then Authorization header.
    """
    token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME)

    if not token and token_from_header:
        token = token_from_header

    return token

def _decode_token(token: str) -> CurrentUser:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
    except JWTError:
        raise credentials_exception

    orcid = payload.get("sub")
    if orcid is None:
        raise credentials_exception
    scopes = payload.get("scopes")
    if not isinstance(scopes, list):
        scopes = []

    return CurrentUser(orcid=orcid, client_id=payload.get("client_id"), scopes=scopes)

def get_current_user(
    token: Optional[str] = Depends(get_token_from_request)
) -> CurrentUser:
    """
    Dependency: validate token and extract caller. Use in router as user: CurrentUser = Depends(get_current_user).
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _decode_token(token)

def get_optional_user(
    token: Optional[str] = Depends(get_token_from_request)
) -> Optional[CurrentUser]:
    """Dependency for public reads: None for anonymous callers, 401 for a bad token."""
    if not token:
        return None
    return _decode_token(token)
