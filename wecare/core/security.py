from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext

from wecare.core.config import settings
from wecare.core.states import Role

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of one request, passed explicitly to services."""
    user_id: str
    role: Role
    email: str = ""


def hash_password(password: str) -> str:
    return pwd_context.hash((password or "")[:72])

def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify((password or "")[:72], hashed)
    except ValueError:
        # empty or unknown hash format
        return False

def create_token(payload: Dict[str, Any], days: int | None = None) -> str:
    payload = dict(payload)
    ttl = days if days is not None else settings.access_ttl_days
    payload["exp"] = datetime.now(timezone.utc) + timedelta(days=ttl)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)

def token_for(user: dict) -> str:
    return create_token({"sub": user["id"], "email": user["email"], "role": user["role"]})

def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")

async def get_principal(token: str = Depends(oauth2_scheme)) -> Principal:
    data = decode_token(token)
    try:
        role = Role(data.get("role"))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token")
    sub = data.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Invalid token")
    return Principal(user_id=str(sub), role=role, email=data.get("email", ""))
