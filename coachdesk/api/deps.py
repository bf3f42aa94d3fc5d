"""Shared dependencies: JWT identity and the signed-in coach's student store."""
from datetime import datetime, timedelta
from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from coachdesk.config import settings
from coachdesk.errors import AuthError
from coachdesk.services.mutations import StudentMutations
from coachdesk.services.repository import StudentRepository
from coachdesk.services.store import StudentStore, get_store

security = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    """Who is signed in. ``uid`` scopes the student collection."""

    uid: str
    provider: str  # anonymous, custom, firebase


def _encode(claims: dict, expires_in: timedelta) -> str:
    to_encode = {**claims, "exp": datetime.utcnow() + expires_in}
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(identity: Identity) -> str:
    return _encode(
        {"sub": identity.uid, "provider": identity.provider, "type": "access"},
        timedelta(minutes=settings.jwt_access_token_expire_minutes),
    )


def create_refresh_token(identity: Identity) -> str:
    return _encode(
        {"sub": identity.uid, "provider": identity.provider, "type": "refresh"},
        timedelta(days=settings.jwt_refresh_token_expire_days),
    )


def create_custom_token(uid: str) -> str:
    """Long-lived sign-in token that always resolves to ``uid``."""
    return _encode({"sub": uid, "type": "custom"}, timedelta(days=365))


def decode_token(token: str, token_type: str) -> Identity:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthError("Invalid or expired token")
    if payload.get("type") != token_type:
        raise AuthError("Invalid token type")
    uid = payload.get("sub")
    if not uid:
        raise AuthError("Invalid token")
    return Identity(uid=uid, provider=payload.get("provider", "custom"))


async def get_current_coach(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Identity:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_token(credentials.credentials, "access")


def get_store_factory() -> Callable[[str], StudentStore]:
    return get_store


async def get_repository(
    coach: Annotated[Identity, Depends(get_current_coach)],
    store_factory: Annotated[Callable[[str], StudentStore], Depends(get_store_factory)],
) -> StudentRepository:
    """Repository primed with a fresh snapshot for this request."""
    repository = StudentRepository(store_factory(coach.uid))
    await repository.load()
    return repository


async def get_mutations(
    repository: Annotated[StudentRepository, Depends(get_repository)],
) -> StudentMutations:
    return StudentMutations(repository)


# Type aliases for route injection
CurrentCoach = Annotated[Identity, Depends(get_current_coach)]
Repository = Annotated[StudentRepository, Depends(get_repository)]
Mutations = Annotated[StudentMutations, Depends(get_mutations)]
StoreFactory = Annotated[Callable[[str], StudentStore], Depends(get_store_factory)]
