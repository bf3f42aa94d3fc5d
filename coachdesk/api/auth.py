"""Anonymous and custom-token sign-in, issuing stateless JWTs."""
import asyncio
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from coachdesk.api.deps import (
    CurrentCoach,
    Identity,
    create_access_token,
    create_custom_token,
    create_refresh_token,
    decode_token,
)
from coachdesk.config import settings
from coachdesk.services.firebase import verify_id_token

router = APIRouter()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    uid: str


class SignInRequest(BaseModel):
    token: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: str


class CustomTokenRequest(BaseModel):
    uid: str


def _tokens(identity: Identity) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(identity),
        refresh_token=create_refresh_token(identity),
        uid=identity.uid,
    )


async def resolve_custom_token(token: str) -> Identity:
    """Firebase ID token when Firebase is configured, else a token from /custom-token."""
    if settings.firebase_credentials_path:
        uid = await asyncio.to_thread(verify_id_token, token)
        return Identity(uid=uid, provider="firebase")
    identity = decode_token(token, "custom")
    return Identity(uid=identity.uid, provider="custom")


@router.post("/sign-in", response_model=TokenResponse)
async def sign_in(req: SignInRequest):
    """Sign in with a custom token if one is given, anonymously otherwise."""
    if req.token:
        identity = await resolve_custom_token(req.token)
    else:
        identity = Identity(uid=uuid.uuid4().hex, provider="anonymous")
    return _tokens(identity)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(req: RefreshRequest):
    return _tokens(decode_token(req.refresh_token, "refresh"))


@router.post("/custom-token")
async def custom_token(req: CustomTokenRequest):
    """Mint a sign-in token for an existing coach id (debug deployments only)."""
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not found")
    return {"token": create_custom_token(req.uid)}


@router.get("/me")
async def me(coach: CurrentCoach):
    return {"uid": coach.uid, "provider": coach.provider, "app_id": settings.app_id}
