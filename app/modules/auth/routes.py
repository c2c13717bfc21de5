from fastapi import APIRouter, Depends, Request
from app.config import settings
from app.core.dependencies import (
    get_auth_provider, get_profile_store, get_current_identity, get_optional_token
)
from app.core.provider import AuthProvider, ProfileStore
from app.core.rate_limit import limiter
from app.core.security import CallerIdentity
from app.modules.auth.schemas import (
    SignUpRequest, SignInRequest, EmailActionRequest,
    AuthSessionResponse, UserEnvelope, MessageResponse
)
from app.modules.auth.service import AuthService
from typing import Optional

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(
    auth_provider: AuthProvider = Depends(get_auth_provider),
    profiles: ProfileStore = Depends(get_profile_store)
) -> AuthService:
    return AuthService(auth_provider, profiles)


@router.post("/signup", response_model=AuthSessionResponse)
@limiter.limit(settings.auth_rate_limit)
def signup(
    request: Request,
    signup_data: SignUpRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user and create their profile row"""
    return service.sign_up(signup_data, origin=request.headers.get("origin"))


@router.post("/resend-confirmation", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
def resend_confirmation(
    request: Request,
    email_data: EmailActionRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Resend the sign-up confirmation email"""
    return service.resend_confirmation(email_data)


@router.post("/signin", response_model=AuthSessionResponse)
@limiter.limit(settings.auth_rate_limit)
def signin(
    request: Request,
    signin_data: SignInRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Sign in with email and password"""
    return service.sign_in(signin_data)


@router.post("/signout", response_model=MessageResponse)
def signout(
    token: Optional[str] = Depends(get_optional_token),
    service: AuthService = Depends(get_auth_service)
):
    """Revoke the presented session, if any"""
    return service.sign_out(token)


@router.post("/reset-password", response_model=MessageResponse)
@limiter.limit(settings.auth_rate_limit)
def reset_password(
    request: Request,
    email_data: EmailActionRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Send a password recovery email"""
    return service.reset_password(email_data)


@router.get("/user", response_model=UserEnvelope)
def get_user(
    identity: CallerIdentity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service)
):
    """Get the user behind the bearer token"""
    return service.get_user(identity)
