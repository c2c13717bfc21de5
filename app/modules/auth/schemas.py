from pydantic import BaseModel, EmailStr
from typing import Any, Dict, Optional
from datetime import datetime


class SignUpRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class SignInRequest(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None


class EmailActionRequest(BaseModel):
    """Body of resend-confirmation and reset-password"""
    email: Optional[EmailStr] = None
    redirect_url: Optional[str] = None


class UserPayload(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = {}
    app_metadata: Dict[str, Any] = {}
    email_confirmed_at: Optional[datetime] = None
    last_sign_in_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_provider(cls, user: Any) -> "UserPayload":
        return cls(
            id=user.id,
            email=getattr(user, "email", None),
            user_metadata=getattr(user, "user_metadata", None) or {},
            app_metadata=getattr(user, "app_metadata", None) or {},
            email_confirmed_at=getattr(user, "email_confirmed_at", None),
            last_sign_in_at=getattr(user, "last_sign_in_at", None),
            created_at=getattr(user, "created_at", None),
            updated_at=getattr(user, "updated_at", None),
        )


class SessionPayload(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None

    @classmethod
    def from_provider(cls, session: Any) -> "SessionPayload":
        return cls(
            access_token=session.access_token,
            refresh_token=getattr(session, "refresh_token", None),
            token_type=getattr(session, "token_type", None) or "bearer",
            expires_in=getattr(session, "expires_in", None),
            expires_at=getattr(session, "expires_at", None),
        )


class AuthSessionResponse(BaseModel):
    """Sign-up and sign-in result. session is None until the email is confirmed."""
    user: Optional[UserPayload] = None
    session: Optional[SessionPayload] = None

    @classmethod
    def from_provider(cls, auth_response: Any) -> "AuthSessionResponse":
        user = getattr(auth_response, "user", None)
        session = getattr(auth_response, "session", None)
        return cls(
            user=UserPayload.from_provider(user) if user else None,
            session=SessionPayload.from_provider(session) if session else None,
        )


class UserEnvelope(BaseModel):
    user: UserPayload


class MessageResponse(BaseModel):
    message: str
