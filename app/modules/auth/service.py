import logging
from typing import Optional

from app.config.settings import settings
from app.core.errors import ValidationError, error_for
from app.core.provider import AuthProvider, ErrorKind, ProfileStore, ProviderResult
from app.core.security import CallerIdentity
from app.modules.auth.schemas import (
    SignUpRequest, SignInRequest, EmailActionRequest,
    AuthSessionResponse, UserEnvelope, UserPayload, MessageResponse
)

logger = logging.getLogger(__name__)


def _raise_for(result: ProviderResult) -> None:
    if not result.ok:
        raise error_for(result.error)


class AuthService:
    def __init__(self, auth_provider: AuthProvider, profiles: ProfileStore):
        self.auth_provider = auth_provider
        self.profiles = profiles

    def sign_up(self, data: SignUpRequest, origin: Optional[str] = None) -> AuthSessionResponse:
        """Register a user, then create their profile row"""
        if not data.email or not data.password:
            raise ValidationError("Email and password are required")

        redirect_to = f"{origin.rstrip('/')}{settings.email_redirect_path}" if origin else None
        result = self.auth_provider.sign_up(
            data.email,
            data.password,
            {"first_name": data.first_name, "last_name": data.last_name},
            redirect_to=redirect_to
        )
        _raise_for(result)

        user = getattr(result.data, "user", None)
        if user is not None:
            profile = self.profiles.insert({
                "id": user.id,
                "first_name": data.first_name,
                "last_name": data.last_name,
                "email_verified": False
            })
            if not profile.ok:
                # Auth user exists either way; the row can be recreated later
                logger.warning(f"Profile row for new user {user.id} not created: {profile.error.message}")

        return AuthSessionResponse.from_provider(result.data)

    def sign_in(self, data: SignInRequest) -> AuthSessionResponse:
        if not data.email or not data.password:
            raise ValidationError("Email and password are required")
        result = self.auth_provider.sign_in_with_password(data.email, data.password)
        _raise_for(result)
        return AuthSessionResponse.from_provider(result.data)

    def sign_out(self, token: Optional[str]) -> MessageResponse:
        """Revoke the caller's session. A session that is already gone counts as signed out."""
        result = self.auth_provider.sign_out(token)
        if not result.ok and result.error.kind not in (ErrorKind.UNAUTHORIZED, ErrorKind.NOT_FOUND):
            raise error_for(result.error)
        return MessageResponse(message="Signed out successfully")

    def resend_confirmation(self, data: EmailActionRequest) -> MessageResponse:
        if not data.email:
            raise ValidationError("Email is required")
        _raise_for(self.auth_provider.resend_signup_confirmation(data.email, data.redirect_url))
        return MessageResponse(message="Confirmation email sent")

    def reset_password(self, data: EmailActionRequest) -> MessageResponse:
        if not data.email:
            raise ValidationError("Email is required")
        _raise_for(self.auth_provider.reset_password_for_email(data.email, data.redirect_url))
        return MessageResponse(message="Password reset email sent")

    def get_user(self, identity: CallerIdentity) -> UserEnvelope:
        return UserEnvelope(user=UserPayload.from_provider(identity.user))
