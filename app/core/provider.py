"""
Capability layer over supabase-py.

Every call into the provider goes through ``call_provider`` and comes back as a
``ProviderResult``: either ``data`` or a classified ``ProviderError``. Nothing
raised by the SDK escapes this module, so callers branch on ``result.error``
and map the error kind to an HTTP status in one place (app.core.errors).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from supabase import (
    Client,
    AuthApiError,
    AuthError,
    AuthInvalidCredentialsError,
    AuthSessionMissingError,
    AuthWeakPasswordError,
    PostgrestAPIError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# GoTrue error codes that mean "the presented credential is not good"
_UNAUTHORIZED_CODES = {
    "invalid_credentials",
    "bad_jwt",
    "no_authorization",
    "not_admin",
    "session_not_found",
    "session_expired",
    "refresh_token_not_found",
    "refresh_token_already_used",
    "email_not_confirmed",
}
_NOT_FOUND_CODES = {"user_not_found", "identity_not_found"}
# PostgREST: .single() matched no rows
_POSTGREST_NO_ROWS = "PGRST116"


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"
    DOWNSTREAM = "downstream"


@dataclass(frozen=True)
class ProviderError:
    kind: ErrorKind
    message: str
    status: Optional[int] = None
    code: Optional[str] = None


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    data: Optional[T] = None
    error: Optional[ProviderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "ProviderResult[T]":
        return cls(error=ProviderError(kind=kind, message=message))


def _kind_for(status: Optional[int], code: Optional[str]) -> ErrorKind:
    if code in _UNAUTHORIZED_CODES or status in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if code in _NOT_FOUND_CODES or status == 404:
        return ErrorKind.NOT_FOUND
    if status in (400, 422):
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.DOWNSTREAM


def classify_exception(exc: Exception) -> ProviderError:
    """Turn an SDK exception into a ProviderError."""
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    if isinstance(exc, AuthApiError):
        code = getattr(exc, "code", None)
        return ProviderError(_kind_for(exc.status, code), message, exc.status, code)
    if isinstance(exc, AuthSessionMissingError):
        return ProviderError(ErrorKind.UNAUTHORIZED, message, getattr(exc, "status", None))
    if isinstance(exc, (AuthInvalidCredentialsError, AuthWeakPasswordError)):
        return ProviderError(ErrorKind.INVALID_REQUEST, message, getattr(exc, "status", None))
    if isinstance(exc, AuthError):
        # Retryable/unknown auth errors: transport problems or unparseable responses
        return ProviderError(ErrorKind.DOWNSTREAM, message, getattr(exc, "status", None))
    if isinstance(exc, PostgrestAPIError):
        code = getattr(exc, "code", None)
        if code == _POSTGREST_NO_ROWS:
            return ProviderError(ErrorKind.NOT_FOUND, message, code=code)
        return ProviderError(ErrorKind.DOWNSTREAM, message, code=code)
    return ProviderError(ErrorKind.DOWNSTREAM, message)


def call_provider(operation: str, fn: Callable[[], T]) -> ProviderResult[T]:
    try:
        return ProviderResult(data=fn())
    except Exception as e:
        error = classify_exception(e)
        logger.warning(f"Provider call {operation} failed ({error.kind.value}): {error.message}")
        return ProviderResult(error=error)


class AuthProvider:
    """Public-scope (anon key) auth capabilities."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: Dict[str, Any],
        redirect_to: Optional[str] = None
    ) -> ProviderResult:
        options: Dict[str, Any] = {"data": metadata}
        if redirect_to:
            options["email_redirect_to"] = redirect_to
        return call_provider("sign_up", lambda: self.supabase.auth.sign_up({
            "email": email,
            "password": password,
            "options": options
        }))

    def sign_in_with_password(self, email: str, password: str) -> ProviderResult:
        return call_provider("sign_in_with_password", lambda: self.supabase.auth.sign_in_with_password({
            "email": email,
            "password": password
        }))

    def sign_out(self, token: Optional[str] = None) -> ProviderResult[None]:
        """Revoke the session behind ``token``; without a token there is nothing to revoke."""
        if not token:
            return ProviderResult()
        # POST /logout authenticates with the caller's own JWT; the anon key is only the apikey header
        return call_provider("sign_out", lambda: self.supabase.auth.admin.sign_out(token, "local"))

    def resend_signup_confirmation(self, email: str, redirect_to: Optional[str] = None) -> ProviderResult:
        credentials: Dict[str, Any] = {"type": "signup", "email": email}
        if redirect_to:
            credentials["options"] = {"email_redirect_to": redirect_to}
        return call_provider("resend", lambda: self.supabase.auth.resend(credentials))

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> ProviderResult[None]:
        options = {"redirect_to": redirect_to} if redirect_to else {}
        return call_provider(
            "reset_password_for_email",
            lambda: self.supabase.auth.reset_password_for_email(email, options)
        )

    def get_user(self, token: str) -> ProviderResult:
        """Introspect ``token``. The result's data is the provider's User object."""
        result = call_provider("get_user", lambda: self.supabase.auth.get_user(token))
        if not result.ok:
            return result
        user = getattr(result.data, "user", None)
        if user is None:
            return ProviderResult.failure(ErrorKind.UNAUTHORIZED, "Invalid or expired token")
        return ProviderResult(data=user)


class AdminProvider:
    """Service-role auth capabilities. Constructed only by app.core.dependencies."""

    def __init__(self, service_client: Client):
        self.supabase = service_client

    def update_user_by_id(self, user_id: str, attributes: Dict[str, Any]) -> ProviderResult:
        result = call_provider(
            "admin.update_user_by_id",
            lambda: self.supabase.auth.admin.update_user_by_id(user_id, attributes)
        )
        if not result.ok:
            return result
        user = getattr(result.data, "user", None)
        if user is None:
            return ProviderResult.failure(ErrorKind.NOT_FOUND, "User not found")
        return ProviderResult(data=user)

    def delete_user(self, user_id: str) -> ProviderResult[None]:
        return call_provider("admin.delete_user", lambda: self.supabase.auth.admin.delete_user(user_id))

    def sign_out(self, token: str, scope: str = "global") -> ProviderResult[None]:
        return call_provider("admin.sign_out", lambda: self.supabase.auth.admin.sign_out(token, scope))


class ProfileStore:
    """Rows of the denormalized profile table, keyed by auth user id."""

    def __init__(self, supabase: Client, table: str):
        self.supabase = supabase
        self.table = table

    def insert(self, row: Dict[str, Any]) -> ProviderResult:
        def run():
            return self.supabase.table(self.table)\
                .insert(row)\
                .execute()
        return call_provider(f"{self.table}.insert", run)

    def update(self, user_id: str, fields: Dict[str, Any]) -> ProviderResult:
        def run():
            return self.supabase.table(self.table)\
                .update(fields)\
                .eq("id", user_id)\
                .execute()
        return call_provider(f"{self.table}.update", run)

    def delete(self, user_id: str) -> ProviderResult:
        def run():
            return self.supabase.table(self.table)\
                .delete()\
                .eq("id", user_id)\
                .execute()
        return call_provider(f"{self.table}.delete", run)
