"""
Caller authentication: bearer token extraction, identity resolution and
step-up verification.

Identities are only ever issued by this module. ``CallerIdentity`` comes out of
``IdentityResolver.resolve`` and ``VerifiedIdentity`` out of
``StepUpVerifier.verify``; constructing either anywhere else raises, which is
what keeps a raw caller token away from the service-role code path in
app.core.mutations.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from supabase import Client

from app.core.errors import InvalidToken, MissingToken, SecretMismatch
from app.core.provider import AuthProvider

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(headers: Mapping[str, str]) -> str:
    """Return the token from ``Authorization: Bearer <token>`` or raise MissingToken."""
    authorization: Optional[str] = headers.get("authorization") or headers.get("Authorization")
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise MissingToken()
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise MissingToken()
    return token


def _issue(cls, **values):
    # Bypasses __init__, so neither direct construction nor dataclasses.replace can produce one
    instance = object.__new__(cls)
    for name, value in values.items():
        object.__setattr__(instance, name, value)
    return instance


@dataclass(frozen=True)
class CallerIdentity:
    id: str
    email: str
    access_token: str = field(repr=False)
    user: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        raise TypeError("CallerIdentity can only be issued by IdentityResolver")


@dataclass(frozen=True)
class VerifiedIdentity:
    identity: CallerIdentity

    def __post_init__(self):
        raise TypeError("VerifiedIdentity can only be issued by StepUpVerifier")

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def email(self) -> str:
        return self.identity.email

    @property
    def access_token(self) -> str:
        return self.identity.access_token


class IdentityResolver:
    def __init__(self, auth_provider: AuthProvider):
        self.auth_provider = auth_provider

    def resolve(self, token: str) -> CallerIdentity:
        """Exchange a bearer token for the provider's view of the caller.

        Any provider failure is an authorization failure for the caller, whatever
        the provider's reason (expired, revoked, malformed, unreachable).
        """
        result = self.auth_provider.get_user(token)
        if not result.ok:
            logger.info(f"Token rejected by provider ({result.error.kind.value})")
            raise InvalidToken()
        user = result.data
        return _issue(
            CallerIdentity,
            id=user.id,
            email=user.email or "",
            access_token=token,
            user=user,
        )


class StepUpVerifier:
    """Re-checks a caller's current password by signing in with it.

    The gateway never sees a password hash, so the provider's own sign-in path
    is the check. Each verification uses a throwaway client, and the session the
    sign-in creates is revoked straight away so a failed plan afterwards leaves
    no extra live session behind.
    """

    def __init__(self, client_factory: Callable[[], Client]):
        self.client_factory = client_factory

    def verify(
        self,
        identity: CallerIdentity,
        secret: str,
        failure_message: Optional[str] = None
    ) -> VerifiedIdentity:
        if not isinstance(identity, CallerIdentity):
            raise TypeError("Step-up verification needs a resolved CallerIdentity")
        if not identity.email or not secret:
            raise SecretMismatch(failure_message)
        provider = AuthProvider(self.client_factory())
        result = provider.sign_in_with_password(identity.email, secret)
        if not result.ok:
            logger.info(f"Step-up verification failed for user {identity.id} ({result.error.kind.value})")
            raise SecretMismatch(failure_message)
        self._release_session(provider, result.data, identity)
        signed_in = getattr(result.data, "user", None)
        if signed_in is None or signed_in.id != identity.id:
            logger.warning(f"Step-up sign-in for user {identity.id} returned a different identity")
            raise SecretMismatch(failure_message)
        return _issue(VerifiedIdentity, identity=identity)

    @staticmethod
    def _release_session(provider: AuthProvider, response: Any, identity: CallerIdentity) -> None:
        session = getattr(response, "session", None)
        access_token = getattr(session, "access_token", None)
        if not access_token:
            return
        revoked = provider.sign_out(access_token)
        if not revoked.ok:
            logger.warning(
                f"Could not revoke step-up session for user {identity.id}: {revoked.error.message}"
            )
