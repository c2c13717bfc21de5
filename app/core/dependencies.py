"""
Core dependencies for route protection and privileged operations
"""

from fastapi import Depends, Request, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.core.errors import MissingToken
from app.core.mutations import MutationOrchestrator, PrivilegedMutator
from app.core.provider import AdminProvider, AuthProvider, ProfileStore
from app.core.security import (
    CallerIdentity, IdentityResolver, StepUpVerifier, extract_bearer_token
)
from app.database.supabase_client import (
    get_supabase, get_service_supabase, get_session_client_factory
)
from supabase import Client
from typing import Callable, Optional

# auto_error=False: a missing header is reported by extract_bearer_token as 401, not 403
security = HTTPBearer(auto_error=False)


def get_auth_provider(supabase: Client = Depends(get_supabase)) -> AuthProvider:
    return AuthProvider(supabase)


def get_profile_store(supabase: Client = Depends(get_supabase)) -> ProfileStore:
    return ProfileStore(supabase, settings.profile_table)


def get_identity_resolver(auth_provider: AuthProvider = Depends(get_auth_provider)) -> IdentityResolver:
    return IdentityResolver(auth_provider)


def get_step_up_verifier(
    client_factory: Callable[[], Client] = Depends(get_session_client_factory)
) -> StepUpVerifier:
    return StepUpVerifier(client_factory)


def get_current_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Extract bearer token from Authorization header"""
    return extract_bearer_token(request.headers)


def get_optional_token(request: Request) -> Optional[str]:
    """Bearer token if one was sent; used by routes that work either way"""
    try:
        return extract_bearer_token(request.headers)
    except MissingToken:
        return None


def get_current_identity(
    token: str = Depends(get_current_token),
    resolver: IdentityResolver = Depends(get_identity_resolver)
) -> CallerIdentity:
    """Resolve the caller from the bearer token; 401 on any provider failure"""
    return resolver.resolve(token)


def get_mutation_orchestrator(
    service_client: Client = Depends(get_service_supabase)
) -> MutationOrchestrator:
    """Service-role plumbing. Operations on it still demand identities from app.core.security."""
    mutator = PrivilegedMutator(
        AdminProvider(service_client),
        ProfileStore(service_client, settings.profile_table),
    )
    return MutationOrchestrator(mutator)
