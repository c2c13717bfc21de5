from fastapi import APIRouter, Depends
from app.core.dependencies import (
    get_current_identity, get_current_token, get_identity_resolver,
    get_step_up_verifier, get_mutation_orchestrator
)
from app.core.mutations import MutationOrchestrator
from app.core.security import CallerIdentity, IdentityResolver, StepUpVerifier
from app.modules.auth.schemas import UserEnvelope, MessageResponse
from app.modules.users.schemas import ProfileUpdate, PasswordChange, AccountDeletion
from app.modules.users.service import UserService

router = APIRouter(prefix="/user", tags=["users"])


def get_user_service(
    resolver: IdentityResolver = Depends(get_identity_resolver),
    verifier: StepUpVerifier = Depends(get_step_up_verifier),
    orchestrator: MutationOrchestrator = Depends(get_mutation_orchestrator)
) -> UserService:
    return UserService(resolver, verifier, orchestrator)


@router.put("/profile", response_model=UserEnvelope)
def update_profile(
    profile_data: ProfileUpdate,
    identity: CallerIdentity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service)
):
    """Update first/last name of the calling user"""
    return service.update_profile(identity, profile_data)


@router.put("/password", response_model=MessageResponse)
def change_password(
    password_data: PasswordChange,
    token: str = Depends(get_current_token),
    service: UserService = Depends(get_user_service)
):
    """Change password (requires the current password)"""
    return service.change_password(token, password_data)


@router.delete("", response_model=MessageResponse)
def delete_user(
    deletion_data: AccountDeletion,
    token: str = Depends(get_current_token),
    service: UserService = Depends(get_user_service)
):
    """Delete the calling user's account (requires the password)"""
    return service.delete_account(token, deletion_data)
