from app.core.errors import ValidationError
from app.core.mutations import MutationOrchestrator
from app.core.security import CallerIdentity, IdentityResolver, StepUpVerifier
from app.modules.auth.schemas import UserEnvelope, UserPayload, MessageResponse
from app.modules.users.schemas import ProfileUpdate, PasswordChange, AccountDeletion


class UserService:
    def __init__(
        self,
        resolver: IdentityResolver,
        verifier: StepUpVerifier,
        orchestrator: MutationOrchestrator
    ):
        self.resolver = resolver
        self.verifier = verifier
        self.orchestrator = orchestrator

    def update_profile(self, identity: CallerIdentity, profile_data: ProfileUpdate) -> UserEnvelope:
        """Update name fields in user_metadata and mirror them into the profile row"""
        fields = profile_data.model_dump(exclude_none=True)
        if not fields:
            raise ValidationError("first_name or last_name is required")
        outcome = self.orchestrator.update_profile(identity, fields)
        return UserEnvelope(user=UserPayload.from_provider(outcome.results["update_metadata"]))

    def change_password(self, token: str, password_data: PasswordChange) -> MessageResponse:
        """Re-verify the current password, rotate it, then sign out every session"""
        if not password_data.current_password or not password_data.new_password:
            raise ValidationError("Current password and new password are required")
        identity = self.resolver.resolve(token)
        verified = self.verifier.verify(
            identity, password_data.current_password, "Current password is incorrect"
        )
        self.orchestrator.change_password(verified, password_data.new_password)
        return MessageResponse(message="Password updated successfully")

    def delete_account(self, token: str, deletion_data: AccountDeletion) -> MessageResponse:
        """Re-verify the password, delete the profile row, then the auth user"""
        if not deletion_data.password:
            raise ValidationError("Password is required")
        identity = self.resolver.resolve(token)
        verified = self.verifier.verify(identity, deletion_data.password, "Password is incorrect")
        self.orchestrator.delete_account(verified)
        return MessageResponse(message="User deleted successfully")
