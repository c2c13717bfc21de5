"""
Privileged (service-role) mutations and the ordered plans that sequence them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from app.core.errors import error_for
from app.core.provider import AdminProvider, ProfileStore, ProviderError, ProviderResult
from app.core.security import CallerIdentity, VerifiedIdentity

logger = logging.getLogger(__name__)


def _require_resolved(identity: Any) -> None:
    if not isinstance(identity, (CallerIdentity, VerifiedIdentity)):
        raise TypeError("Privileged operation requires an identity issued by IdentityResolver")


def _require_verified(identity: Any) -> None:
    if not isinstance(identity, VerifiedIdentity):
        raise TypeError("Privileged operation requires an identity issued by StepUpVerifier")


class PrivilegedMutator:
    """State changes made with the service-role key on behalf of a checked caller."""

    def __init__(self, admin: AdminProvider, profiles: ProfileStore):
        self.admin = admin
        self.profiles = profiles

    def update_metadata(self, identity: CallerIdentity, fields: Dict[str, Any]) -> ProviderResult:
        _require_resolved(identity)
        return self.admin.update_user_by_id(identity.id, {"user_metadata": fields})

    def update_profile_row(self, identity: CallerIdentity, fields: Dict[str, Any]) -> ProviderResult:
        _require_resolved(identity)
        return self.profiles.update(identity.id, fields)

    def update_credential(self, verified: VerifiedIdentity, new_password: str) -> ProviderResult:
        _require_verified(verified)
        return self.admin.update_user_by_id(verified.id, {"password": new_password})

    def invalidate_all_sessions(self, verified: VerifiedIdentity) -> ProviderResult[None]:
        _require_verified(verified)
        return self.admin.sign_out(verified.access_token, scope="global")

    def delete_dependent_record(self, verified: VerifiedIdentity) -> ProviderResult:
        _require_verified(verified)
        return self.profiles.delete(verified.id)

    def delete_identity(self, verified: VerifiedIdentity) -> ProviderResult[None]:
        _require_verified(verified)
        return self.admin.delete_user(verified.id)


@dataclass
class MutationStep:
    name: str
    action: Callable[[], ProviderResult]
    # Best-effort steps log their failure and let the plan continue
    required: bool = True


@dataclass
class PlanOutcome:
    plan: str
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    warnings: Dict[str, ProviderError] = field(default_factory=dict)
    failed_step: Optional[str] = None
    error: Optional[ProviderError] = None
    results: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise error_for(self.error, elevated=True)


class MutationPlan:
    """Ordered side-effecting steps. No retries, no rollback of completed steps."""

    def __init__(self, name: str, steps: List[MutationStep]):
        self.name = name
        self.steps = steps

    def run(self) -> PlanOutcome:
        outcome = PlanOutcome(plan=self.name)
        for index, step in enumerate(self.steps):
            result = step.action()
            if result.ok:
                outcome.completed.append(step.name)
                outcome.results[step.name] = result.data
                continue
            if not step.required:
                logger.warning(f"{self.name}: best-effort step {step.name} failed: {result.error.message}")
                outcome.warnings[step.name] = result.error
                continue
            outcome.failed_step = step.name
            outcome.error = result.error
            outcome.skipped = [s.name for s in self.steps[index + 1:]]
            logger.error(
                f"{self.name}: step {step.name} failed ({result.error.kind.value}); "
                f"completed={outcome.completed} skipped={outcome.skipped}"
            )
            break
        return outcome


class MutationOrchestrator:
    def __init__(self, mutator: PrivilegedMutator):
        self.mutator = mutator

    def password_change_plan(self, verified: VerifiedIdentity, new_password: str) -> MutationPlan:
        return MutationPlan("password_change", [
            MutationStep("rotate_credential", lambda: self.mutator.update_credential(verified, new_password)),
            # Rotation already happened; a lingering session is logged, not fatal
            MutationStep("invalidate_sessions", lambda: self.mutator.invalidate_all_sessions(verified), required=False),
        ])

    def account_deletion_plan(self, verified: VerifiedIdentity) -> MutationPlan:
        # Profile row first: deleting the identity first would orphan the row
        return MutationPlan("account_deletion", [
            MutationStep("delete_profile_row", lambda: self.mutator.delete_dependent_record(verified)),
            MutationStep("delete_identity", lambda: self.mutator.delete_identity(verified)),
        ])

    def profile_update_plan(self, identity: CallerIdentity, fields: Dict[str, Any]) -> MutationPlan:
        return MutationPlan("profile_update", [
            MutationStep("update_metadata", lambda: self.mutator.update_metadata(identity, fields)),
            MutationStep("update_profile_row", lambda: self.mutator.update_profile_row(identity, fields), required=False),
        ])

    def change_password(self, verified: VerifiedIdentity, new_password: str) -> PlanOutcome:
        outcome = self.password_change_plan(verified, new_password).run()
        outcome.raise_for_error()
        return outcome

    def delete_account(self, verified: VerifiedIdentity) -> PlanOutcome:
        outcome = self.account_deletion_plan(verified).run()
        if outcome.failed_step == "delete_identity":
            logger.error(f"Profile row for user {verified.id} removed but identity deletion failed; manual cleanup needed")
        outcome.raise_for_error()
        return outcome

    def update_profile(self, identity: CallerIdentity, fields: Dict[str, Any]) -> PlanOutcome:
        outcome = self.profile_update_plan(identity, fields).run()
        outcome.raise_for_error()
        return outcome
