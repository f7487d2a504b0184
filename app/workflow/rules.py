"""
Regroupement immuable des tables de transition et d'autorisation,
injecté dans l'orchestrateur.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Mapping

from app.core.errors import ValidationException
from app.models.intervention import InterventionStatus
from app.models.user import User, UserRole
from app.workflow import permissions, transitions


@dataclass(frozen=True)
class TransitionRules:
    """Règles de workflow : légalité d'abord, éligibilité ensuite"""

    transitions: Mapping[InterventionStatus, FrozenSet[InterventionStatus]] = field(
        default_factory=lambda: transitions.VALID_TRANSITIONS
    )
    role_permissions: Mapping[InterventionStatus, FrozenSet[UserRole]] = field(
        default_factory=lambda: permissions.TRANSITION_PERMISSIONS
    )

    def can_transition(self, current: InterventionStatus, target: InterventionStatus) -> bool:
        return InterventionStatus(target) in self.transitions.get(InterventionStatus(current), frozenset())

    def validate_transition(self, current: InterventionStatus, target: InterventionStatus) -> None:
        current = InterventionStatus(current)
        target = InterventionStatus(target)
        if not self.can_transition(current, target):
            raise ValidationException(
                f"Invalid status transition from '{current.value}' to '{target.value}'",
                field="status",
                details={"from": current.value, "to": target.value}
            )

    def is_terminal(self, status: InterventionStatus) -> bool:
        return not self.transitions.get(InterventionStatus(status))

    def check_actor(
        self,
        target: InterventionStatus,
        user: User,
        load_assignees: permissions.AssigneeLoader
    ) -> None:
        permissions.check_actor(target, user, load_assignees, self.role_permissions)


DEFAULT_RULES = TransitionRules()
