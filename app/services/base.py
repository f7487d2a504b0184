"""
Socle commun aux services du workflow : accès aux CRUD, chargement des
entités, conversion des erreurs et effets secondaires au mieux.
"""

from typing import Any, Callable, Dict, List, Optional
from supabase import Client
import logging

from app.core.errors import NotFoundException, ServiceResult, handle_error
from app.crud import (
    get_activity_log_crud, get_assignment_crud, get_conversation_crud,
    get_intervention_crud, get_quote_crud, get_time_slot_crud, get_user_crud
)
from app.models import ActivityLogCreate, AssignmentRole, Intervention, User, UserRole
from app.services.email_service import EmailNotificationService
from app.services.notification_service import NotificationService
from app.workflow import DEFAULT_RULES, TransitionRules, best_effort
from app.workflow.permissions import AssigneeLoader

logger = logging.getLogger(__name__)


class WorkflowService:
    """Base des services : une instance par requête"""

    def __init__(
        self,
        db: Client,
        rules: TransitionRules = DEFAULT_RULES,
        notifications: Optional[NotificationService] = None,
        emails: Optional[EmailNotificationService] = None
    ):
        self.db = db
        self.rules = rules
        self.notifications = notifications or NotificationService(db)
        self.emails = emails or EmailNotificationService(api_key=None, sender="", app_url="")

        self.interventions = get_intervention_crud(db)
        self.assignments = get_assignment_crud(db)
        self.slots = get_time_slot_crud(db)
        self.quotes = get_quote_crud(db)
        self.users = get_user_crud(db)
        self.activity = get_activity_log_crud(db)
        self.conversations = get_conversation_crud(db)

    # ========================================
    # Exécution
    # ========================================

    @staticmethod
    def _execute(context: str, operation: Callable[[], Any]) -> ServiceResult:
        """Exécute une opération et convertit toute exception en résultat structuré"""
        try:
            return ServiceResult.ok(operation())
        except Exception as e:
            return ServiceResult.fail(handle_error(e, context))

    # ========================================
    # Chargement
    # ========================================

    def _require_user(self, user_id: str) -> User:
        user = self.users.get_by_id(user_id)
        if not user:
            raise NotFoundException("User", user_id)
        return user

    def _require_intervention(self, intervention_id: str) -> Intervention:
        intervention = self.interventions.get_by_id(intervention_id)
        if not intervention:
            raise NotFoundException("Intervention", intervention_id)
        return intervention

    def _assignee_loader(self, intervention_id: str) -> AssigneeLoader:
        """Chargement paresseux : aucune lecture tant qu'un contrôle n'en a pas besoin"""
        return lambda role: self.assignments.user_ids(intervention_id, role)

    def _assigned_users(self, intervention_id: str, role: AssignmentRole) -> List[User]:
        return self.users.get_by_ids(self.assignments.user_ids(intervention_id, role))

    def _tenants(self, intervention: Intervention) -> List[User]:
        return self._assigned_users(intervention.id, AssignmentRole.locataire)

    def _providers(self, intervention: Intervention) -> List[User]:
        return self._assigned_users(intervention.id, AssignmentRole.prestataire)

    def _managers(self, intervention: Intervention) -> List[User]:
        """Gestionnaires affectés, à défaut ceux de l'équipe"""
        assigned = self._assigned_users(intervention.id, AssignmentRole.gestionnaire)
        if assigned:
            return assigned
        return self.users.get_team_members(intervention.team_id, [UserRole.GESTIONNAIRE])

    def _is_participant(self, user: User, intervention: Intervention) -> bool:
        if user.role == UserRole.ADMIN:
            return True
        if user.is_manager and user.team_id == intervention.team_id:
            return True
        return any(a.user_id == user.id for a in self.assignments.list_by_intervention(intervention.id))

    # ========================================
    # Effets secondaires (au mieux)
    # ========================================

    def _log_activity(
        self,
        action: str,
        intervention_id: str,
        user_id: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> bool:
        return best_effort(
            f"activity_log:{action}",
            self.activity.append,
            ActivityLogCreate(
                action=action,
                intervention_id=intervention_id,
                user_id=user_id,
                metadata=metadata or {}
            )
        )

    def _notify_users(
        self,
        label: str,
        intervention: Intervention,
        actor: User,
        user_ids: List[str],
        title: str,
        message: str,
        type: str = "status_change"
    ) -> bool:
        return best_effort(
            f"notification:{label}",
            self.notifications.notify_users,
            user_ids,
            exclude=actor.id,
            type=type,
            title=title,
            message=message,
            team_id=intervention.team_id,
            intervention_id=intervention.id,
            created_by=actor.id
        )

    def _notify_roles(
        self,
        label: str,
        intervention: Intervention,
        actor: User,
        roles: List[UserRole],
        title: str,
        message: str,
        type: str = "status_change"
    ) -> bool:
        return best_effort(
            f"notification:{label}",
            self.notifications.notify_roles,
            roles,
            type=type,
            title=title,
            message=message,
            team_id=intervention.team_id,
            intervention_id=intervention.id,
            created_by=actor.id
        )

    def _email(self, label: str, send: Callable[..., bool], data: Any) -> bool:
        return best_effort(f"email:{label}", send, data)
