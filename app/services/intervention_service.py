"""
Orchestrateur du cycle de vie des interventions.

Chaque opération suit le même déroulé :
1. chargement de l'état courant ;
2. légalité de la transition, puis éligibilité de l'acteur ;
3. écriture conditionnée au statut lu ;
4. effets secondaires au mieux (journal, notifications, emails, fils).

Aucune exception ne sort d'une opération : le résultat est toujours un
ServiceResult.
"""

from typing import Any, Callable, Dict, List, Optional, Union
from datetime import datetime
from supabase import Client
import logging

from app.core.clock import utcnow
from app.core.errors import (
    ConflictException, NotFoundException, PermissionException,
    ServiceResult, ValidationException
)
from app.models import (
    ActivityLogCreate, AssignmentCreate, AssignmentRole, ConversationThreadType, Intervention,
    InterventionCreate, InterventionFilters, InterventionStatus, InterventionUpdate,
    QuoteCreate, ThreadCreate, User, UserRole
)
from app.services.base import WorkflowService
from app.services.email_service import (
    EmailNotificationService, InterventionEmailData, QuoteEmailData
)
from app.services.notification_service import NotificationService
from app.services.quote_service import QuoteService
from app.services.time_slot_service import TimeSlotService
from app.workflow import (
    DEFAULT_RULES, SideEffect, TransitionRules, WorkflowStep, best_effort, check_creation,
    dispatch_side_effects, require_manager, run_steps
)

logger = logging.getLogger(__name__)

S = InterventionStatus

# Champs qu'un locataire peut modifier tant que sa demande n'est pas traitée
TENANT_EDITABLE_FIELDS = frozenset({
    "title", "description", "urgency", "type", "specific_location", "tenant_comment"
})

# Suppression logique interdite pendant les travaux et après finalisation
UNDELETABLE_STATUSES = frozenset({S.en_cours, S.cloturee_par_gestionnaire})


class InterventionService(WorkflowService):

    def __init__(
        self,
        db: Client,
        rules: TransitionRules = DEFAULT_RULES,
        notifications: Optional[NotificationService] = None,
        emails: Optional[EmailNotificationService] = None,
        time_slots: Optional[TimeSlotService] = None,
        quote_service: Optional[QuoteService] = None
    ):
        super().__init__(db, rules, notifications, emails)
        self.time_slots = time_slots or TimeSlotService(db, rules, self.notifications, self.emails)
        self.quote_service = quote_service or QuoteService(db, rules, self.notifications, self.emails)

    # ========================================
    # Transition commune
    # ========================================

    def _transition(
        self,
        intervention: Intervention,
        actor: User,
        target: InterventionStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> Intervention:
        """
        Valide puis écrit une transition de statut.

        Raises:
            ValidationException: transition absente du graphe
            PermissionException: rôle ou affectation insuffisant
            ConflictException: statut modifié depuis la lecture
        """
        self.rules.validate_transition(intervention.status, target)
        self.rules.check_actor(target, actor, self._assignee_loader(intervention.id))

        updated = self.interventions.update_status(
            intervention.id,
            target,
            expected_status=intervention.status,
            extra={k: v for k, v in (extra or {}).items() if v is not None}
        )
        if not updated:
            raise ConflictException(
                "Intervention status changed concurrently",
                {"intervention_id": intervention.id, "expected": intervention.status.value}
            )

        logger.info(f"✅ Intervention {intervention.id}: {intervention.status.value} -> {target.value} par {actor.id}")
        return updated

    def _run_transition(
        self,
        context: str,
        intervention_id: str,
        user_id: str,
        target: InterventionStatus,
        extra: Optional[Dict[str, Any]] = None,
        after: Optional[Callable[[Intervention, Intervention, User], List[SideEffect]]] = None
    ) -> ServiceResult:
        """
        Chargement, transition puis effets secondaires

        `after(before, updated, actor)` renvoie les effets à exécuter au mieux ;
        ceux en échec sont journalisés sans changer le résultat.
        """
        def operation() -> Intervention:
            intervention = self._require_intervention(intervention_id)
            actor = self._require_user(user_id)
            updated = self._transition(intervention, actor, target, extra)
            self._log_activity(f"status_{target.value}", updated.id, actor.id, {
                "from": intervention.status.value,
                "to": target.value,
            })
            if after:
                failed = dispatch_side_effects(after(intervention, updated, actor))
                if failed:
                    logger.warning(f"Intervention {updated.id} -> {target.value}: effets ignorés {failed}")
            return updated

        return self._execute(context, operation)

    def _participant_ids(self, intervention: Intervention) -> List[str]:
        return [a.user_id for a in self.assignments.list_by_intervention(intervention.id)]

    def _notification(
        self,
        label: str,
        intervention: Intervention,
        actor: User,
        recipients: Callable[[], List[str]],
        title: str,
        message: str
    ) -> SideEffect:
        """Notification différée : les destinataires sont lus à l'exécution"""
        return SideEffect(f"notification:{label}", lambda: self.notifications.notify_users(
            recipients(),
            exclude=actor.id,
            type="status_change",
            title=title,
            message=message,
            team_id=intervention.team_id,
            intervention_id=intervention.id,
            created_by=actor.id
        ))

    @staticmethod
    def _mail(label: str, send: Callable[..., bool], build: Callable[[], Any]) -> SideEffect:
        return SideEffect(f"email:{label}", lambda: send(build()))

    def _create_thread(self, intervention: Intervention, actor: User, thread_type: ConversationThreadType,
                       participant_ids: Optional[List[str]] = None) -> None:
        self.conversations.create_thread(ThreadCreate(
            intervention_id=intervention.id,
            thread_type=thread_type,
            team_id=intervention.team_id,
            created_by=actor.id,
            participant_ids=participant_ids or []
        ))

    def _best_effort_thread(self, intervention: Intervention, actor: User,
                            thread_type: ConversationThreadType, participant_ids: List[str]) -> None:
        best_effort(f"thread:{thread_type.value}", self._create_thread,
                    intervention, actor, thread_type, participant_ids)

    # ========================================
    # Création
    # ========================================

    def request_intervention(self, data: Union[InterventionCreate, Dict[str, Any]], user_id: str) -> ServiceResult:
        """
        Créer une intervention

        Un locataire crée une demande (statut demande) et en devient le
        locataire affecté ; un gestionnaire la crée directement approuvée.
        Les fils « groupe » et « locataire / gestionnaires » sont ouverts.
        """
        def operation() -> Intervention:
            payload = InterventionCreate.model_validate(data)
            user = self._require_user(user_id)
            status = check_creation(user)

            if user.role != UserRole.ADMIN and user.team_id != payload.team_id:
                raise PermissionException(
                    "Cannot create an intervention for another team",
                    action="create",
                    user_id=user.id
                )

            intervention = self.interventions.create(payload, status)

            self.assignments.create(AssignmentCreate(
                intervention_id=intervention.id,
                user_id=user.id,
                role=AssignmentRole.locataire if user.role == UserRole.LOCATAIRE else AssignmentRole.gestionnaire,
                is_lead=user.role != UserRole.LOCATAIRE,
                assigned_by=user.id
            ))

            self._log_activity("intervention_created", intervention.id, user.id,
                               {"status": status.value, "reference": intervention.reference})
            for thread_type in (ConversationThreadType.group, ConversationThreadType.tenant_to_managers):
                self._best_effort_thread(intervention, user, thread_type, [user.id])

            if user.role == UserRole.LOCATAIRE:
                self._notify_roles("intervention_created", intervention, user, [UserRole.GESTIONNAIRE],
                                   "Nouvelle demande d'intervention",
                                   f"{user.display_name} a créé la demande « {intervention.title} »",
                                   type="intervention")
                best_effort("email:created", lambda: self.emails.send_created(InterventionEmailData(
                    intervention=intervention, recipients=self._managers(intervention), actor=user
                )))

            logger.info(f"Intervention {intervention.id} créée ({status.value}) par {user.id}")
            return intervention

        return self._execute("interventions:request", operation)

    # ========================================
    # Décision du gestionnaire
    # ========================================

    def approve(self, intervention_id: str, user_id: str, comment: Optional[str] = None) -> ServiceResult:
        def after(before, updated, actor):
            return [
                self._notification("approved", updated, actor, lambda: [t.id for t in self._tenants(updated)],
                                   "Demande approuvée", f"Votre demande « {updated.title} » a été approuvée"),
                self._mail("approved", self.emails.send_approved, lambda: InterventionEmailData(
                    intervention=updated, recipients=self._tenants(updated), actor=actor
                )),
            ]

        return self._run_transition("interventions:approve", intervention_id, user_id, S.approuvee,
                                    {"manager_comment": comment}, after)

    def reject(self, intervention_id: str, user_id: str, reason: str) -> ServiceResult:
        """Refuser une demande ; le motif est obligatoire"""
        if not reason or not reason.strip():
            return self._execute("interventions:reject", _missing("A rejection reason is required", "reason"))

        def after(before, updated, actor):
            return [
                self._notification("rejected", updated, actor, lambda: [t.id for t in self._tenants(updated)],
                                   "Demande refusée",
                                   f"Votre demande « {updated.title} » a été refusée : {reason.strip()}"),
                self._mail("rejected", self.emails.send_rejected, lambda: InterventionEmailData(
                    intervention=updated, recipients=self._tenants(updated), actor=actor, reason=reason.strip()
                )),
            ]

        return self._run_transition("interventions:reject", intervention_id, user_id, S.rejetee,
                                    {"manager_comment": reason.strip()}, after)

    def start_planning(self, intervention_id: str, user_id: str) -> ServiceResult:
        def after(before, updated, actor):
            return [
                self._notification("planning_started", updated, actor, lambda: self._participant_ids(updated),
                                   "Planification en cours",
                                   f"Merci d'indiquer vos disponibilités pour « {updated.title} »"),
            ]

        return self._run_transition("interventions:start_planning", intervention_id, user_id,
                                    S.planification, None, after)

    def confirm_schedule(self, intervention_id: str, user_id: str, slot_id: str) -> ServiceResult:
        """Confirmer un créneau : voir TimeSlotService.confirm"""
        return self.time_slots.confirm(intervention_id, user_id, slot_id)

    # ========================================
    # Devis
    # ========================================

    def request_quote(
        self,
        intervention_id: str,
        manager_id: str,
        provider_id: str,
        valid_until: Optional[datetime] = None
    ) -> ServiceResult:
        """
        Demander un devis à un prestataire

        Étapes bloquantes : affectation du prestataire, passage en
        demande_de_devis, création du devis en brouillon. Une affectation
        déjà écrite n'est pas annulée si une étape suivante échoue.
        """
        target = S.demande_de_devis

        def validate(ctx):
            intervention = self._require_intervention(intervention_id)
            manager = self._require_user(manager_id)
            self.rules.validate_transition(intervention.status, target)
            self.rules.check_actor(target, manager, self._assignee_loader(intervention.id))

            provider = self._require_user(provider_id)
            if provider.role != UserRole.PRESTATAIRE:
                raise ValidationException("User is not a provider", field="provider_id")
            if self.assignments.get(intervention.id, provider.id, AssignmentRole.prestataire):
                raise ConflictException(
                    "Provider is already assigned to this intervention",
                    {"intervention_id": intervention.id, "user_id": provider.id}
                )
            ctx.update(intervention=intervention, manager=manager, provider=provider)

        def assign(ctx):
            ctx["assignment"] = self.assignments.create(AssignmentCreate(
                intervention_id=intervention_id,
                user_id=provider_id,
                role=AssignmentRole.prestataire,
                assigned_by=manager_id
            ))

        def transition(ctx):
            before = ctx["intervention"]
            updated = self.interventions.update_status(
                before.id, target, expected_status=before.status, extra={"requires_quote": True}
            )
            if not updated:
                raise ConflictException(
                    "Intervention status changed concurrently",
                    {"intervention_id": before.id, "expected": before.status.value}
                )
            ctx["intervention"] = updated
            logger.info(f"✅ Intervention {before.id}: {before.status.value} -> {target.value} par {manager_id}")

        def create_quote(ctx):
            ctx["quote"] = self.quotes.create(
                QuoteCreate(intervention_id=intervention_id, provider_id=provider_id, valid_until=valid_until),
                created_by=manager_id,
                team_id=ctx["intervention"].team_id
            )

        def open_thread(ctx):
            self._create_thread(ctx["intervention"], ctx["manager"],
                                ConversationThreadType.provider_to_managers, [provider_id, manager_id])

        def notify(ctx):
            intervention = ctx["intervention"]
            self.notifications.notify_users(
                [provider_id],
                type="quote",
                title="Demande de devis",
                message=f"Un devis vous est demandé pour « {intervention.title} »",
                team_id=intervention.team_id,
                intervention_id=intervention.id,
                created_by=manager_id
            )

        def email(ctx):
            self.emails.send_quote_requested(QuoteEmailData(
                intervention=ctx["intervention"], recipients=[ctx["provider"]],
                actor=ctx["manager"], quote=ctx["quote"], provider=ctx["provider"]
            ))

        def log_activity(ctx):
            self.activity.append(ActivityLogCreate(
                action="quote_requested",
                intervention_id=intervention_id,
                user_id=manager_id,
                metadata={"provider_id": provider_id, "quote_id": ctx["quote"].id}
            ))

        steps = [
            WorkflowStep("validate", validate),
            WorkflowStep("assign_provider", assign),
            WorkflowStep("transition", transition),
            WorkflowStep("create_quote", create_quote),
            WorkflowStep("provider_thread", open_thread, blocking=False),
            WorkflowStep("notify_provider", notify, blocking=False),
            WorkflowStep("email_provider", email, blocking=False),
            WorkflowStep("activity_log", log_activity, blocking=False),
        ]

        def operation() -> Dict[str, Any]:
            ctx: Dict[str, Any] = {}
            run_steps(steps, ctx)
            return {
                "intervention": ctx["intervention"],
                "quote": ctx["quote"],
                "assignment": ctx["assignment"],
            }

        return self._execute("interventions:request_quote", operation)

    # ========================================
    # Exécution et clôture
    # ========================================

    def start(self, intervention_id: str, user_id: str) -> ServiceResult:
        def after(before, updated, actor):
            return [
                self._notification("started", updated, actor, lambda: self._participant_ids(updated),
                                   "Travaux démarrés", f"Les travaux de « {updated.title} » ont commencé"),
            ]

        return self._run_transition("interventions:start", intervention_id, user_id, S.en_cours,
                                    {"started_at": utcnow().isoformat()}, after)

    def complete_by_provider(self, intervention_id: str, user_id: str, comment: Optional[str] = None) -> ServiceResult:
        def after(before, updated, actor):
            return [
                self._notification("completed", updated, actor, lambda: self._participant_ids(updated),
                                   "Travaux terminés", f"Le prestataire a terminé « {updated.title} »"),
                self._mail("completed", self.emails.send_completed, lambda: InterventionEmailData(
                    intervention=updated, recipients=self._tenants(updated), actor=actor
                )),
            ]

        return self._run_transition("interventions:complete", intervention_id, user_id,
                                    S.cloturee_par_prestataire,
                                    {"completed_date": utcnow().isoformat(), "provider_comment": comment}, after)

    def validate_by_tenant(
        self,
        intervention_id: str,
        user_id: str,
        satisfaction: Optional[int] = None,
        comment: Optional[str] = None
    ) -> ServiceResult:
        """Validation de fin de travaux par le locataire (note de 1 à 5 optionnelle)"""
        if satisfaction is not None and not 1 <= satisfaction <= 5:
            return self._execute("interventions:validate",
                                 _missing("Satisfaction must be between 1 and 5", "satisfaction"))

        def after(before, updated, actor):
            return [
                self._notification("validated", updated, actor, lambda: self._participant_ids(updated),
                                   "Intervention validée par le locataire",
                                   f"Le locataire a validé « {updated.title} »"),
            ]

        return self._run_transition("interventions:validate", intervention_id, user_id,
                                    S.cloturee_par_locataire,
                                    {"validated_at": utcnow().isoformat(),
                                     "tenant_satisfaction": satisfaction,
                                     "tenant_comment": comment}, after)

    def finalize_by_manager(
        self,
        intervention_id: str,
        user_id: str,
        final_cost: Optional[float] = None,
        comment: Optional[str] = None
    ) -> ServiceResult:
        if final_cost is not None and final_cost < 0:
            return self._execute("interventions:finalize", _missing("final_cost must be positive", "final_cost"))

        def after(before, updated, actor):
            return [
                self._notification("finalized", updated, actor, lambda: self._participant_ids(updated),
                                   "Intervention clôturée", f"L'intervention « {updated.title} » est clôturée"),
            ]

        return self._run_transition("interventions:finalize", intervention_id, user_id,
                                    S.cloturee_par_gestionnaire,
                                    {"finalized_at": utcnow().isoformat(),
                                     "final_cost": final_cost,
                                     "manager_comment": comment}, after)

    # ========================================
    # Annulation et suppression
    # ========================================

    def cancel(self, intervention_id: str, user_id: str, reason: str) -> ServiceResult:
        """
        Annuler une intervention ; le motif est obligatoire.
        Impossible depuis un statut terminal (rejetee, cloturee_par_gestionnaire, annulee).
        """
        def operation() -> Intervention:
            if not reason or not reason.strip():
                raise ValidationException("A cancellation reason is required", field="reason")

            intervention = self._require_intervention(intervention_id)
            actor = self._require_user(user_id)

            self.rules.validate_transition(intervention.status, S.annulee)
            if actor.role == UserRole.LOCATAIRE:
                if actor.id not in self.assignments.user_ids(intervention.id, AssignmentRole.locataire):
                    raise PermissionException(
                        "Only the tenant assigned to the intervention can cancel it",
                        action="cancel",
                        user_id=actor.id
                    )

            updated = self._transition(intervention, actor, S.annulee, {"cancellation_reason": reason.strip()})

            self._log_activity("status_annulee", updated.id, actor.id, {
                "from": intervention.status.value, "reason": reason.strip()
            })
            dispatch_side_effects([
                self._notification("cancelled", updated, actor, lambda: self._participant_ids(updated),
                                   "Intervention annulée",
                                   f"L'intervention « {updated.title} » a été annulée : {reason.strip()}"),
            ])
            return updated

        return self._execute("interventions:cancel", operation)

    def delete(self, intervention_id: str, user_id: str) -> ServiceResult:
        """Suppression logique par un gestionnaire"""
        def operation() -> Intervention:
            intervention = self._require_intervention(intervention_id)
            if intervention.status in UNDELETABLE_STATUSES:
                raise ValidationException(
                    f"Cannot delete an intervention in '{intervention.status.value}' status",
                    field="status"
                )

            user = self._require_user(user_id)
            require_manager(user, "delete interventions")

            deleted = self.interventions.soft_delete(intervention.id, user.id)
            self._log_activity("intervention_deleted", intervention.id, user.id,
                               {"status": intervention.status.value})
            return deleted

        return self._execute("interventions:delete", operation)

    # ========================================
    # Affectations
    # ========================================

    def assign_user(
        self,
        intervention_id: str,
        manager_id: str,
        user_id: str,
        role: Union[AssignmentRole, str],
        is_lead: bool = False
    ) -> ServiceResult:
        """
        Affecter un utilisateur à une intervention

        Le rôle d'affectation doit correspondre au rôle de l'utilisateur ;
        un prestataire affecté reçoit un fil dédié avec les gestionnaires.
        """
        def operation():
            assignment_role = AssignmentRole(role)
            manager = self._require_user(manager_id)
            require_manager(manager, "assign users")

            intervention = self._require_intervention(intervention_id)
            if self.rules.is_terminal(intervention.status):
                raise ValidationException(
                    f"Cannot assign users to an intervention in '{intervention.status.value}' status",
                    field="status"
                )

            assignee = self._require_user(user_id)
            _check_assignment_role(assignee, assignment_role)

            if self.assignments.get(intervention.id, assignee.id, assignment_role):
                raise ConflictException(
                    f"User is already assigned to this intervention as {assignment_role.value}",
                    {"intervention_id": intervention.id, "user_id": assignee.id, "role": assignment_role.value}
                )

            assignment = self.assignments.create(AssignmentCreate(
                intervention_id=intervention.id,
                user_id=assignee.id,
                role=assignment_role,
                is_lead=is_lead,
                assigned_by=manager.id
            ))

            if assignment_role == AssignmentRole.prestataire:
                self._best_effort_thread(intervention, manager, ConversationThreadType.provider_to_managers,
                                         [assignee.id, manager.id])
            self._notify_users("assigned", intervention, manager, [assignee.id],
                               "Nouvelle affectation", f"Vous avez été affecté à « {intervention.title} »",
                               type="assignment")
            self._log_activity("user_assigned", intervention.id, manager.id,
                               {"user_id": assignee.id, "role": assignment_role.value})
            return assignment

        return self._execute("interventions:assign", operation)

    def unassign_user(
        self,
        intervention_id: str,
        manager_id: str,
        user_id: str,
        role: Optional[Union[AssignmentRole, str]] = None
    ) -> ServiceResult:
        def operation() -> Dict[str, Any]:
            assignment_role = AssignmentRole(role) if role else None
            manager = self._require_user(manager_id)
            require_manager(manager, "unassign users")
            intervention = self._require_intervention(intervention_id)

            removed = self.assignments.delete(intervention.id, user_id, assignment_role)
            if not removed:
                raise NotFoundException("Assignment", f"{intervention.id}/{user_id}")

            self._log_activity("user_unassigned", intervention.id, manager.id,
                               {"user_id": user_id, "role": assignment_role.value if assignment_role else None})
            return {"removed": removed}

        return self._execute("interventions:unassign", operation)

    # ========================================
    # Lecture et modification
    # ========================================

    def get_intervention(self, intervention_id: str, user_id: str) -> ServiceResult:
        """Intervention visible par les participants et les gestionnaires de l'équipe"""
        def operation() -> Intervention:
            user = self._require_user(user_id)
            intervention = self._require_intervention(intervention_id)
            if not self._is_participant(user, intervention):
                raise NotFoundException("Intervention", intervention_id)
            return intervention

        return self._execute("interventions:get", operation)

    def list_interventions(
        self,
        user_id: str,
        filters: Optional[InterventionFilters] = None,
        skip: int = 0,
        limit: int = 50
    ) -> ServiceResult:
        def operation():
            user = self._require_user(user_id)
            require_manager(user, "list team interventions")
            if not user.team_id:
                raise ValidationException("User has no team", field="team_id")
            return self.interventions.get_all(user.team_id, filters, skip, limit)

        return self._execute("interventions:list", operation)

    def get_my_interventions(self, user_id: str) -> ServiceResult:
        """Interventions de l'équipe pour un gestionnaire, affectations pour les autres rôles"""
        def operation():
            user = self._require_user(user_id)
            if user.is_manager and user.team_id:
                return self.interventions.get_all(user.team_id)
            ids = list(dict.fromkeys(a.intervention_id for a in self.assignments.list_by_user(user.id)))
            return self.interventions.get_by_ids(ids)

        return self._execute("interventions:mine", operation)

    def update_intervention(
        self,
        intervention_id: str,
        user_id: str,
        data: Union[InterventionUpdate, Dict[str, Any]]
    ) -> ServiceResult:
        """
        Modifier les champs hors statut

        Gestionnaire de l'équipe : tous les champs. Locataire affecté : ses
        champs uniquement, tant que la demande est au statut demande.
        """
        def operation() -> Intervention:
            payload = InterventionUpdate.model_validate(data)
            changes = payload.model_dump(mode="json", exclude_unset=True)
            if not changes:
                raise ValidationException("No data to update")

            user = self._require_user(user_id)
            intervention = self._require_intervention(intervention_id)
            if self.rules.is_terminal(intervention.status):
                raise ValidationException(
                    f"Cannot modify an intervention in '{intervention.status.value}' status",
                    field="status"
                )

            is_team_manager = user.role == UserRole.ADMIN or (
                user.is_manager and user.team_id == intervention.team_id
            )
            if not is_team_manager:
                tenants = self.assignments.user_ids(intervention.id, AssignmentRole.locataire)
                if user.role != UserRole.LOCATAIRE or user.id not in tenants or intervention.status != S.demande:
                    raise PermissionException(
                        "You do not have permission to modify this intervention",
                        action="update",
                        user_id=user.id
                    )
                forbidden = sorted(set(changes) - TENANT_EDITABLE_FIELDS)
                if forbidden:
                    raise PermissionException(
                        f"Tenants cannot modify: {', '.join(forbidden)}",
                        action="update",
                        user_id=user.id
                    )

            updated = self.interventions.update(intervention.id, changes)
            self._log_activity("intervention_updated", intervention.id, user.id, {"fields": sorted(changes)})
            return updated

        return self._execute("interventions:update", operation)

    def get_dashboard_stats(self, user_id: str) -> ServiceResult:
        def operation():
            user = self._require_user(user_id)
            require_manager(user, "view dashboard statistics")
            if not user.team_id:
                raise ValidationException("User has no team", field="team_id")
            return self.interventions.get_statistics(user.team_id)

        return self._execute("interventions:dashboard", operation)

    def get_activity(self, intervention_id: str, user_id: str) -> ServiceResult:
        """Historique de l'intervention"""
        def operation():
            user = self._require_user(user_id)
            intervention = self._require_intervention(intervention_id)
            if not self._is_participant(user, intervention):
                raise NotFoundException("Intervention", intervention_id)
            return self.activity.get_by_intervention(intervention.id)

        return self._execute("interventions:activity", operation)


def _missing(message: str, field: str):
    def operation():
        raise ValidationException(message, field=field)
    return operation


def _check_assignment_role(user: User, role: AssignmentRole) -> None:
    """Le rôle d'affectation doit correspondre au rôle global de l'utilisateur"""
    if role == AssignmentRole.prestataire and user.role != UserRole.PRESTATAIRE:
        raise ValidationException("User does not have the provider role", field="role")
    if role == AssignmentRole.locataire and user.role != UserRole.LOCATAIRE:
        raise ValidationException("User does not have the tenant role", field="role")
    if role in (AssignmentRole.gestionnaire, AssignmentRole.superviseur) and not user.is_manager:
        raise ValidationException("User does not have a manager role", field="role")


def get_intervention_service(db: Client, **kwargs) -> InterventionService:
    return InterventionService(db, **kwargs)
