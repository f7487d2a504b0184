"""
Service des créneaux : proposition, réponses des participants et
confirmation du rendez-vous.

La confirmation est une suite d'étapes ordonnées, validées une à une :
une étape bloquante en échec est remontée sans annuler les précédentes,
les étapes de journalisation et de notification ne bloquent jamais.
"""

from typing import Any, Dict, List, Optional, Sequence, Union
from supabase import Client
import logging

from app.core.clock import as_utc
from app.core.errors import (
    ConflictException, NotFoundException, PermissionException,
    ServiceResult, ValidationException
)
from app.models import (
    ActivityLogCreate, AssignmentRole, InterventionStatus, ResponseType,
    TimeSlot, TimeSlotInput, TimeSlotStatus, UserRole
)
from app.services.base import WorkflowService
from app.services.email_service import EmailNotificationService, InterventionEmailData
from app.services.notification_service import NotificationService
from app.workflow import (
    CLOSED_SLOT_STATUSES, DEFAULT_RULES, TransitionRules, WorkflowStep, best_effort,
    can_auto_confirm, can_finalize, open_siblings, pending_participants_message, run_steps
)

logger = logging.getLogger(__name__)


class TimeSlotService(WorkflowService):

    def __init__(
        self,
        db: Client,
        rules: TransitionRules = DEFAULT_RULES,
        notifications: Optional[NotificationService] = None,
        emails: Optional[EmailNotificationService] = None,
        require_finalization: bool = True,
        auto_cancel_siblings: bool = False
    ):
        super().__init__(db, rules, notifications, emails)
        self.require_finalization = require_finalization
        self.auto_cancel_siblings = auto_cancel_siblings

    def _require_slot(self, slot_id: str) -> TimeSlot:
        slot = self.slots.get_by_id(slot_id)
        if not slot:
            raise NotFoundException("TimeSlot", slot_id)
        return slot

    # ========================================
    # Proposition
    # ========================================

    def propose(
        self,
        intervention_id: str,
        slots: Sequence[Union[TimeSlotInput, Dict[str, Any]]],
        proposer_id: str
    ) -> ServiceResult:
        """
        Proposer des créneaux pendant la planification

        Args:
            intervention_id: UUID de l'intervention
            slots: Créneaux candidats (date, heure de début, heure de fin)
            proposer_id: Gestionnaire ou prestataire affecté

        Returns:
            ServiceResult contenant la liste des créneaux créés
        """
        def operation() -> List[TimeSlot]:
            inputs = [TimeSlotInput.model_validate(slot) for slot in slots]
            if not inputs:
                raise ValidationException("At least one time slot is required", field="slots")

            proposer = self._require_user(proposer_id)
            intervention = self._require_intervention(intervention_id)

            if intervention.status != InterventionStatus.planification:
                raise ValidationException(
                    "Time slots can only be proposed while intervention is in 'planification' status",
                    field="status",
                    details={"status": intervention.status.value}
                )

            if proposer.role == UserRole.PRESTATAIRE:
                if proposer.id not in self.assignments.user_ids(intervention.id, AssignmentRole.prestataire):
                    raise PermissionException(
                        "Provider must be assigned to intervention to propose time slots",
                        action="propose_slots",
                        user_id=proposer.id
                    )
            elif not proposer.is_manager:
                raise PermissionException(
                    "Only managers and assigned providers can propose time slots",
                    action="propose_slots",
                    user_id=proposer.id
                )

            created = self.slots.create_many(intervention.id, inputs, proposer.id)

            tenant_ids = self.assignments.user_ids(intervention.id, AssignmentRole.locataire)
            message = f"{len(created)} créneau(x) proposé(s) pour « {intervention.title} »"
            if tenant_ids:
                self._notify_users("slots_proposed", intervention, proposer, tenant_ids,
                                   "Nouveaux créneaux proposés", message, type="time_slot")
            else:
                self._notify_roles("slots_proposed", intervention, proposer, [UserRole.LOCATAIRE],
                                   "Nouveaux créneaux proposés", message, type="time_slot")

            self._log_activity("time_slots_proposed", intervention.id, proposer.id,
                               {"slot_ids": [s.id for s in created]})
            return created

        return self._execute("time_slots:propose", operation)

    # ========================================
    # Réponses
    # ========================================

    def record_response(
        self,
        slot_id: str,
        user_id: str,
        accepted: bool,
        note: Optional[str] = None
    ) -> ServiceResult:
        """
        Enregistrer l'acceptation ou le refus d'un participant.
        Le statut du créneau n'est pas modifié.
        """
        def operation():
            user = self._require_user(user_id)
            slot = self._require_slot(slot_id)

            if slot.status in CLOSED_SLOT_STATUSES:
                raise ValidationException(
                    f"Cannot respond to a time slot in '{slot.status.value}' status",
                    field="status"
                )
            if slot.proposed_by == user.id:
                raise ValidationException("Cannot respond to your own time slot proposal")

            intervention = self._require_intervention(slot.intervention_id)
            if not self._is_participant(user, intervention):
                raise PermissionException(
                    "Only participants of the intervention can respond to time slots",
                    action="respond_slot",
                    user_id=user.id
                )

            response = self.slots.upsert_response(
                slot.id,
                user.id,
                user.role,
                ResponseType.accepted if accepted else ResponseType.rejected,
                note
            )

            self._log_activity("time_slot_response", intervention.id, user.id,
                               {"slot_id": slot.id, "response": response.response.value})
            return response

        return self._execute("time_slots:record_response", operation)

    def can_finalize(self, slot_id: str) -> ServiceResult:
        return self._execute("time_slots:can_finalize", lambda: can_finalize(self._require_slot(slot_id)))

    def can_auto_confirm(self, slot_id: str) -> ServiceResult:
        """Vrai si le créneau peut être confirmé sans intervention d'un gestionnaire"""
        def operation() -> bool:
            slot = self._require_slot(slot_id)
            intervention = self._require_intervention(slot.intervention_id)
            return can_auto_confirm(slot, intervention.status)

        return self._execute("time_slots:can_auto_confirm", operation)

    def list_slots(self, intervention_id: str, user_id: str) -> ServiceResult:
        """
        Créneaux d'une intervention avec leurs réponses et un résumé de
        l'avancement de la planification
        """
        def operation() -> Dict[str, Any]:
            user = self._require_user(user_id)
            intervention = self._require_intervention(intervention_id)
            if not self._is_participant(user, intervention):
                raise NotFoundException("Intervention", intervention_id)

            slots = self.slots.list_by_intervention(intervention.id)
            return {
                "slots": slots,
                "message": pending_participants_message(intervention.status, slots)
            }

        return self._execute("time_slots:list", operation)

    def cancel_slot(self, slot_id: str, actor_id: str) -> ServiceResult:
        """Annuler un créneau (auteur de la proposition ou gestionnaire)"""
        def operation() -> TimeSlot:
            actor = self._require_user(actor_id)
            slot = self._require_slot(slot_id)

            if slot.status in (TimeSlotStatus.selected, TimeSlotStatus.cancelled):
                raise ValidationException(
                    f"Cannot cancel a time slot in '{slot.status.value}' status",
                    field="status"
                )

            intervention = self._require_intervention(slot.intervention_id)
            is_team_manager = actor.role == UserRole.ADMIN or (
                actor.is_manager and actor.team_id == intervention.team_id
            )
            if slot.proposed_by != actor.id and not is_team_manager:
                raise PermissionException(
                    "Only the proposer or a manager can cancel this time slot",
                    action="cancel_slot",
                    user_id=actor.id
                )

            cancelled = self.slots.update_status(slot.id, TimeSlotStatus.cancelled)
            self._log_activity("time_slot_cancelled", intervention.id, actor.id, {"slot_id": slot.id})
            return cancelled

        return self._execute("time_slots:cancel", operation)

    # ========================================
    # Confirmation
    # ========================================

    def confirm(self, intervention_id: str, actor_id: str, slot_id: str) -> ServiceResult:
        """
        Confirmer un créneau comme date planifiée

        Étapes bloquantes : chargement du créneau, chargement de l'intervention,
        contrôles, sélection du créneau, planification de l'intervention.
        La sélection échoue en conflit si un autre créneau est déjà sélectionné ;
        si la planification échoue en conflit, le créneau retrouve son statut.
        Étapes au mieux : annulation des autres créneaux (si activée),
        journal d'activité, notifications, email.

        Returns:
            ServiceResult contenant l'intervention planifiée
        """
        target = InterventionStatus.planifiee

        def load_slot(ctx):
            ctx["slot"] = self._require_slot(slot_id)
            if ctx["slot"].intervention_id != intervention_id:
                raise ValidationException(
                    "Time slot does not belong to this intervention",
                    field="slot_id"
                )

        def load_intervention(ctx):
            ctx["intervention"] = self._require_intervention(intervention_id)

        def validate(ctx):
            slot, intervention = ctx["slot"], ctx["intervention"]
            self.rules.validate_transition(intervention.status, target)

            actor = self._require_user(actor_id)
            self.rules.check_actor(target, actor, self._assignee_loader(intervention.id))
            ctx["actor"] = actor

            if slot.status in CLOSED_SLOT_STATUSES:
                raise ValidationException(
                    f"Cannot confirm a time slot in '{slot.status.value}' status",
                    field="status"
                )
            if self.require_finalization and not can_finalize(slot):
                raise ValidationException(
                    "Time slot must be accepted by at least one tenant and one provider",
                    field="slot_id"
                )

        def select_slot(ctx):
            selected = self.slots.select(ctx["slot"].id, intervention_id)
            if not selected:
                raise ConflictException(
                    "Another time slot was selected concurrently",
                    {"intervention_id": intervention_id, "slot_id": ctx["slot"].id}
                )
            ctx["previous_slot_status"] = ctx["slot"].status
            ctx["slot"] = selected

        def schedule_intervention(ctx):
            intervention, slot = ctx["intervention"], ctx["slot"]
            updated = self.interventions.update_status(
                intervention.id,
                target,
                expected_status=intervention.status,
                extra={
                    "scheduled_date": as_utc(slot.starts_at).isoformat(),
                    "selected_slot_id": slot.id
                }
            )
            if not updated:
                # Le créneau sélectionné par cette requête est rendu
                best_effort(
                    "release_slot", self.slots.update_status, slot.id, ctx["previous_slot_status"]
                )
                raise ConflictException(
                    "Intervention status changed concurrently",
                    {"intervention_id": intervention.id, "expected": intervention.status.value}
                )
            ctx["intervention"] = updated
            logger.info(f"✅ Intervention {intervention.id} planifiée le {updated.scheduled_date} par {ctx['actor'].id}")

        def cancel_siblings(ctx):
            siblings = open_siblings(self.slots.list_by_intervention(intervention_id), ctx["slot"].id)
            ctx["cancelled_slots"] = self.slots.cancel_many([s.id for s in siblings])

        def log_activity(ctx):
            self.activity.append(ActivityLogCreate(
                action="schedule_confirmed",
                intervention_id=intervention_id,
                user_id=ctx["actor"].id,
                metadata={"slot_id": ctx["slot"].id, "scheduled_date": ctx["intervention"].scheduled_date.isoformat()}
            ))

        def notify(ctx):
            intervention = ctx["intervention"]
            participants = [u.id for u in self._tenants(intervention) + self._providers(intervention)]
            self.notifications.notify_users(
                participants,
                exclude=ctx["actor"].id,
                type="status_change",
                title="Intervention planifiée",
                message=f"Le rendez-vous pour « {intervention.title} » est confirmé",
                team_id=intervention.team_id,
                intervention_id=intervention.id,
                created_by=ctx["actor"].id
            )

        def email(ctx):
            intervention = ctx["intervention"]
            self.emails.send_scheduled(InterventionEmailData(
                intervention=intervention,
                recipients=self._tenants(intervention) + self._providers(intervention),
                actor=ctx["actor"],
                scheduled_date=intervention.scheduled_date
            ))

        steps = [
            WorkflowStep("load_slot", load_slot),
            WorkflowStep("load_intervention", load_intervention),
            WorkflowStep("validate", validate),
            WorkflowStep("select_slot", select_slot),
            WorkflowStep("schedule_intervention", schedule_intervention),
        ]
        if self.auto_cancel_siblings:
            steps.append(WorkflowStep("cancel_sibling_slots", cancel_siblings, blocking=False))
        steps += [
            WorkflowStep("activity_log", log_activity, blocking=False),
            WorkflowStep("notify_participants", notify, blocking=False),
            WorkflowStep("email_scheduled", email, blocking=False),
        ]

        def operation():
            context: Dict[str, Any] = {}
            report = run_steps(steps, context)
            if report.skipped_failures:
                logger.warning(f"Confirmation {intervention_id}: effets ignorés {report.skipped_failures}")
            return context["intervention"]

        return self._execute("time_slots:confirm", operation)


def get_time_slot_service(db: Client, **kwargs) -> TimeSlotService:
    return TimeSlotService(db, **kwargs)
