"""
Service des devis : création, envoi, décision du gestionnaire et expiration.

Flux à sens unique : draft -> sent -> {accepted, rejected, expired}.
"""

from typing import Any, Dict, List, Optional, Union
from datetime import datetime
from supabase import Client
import logging

from app.core.clock import as_utc, utcnow
from app.core.errors import (
    ConflictException, NotFoundException, PermissionException,
    ServiceResult, ValidationException, handle_error
)
from app.models import (
    AssignmentRole, Intervention, InterventionStatus, Quote, QuoteCreate, QuoteStatus,
    QuoteUpdate, User, UserRole
)
from app.services.base import WorkflowService
from app.services.email_service import EmailNotificationService, QuoteEmailData
from app.services.notification_service import NotificationService
from app.workflow import (
    DEFAULT_RULES, TransitionRules, best_effort, require_manager,
    validate_amount, validate_quote_transition
)

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


class QuoteService(WorkflowService):

    def __init__(
        self,
        db: Client,
        rules: TransitionRules = DEFAULT_RULES,
        notifications: Optional[NotificationService] = None,
        emails: Optional[EmailNotificationService] = None,
        max_amount: float = 1_000_000,
        amount_tolerance: float = 0.01
    ):
        super().__init__(db, rules, notifications, emails)
        self.max_amount = max_amount
        self.amount_tolerance = amount_tolerance

    def _require_quote(self, quote_id: str) -> Quote:
        quote = self.quotes.get_by_id(quote_id)
        if not quote:
            raise NotFoundException("Quote", quote_id)
        return quote

    def _check_author(self, user: User, quote: Quote, action: str) -> None:
        """Le prestataire du devis ou un gestionnaire"""
        if user.is_manager or user.id == quote.provider_id:
            return
        raise PermissionException(
            "Only the quote's provider or a manager can perform this action",
            action=action,
            user_id=user.id
        )

    def _move(self, quote: Quote, target: QuoteStatus, extra: Optional[Dict[str, Any]] = None) -> Quote:
        updated = self.quotes.update_status(quote.id, target, expected_status=quote.status, extra=extra)
        if not updated:
            raise ConflictException(
                "Quote status changed concurrently",
                {"quote_id": quote.id, "expected": quote.status.value}
            )
        return updated

    def _after_send(self, quote: Quote, provider: User) -> None:
        intervention = self._require_intervention(quote.intervention_id)
        managers = self._managers(intervention)
        self._notify_users("quote_sent", intervention, provider, [m.id for m in managers],
                           "Devis reçu",
                           f"Nouveau devis de {quote.amount:.2f} {quote.currency} pour « {intervention.title} »",
                           type="quote")
        self._email("quote_submitted", self.emails.send_quote_submitted, QuoteEmailData(
            intervention=intervention, recipients=managers, actor=provider, quote=quote, provider=provider
        ))

    def _after_decision(self, quote: Quote, intervention: Optional[Intervention], validator: User) -> None:
        """Notification et email au prestataire après acceptation ou refus"""
        intervention = intervention or self._require_intervention(quote.intervention_id)
        provider = self.users.get_by_id(quote.provider_id)
        accepted = quote.status == QuoteStatus.accepted

        self._notify_users(
            f"quote_{quote.status.value}", intervention, validator, [quote.provider_id],
            "Devis accepté" if accepted else "Devis refusé",
            f"Votre devis pour « {intervention.title} » a été {'accepté' if accepted else 'refusé'}",
            type="quote"
        )
        send = self.emails.send_quote_approved if accepted else self.emails.send_quote_rejected
        self._email(f"quote_{quote.status.value}", send, QuoteEmailData(
            intervention=intervention,
            recipients=[provider] if provider else [],
            actor=validator,
            quote=quote,
            provider=provider,
            reason=quote.rejection_reason
        ))

    # ========================================
    # Lecture
    # ========================================

    def get_quote(self, quote_id: str, user_id: str) -> ServiceResult:
        def operation() -> Quote:
            user = self._require_user(user_id)
            quote = self._require_quote(quote_id)
            if not self._is_participant(user, self._require_intervention(quote.intervention_id)):
                raise NotFoundException("Quote", quote_id)
            return quote

        return self._execute("quotes:get", operation)

    def list_for_intervention(self, intervention_id: str, user_id: str) -> ServiceResult:
        def operation() -> List[Quote]:
            user = self._require_user(user_id)
            intervention = self._require_intervention(intervention_id)
            if not self._is_participant(user, intervention):
                raise NotFoundException("Intervention", intervention_id)
            quotes = self.quotes.get_by_intervention(intervention.id)
            if user.role == UserRole.PRESTATAIRE:
                quotes = [q for q in quotes if q.provider_id == user.id]
            return quotes

        return self._execute("quotes:list_for_intervention", operation)

    # ========================================
    # Création et modification
    # ========================================

    def create(self, quote_data: Union[QuoteCreate, Dict[str, Any]], creator_id: str) -> ServiceResult:
        """
        Créer un devis en brouillon

        Le montant doit être compris entre 0 et le plafond ; si des lignes
        sont fournies, leur total doit égaler le montant à la tolérance près.
        """
        def operation() -> Quote:
            data = QuoteCreate.model_validate(quote_data)
            creator = self._require_user(creator_id)
            intervention = self._require_intervention(data.intervention_id)

            if self.rules.is_terminal(intervention.status):
                raise ValidationException(
                    f"Cannot create a quote for an intervention in '{intervention.status.value}' status",
                    field="status"
                )

            if not creator.is_manager:
                assigned = self.assignments.user_ids(intervention.id, AssignmentRole.prestataire)
                if creator.role != UserRole.PRESTATAIRE or creator.id != data.provider_id or creator.id not in assigned:
                    raise PermissionException(
                        "Only managers or the assigned provider can create a quote",
                        action="create_quote",
                        user_id=creator.id
                    )

            validate_amount(data.amount, data.line_items, self.max_amount, self.amount_tolerance)

            quote = self.quotes.create(data, created_by=creator.id, team_id=intervention.team_id)
            self._log_activity("quote_created", intervention.id, creator.id,
                               {"quote_id": quote.id, "amount": quote.amount})
            return quote

        return self._execute("quotes:create", operation)

    def update(self, quote_id: str, quote_data: Union[QuoteUpdate, Dict[str, Any]], user_id: str) -> ServiceResult:
        """Modifier un devis tant qu'il est en brouillon"""
        def operation() -> Quote:
            data = QuoteUpdate.model_validate(quote_data)
            user = self._require_user(user_id)
            quote = self._require_quote(quote_id)

            if quote.status != QuoteStatus.draft:
                raise ValidationException(
                    f"Only draft quotes can be modified (current status: '{quote.status.value}')",
                    field="status"
                )
            self._check_author(user, quote, "update_quote")

            changes = data.model_dump(mode="json", exclude_unset=True)
            if not changes:
                raise ValidationException("No data to update")

            amount = data.amount if "amount" in changes else quote.amount
            line_items = data.line_items if "line_items" in changes else quote.line_items
            validate_amount(amount, line_items, self.max_amount, self.amount_tolerance)

            updated = self.quotes.update(quote.id, changes)
            self._log_activity("quote_updated", quote.intervention_id, user.id,
                               {"quote_id": quote.id, "fields": sorted(changes)})
            return updated

        return self._execute("quotes:update", operation)

    # ========================================
    # Envoi et décision
    # ========================================

    def send(self, quote_id: str, user_id: str) -> ServiceResult:
        """Envoyer un brouillon au gestionnaire"""
        def operation() -> Quote:
            quote = self._require_quote(quote_id)
            validate_quote_transition(quote.status, QuoteStatus.sent)

            user = self._require_user(user_id)
            self._check_author(user, quote, "send_quote")

            if quote.amount <= 0:
                raise ValidationException("Quote amount must be set before sending", field="amount")

            sent = self._move(quote, QuoteStatus.sent, {"sent_at": utcnow().isoformat()})

            self._log_activity("quote_sent", quote.intervention_id, user.id, {"quote_id": sent.id})
            best_effort("side_effects:quote_sent", self._after_send, sent, user)
            return sent

        return self._execute("quotes:send", operation)

    def accept(self, quote_id: str, validator_id: str) -> ServiceResult:
        """
        Accepter un devis envoyé

        Un seul devis accepté par intervention et par type. L'estimation de
        l'intervention prend le montant du devis et l'intervention passe en
        planification lorsque cette transition est légale.
        """
        def operation() -> Quote:
            quote = self._require_quote(quote_id)
            validate_quote_transition(quote.status, QuoteStatus.accepted)

            validator = self._require_user(validator_id)
            require_manager(validator, "accept quotes")

            if any(q.id != quote.id for q in self.quotes.get_accepted(quote.intervention_id, quote.quote_type)):
                raise ConflictException(
                    f"An accepted {quote.quote_type.value} quote already exists for this intervention",
                    {"intervention_id": quote.intervention_id, "quote_type": quote.quote_type.value}
                )

            accepted = self._move(quote, QuoteStatus.accepted, {
                "validated_by": validator.id,
                "validated_at": utcnow().isoformat()
            })

            intervention = self.interventions.update(quote.intervention_id, {"estimated_cost": accepted.amount})
            if self.rules.can_transition(intervention.status, InterventionStatus.planification):
                moved = self.interventions.update_status(
                    intervention.id,
                    InterventionStatus.planification,
                    expected_status=intervention.status
                )
                if moved:
                    intervention = moved
                    logger.info(f"✅ Intervention {intervention.id} passée en planification (devis {accepted.id})")
                else:
                    logger.warning(f"Intervention {intervention.id} modifiée entre-temps, statut conservé")

            self._log_activity("quote_accepted", intervention.id, validator.id,
                               {"quote_id": accepted.id, "amount": accepted.amount})
            best_effort("side_effects:quote_accepted", self._after_decision, accepted, intervention, validator)
            return accepted

        return self._execute("quotes:accept", operation)

    def reject(self, quote_id: str, validator_id: str, reason: str) -> ServiceResult:
        """Refuser un devis envoyé ; le motif est obligatoire"""
        def operation() -> Quote:
            if not reason or not reason.strip():
                raise ValidationException("A rejection reason is required", field="reason")

            quote = self._require_quote(quote_id)
            validate_quote_transition(quote.status, QuoteStatus.rejected)

            validator = self._require_user(validator_id)
            require_manager(validator, "reject quotes")

            rejected = self._move(quote, QuoteStatus.rejected, {
                "rejection_reason": reason.strip(),
                "validated_by": validator.id,
                "validated_at": utcnow().isoformat()
            })

            self._log_activity("quote_rejected", quote.intervention_id, validator.id,
                               {"quote_id": rejected.id, "reason": rejected.rejection_reason})
            best_effort("side_effects:quote_rejected", self._after_decision, rejected, None, validator)
            return rejected

        return self._execute("quotes:reject", operation)

    # ========================================
    # Expiration
    # ========================================

    def _expire(self, quote: Quote, now: datetime) -> Quote:
        validate_quote_transition(quote.status, QuoteStatus.expired)
        if quote.valid_until is None or as_utc(quote.valid_until) >= now:
            raise ValidationException(
                "Quote has not reached its validity date",
                field="valid_until"
            )
        expired = self._move(quote, QuoteStatus.expired)
        self._log_activity("quote_expired", quote.intervention_id, SYSTEM_ACTOR, {"quote_id": quote.id})
        return expired

    def mark_expired(self, quote_id: str, now: Optional[datetime] = None) -> ServiceResult:
        return self._execute(
            "quotes:mark_expired",
            lambda: self._expire(self._require_quote(quote_id), as_utc(now) if now else utcnow())
        )

    def process_expired_quotes(self, team_id: Optional[str] = None, now: Optional[datetime] = None) -> ServiceResult:
        """
        Passer en expiré les devis envoyés dont la validité est dépassée

        Returns:
            ServiceResult contenant {processed, results}
        """
        def operation() -> Dict[str, Any]:
            reference = as_utc(now) if now else utcnow()
            candidates = self.quotes.get_expired_sent(reference.isoformat(), team_id)

            results = []
            for quote in candidates:
                try:
                    self._expire(quote, reference)
                    results.append({"quote_id": quote.id, "success": True})
                except Exception as e:
                    error = handle_error(e, "quotes:process_expired")
                    results.append({"quote_id": quote.id, "success": False, "error": error.message})

            processed = sum(1 for r in results if r["success"])
            logger.info(f"⏰ {processed}/{len(candidates)} devis expiré(s)")
            return {"processed": processed, "results": results}

        return self._execute("quotes:process_expired", operation)

    def get_statistics(self, team_id: str, user_id: str) -> ServiceResult:
        def operation():
            user = self._require_user(user_id)
            require_manager(user, "view quote statistics")
            if user.role != UserRole.ADMIN and user.team_id != team_id:
                raise PermissionException("Cannot view statistics of another team", action="quote_stats", user_id=user.id)
            return self.quotes.get_statistics(team_id)

        return self._execute("quotes:statistics", operation)


def get_quote_service(db: Client, **kwargs) -> QuoteService:
    return QuoteService(db, **kwargs)
