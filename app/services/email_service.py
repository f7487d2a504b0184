"""
Emails transactionnels du workflow, envoyés via Resend.

Sans RESEND_API_KEY, les envois sont ignorés (journalisés). Une erreur de
Resend est levée : c'est l'appelant qui décide si l'email est bloquant ou non.
"""

from typing import List, Optional
from datetime import datetime
from html import escape
import logging

import resend
from pydantic import BaseModel, Field

from app.models import Intervention, Quote, User

logger = logging.getLogger(__name__)


class InterventionEmailData(BaseModel):
    """Données communes aux emails d'intervention"""
    intervention: Intervention
    recipients: List[User] = Field(default_factory=list)
    actor: Optional[User] = None
    reason: Optional[str] = None
    scheduled_date: Optional[datetime] = None


class QuoteEmailData(InterventionEmailData):
    """Emails liés à un devis"""
    quote: Optional[Quote] = None
    provider: Optional[User] = None


class EmailNotificationService:
    """Un email par événement du cycle de vie"""

    def __init__(
        self,
        api_key: Optional[str],
        sender: str,
        app_url: str
    ):
        self.api_key = api_key
        self.sender = sender
        self.app_url = app_url.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def _link(self, intervention: Intervention) -> str:
        return f"{self.app_url}/interventions/{intervention.id}"

    def _render(self, heading: str, lines: List[str], intervention: Intervention) -> str:
        body = "".join(f"<p>{escape(line)}</p>" for line in lines if line)
        return (
            f"<h2>{escape(heading)}</h2>"
            f"<p><strong>{escape(intervention.reference or '')}</strong> {escape(intervention.title)}</p>"
            f"{body}"
            f'<p><a href="{self._link(intervention)}">Voir l\'intervention</a></p>'
        )

    def send(self, recipients: List[User], subject: str, html: str) -> bool:
        """
        Envoyer un email aux destinataires disposant d'une adresse

        Returns:
            True si l'email est parti, False s'il a été ignoré

        Raises:
            resend.exceptions.ResendError: Si Resend refuse l'envoi
        """
        to = [user.email for user in recipients if user.email]
        if not to:
            logger.debug(f"Email '{subject}' ignoré : aucun destinataire")
            return False
        if not self.enabled:
            logger.info(f"📧 RESEND_API_KEY absente, email '{subject}' non envoyé ({len(to)} destinataire(s))")
            return False

        resend.api_key = self.api_key
        response = resend.Emails.send({
            "from": self.sender,
            "to": to,
            "subject": subject,
            "html": html,
        })

        logger.info(f"📧 Email '{subject}' envoyé à {len(to)} destinataire(s): {response}")
        return True

    # ========================================
    # Événements d'intervention
    # ========================================

    def send_created(self, data: InterventionEmailData) -> bool:
        i = data.intervention
        return self.send(
            data.recipients,
            f"Nouvelle demande d'intervention : {i.title}",
            self._render("Nouvelle demande d'intervention", [
                f"Urgence : {i.urgency.value}",
                i.description,
            ], i)
        )

    def send_approved(self, data: InterventionEmailData) -> bool:
        i = data.intervention
        return self.send(
            data.recipients,
            f"Intervention approuvée : {i.title}",
            self._render("Votre demande a été approuvée", [
                f"Approuvée par {data.actor.display_name}" if data.actor else "",
            ], i)
        )

    def send_rejected(self, data: InterventionEmailData) -> bool:
        i = data.intervention
        return self.send(
            data.recipients,
            f"Intervention refusée : {i.title}",
            self._render("Votre demande a été refusée", [
                f"Motif : {data.reason}" if data.reason else "",
            ], i)
        )

    def send_scheduled(self, data: InterventionEmailData) -> bool:
        i = data.intervention
        when = data.scheduled_date or i.scheduled_date
        return self.send(
            data.recipients,
            f"Intervention planifiée : {i.title}",
            self._render("Rendez-vous confirmé", [
                f"Date : {when:%d/%m/%Y à %H:%M}" if when else "",
            ], i)
        )

    def send_completed(self, data: InterventionEmailData) -> bool:
        i = data.intervention
        return self.send(
            data.recipients,
            f"Intervention terminée : {i.title}",
            self._render("Les travaux sont terminés", [
                "Merci de valider la fin de l'intervention.",
            ], i)
        )

    # ========================================
    # Événements de devis
    # ========================================

    def send_quote_requested(self, data: QuoteEmailData) -> bool:
        i = data.intervention
        deadline = data.quote.valid_until if data.quote else None
        return self.send(
            data.recipients,
            f"Demande de devis : {i.title}",
            self._render("Un devis vous est demandé", [
                i.description,
                f"À transmettre avant le {deadline:%d/%m/%Y}" if deadline else "",
            ], i)
        )

    def send_quote_submitted(self, data: QuoteEmailData) -> bool:
        i = data.intervention
        q = data.quote
        return self.send(
            data.recipients,
            f"Devis reçu : {i.title}",
            self._render("Un devis a été envoyé", [
                f"Montant : {q.amount:.2f} {q.currency}" if q else "",
                f"Prestataire : {data.provider.name}" if data.provider else "",
            ], i)
        )

    def send_quote_approved(self, data: QuoteEmailData) -> bool:
        i = data.intervention
        q = data.quote
        return self.send(
            data.recipients,
            f"Devis accepté : {i.title}",
            self._render("Votre devis a été accepté", [
                f"Montant : {q.amount:.2f} {q.currency}" if q else "",
            ], i)
        )

    def send_quote_rejected(self, data: QuoteEmailData) -> bool:
        i = data.intervention
        return self.send(
            data.recipients,
            f"Devis refusé : {i.title}",
            self._render("Votre devis a été refusé", [
                f"Motif : {data.reason}" if data.reason else "",
            ], i)
        )
