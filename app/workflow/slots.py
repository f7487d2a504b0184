"""
Prédicats sur les créneaux et leurs réponses.
"""

from typing import Iterable, Optional, Sequence

from app.models.intervention import InterventionStatus
from app.models.time_slot import ResponseType, TimeSlot, TimeSlotStatus
from app.models.user import UserRole

# Un créneau dans l'un de ces statuts n'accepte plus de réponse
CLOSED_SLOT_STATUSES = frozenset({
    TimeSlotStatus.selected,
    TimeSlotStatus.rejected,
    TimeSlotStatus.cancelled,
})


def _accepted_by(slot: TimeSlot, role: UserRole) -> bool:
    return any(
        r.user_role == role and r.response == ResponseType.accepted
        for r in slot.responses
    )


def can_finalize(slot: TimeSlot) -> bool:
    """Vrai si au moins un locataire ET un prestataire ont accepté le créneau"""
    return _accepted_by(slot, UserRole.LOCATAIRE) and _accepted_by(slot, UserRole.PRESTATAIRE)


def has_pending_responses(slot: TimeSlot) -> bool:
    return any(r.response == ResponseType.pending for r in slot.responses)


def can_auto_confirm(slot: TimeSlot, intervention_status: InterventionStatus) -> bool:
    """Confirmation automatique : planification en cours, plus de réponse en attente, créneau finalisable"""
    if InterventionStatus(intervention_status) != InterventionStatus.planification:
        return False
    if has_pending_responses(slot):
        return False
    return can_finalize(slot)


def pending_participants_message(
    status: InterventionStatus,
    slots: Optional[Sequence[TimeSlot]] = None
) -> Optional[str]:
    """
    Résumé de l'avancement de la planification.

    Returns:
        Message destiné aux participants, ou None hors planification
    """
    if InterventionStatus(status) != InterventionStatus.planification:
        return None
    if not slots:
        return "Planification en cours"

    responses = [r for slot in slots for r in slot.responses]
    tenant_ok = any(r.user_role == UserRole.LOCATAIRE and r.response == ResponseType.accepted for r in responses)
    provider_ok = any(r.user_role == UserRole.PRESTATAIRE and r.response == ResponseType.accepted for r in responses)

    if not tenant_ok and not provider_ok:
        return "En attente des disponibilités du locataire et prestataire"
    if not tenant_ok:
        return "En attente des disponibilités du locataire"
    if not provider_ok:
        return "En attente des disponibilités du prestataire"
    return "Créneaux validés, en attente de confirmation finale"


def open_siblings(slots: Iterable[TimeSlot], selected_id: str) -> list[TimeSlot]:
    """Créneaux encore ouverts de la même intervention, hors créneau retenu"""
    return [s for s in slots if s.id != selected_id and s.status not in CLOSED_SLOT_STATUSES]
