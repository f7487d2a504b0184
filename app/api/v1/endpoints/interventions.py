# app/api/v1/endpoints/interventions.py
"""
Routes API pour le cycle de vie des interventions, les créneaux et les affectations
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from datetime import datetime
import logging

from app.api.deps import (
    get_current_user_id, get_intervention_service, get_time_slot_service, unwrap
)
from app.models import (
    Intervention, InterventionCreate, InterventionUpdate, InterventionList, InterventionFilters,
    InterventionStatus, InterventionUrgency, InterventionType, DashboardStats,
    CommentRequest, ReasonRequest, TenantValidationRequest, FinalizeRequest, ConfirmSlotRequest,
    Assignment, AssignRequest, AssignmentRole, ActivityLog,
    TimeSlot, TimeSlotResponse, ProposeSlotsRequest, SlotResponseRequest, QuoteRequest
)
from app.services import InterventionService, TimeSlotService

router = APIRouter()
logger = logging.getLogger(__name__)


# ==================== CRÉATION ET LECTURE ====================

@router.post("/", response_model=Intervention, status_code=status.HTTP_201_CREATED)
def create_intervention(
    intervention_data: InterventionCreate,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    """
    Créer une intervention

    - **locataire** : la demande est créée au statut `demande`
    - **gestionnaire / admin** : l'intervention est créée directement `approuvee`
    """
    return unwrap(service.request_intervention(intervention_data, user_id))


@router.get("/", response_model=List[InterventionList])
def list_interventions(
    skip: int = Query(0, ge=0, description="Nombre d'éléments à sauter"),
    limit: int = Query(50, ge=1, le=200, description="Nombre maximum d'éléments"),
    status: Optional[InterventionStatus] = Query(None, description="Filtrer par statut"),
    urgency: Optional[InterventionUrgency] = Query(None, description="Filtrer par urgence"),
    type: Optional[InterventionType] = Query(None, description="Filtrer par type"),
    building_id: Optional[str] = Query(None),
    lot_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    """Interventions de l'équipe du gestionnaire, avec filtres optionnels"""
    filters = InterventionFilters(
        status=status, urgency=urgency, type=type,
        building_id=building_id, lot_id=lot_id,
        date_from=date_from, date_to=date_to
    )
    return unwrap(service.list_interventions(user_id, filters, skip, limit))


@router.get("/mine", response_model=List[InterventionList])
def my_interventions(
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    """Interventions auxquelles l'utilisateur participe"""
    return unwrap(service.get_my_interventions(user_id))


@router.get("/dashboard", response_model=DashboardStats)
def dashboard_stats(
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.get_dashboard_stats(user_id))


@router.get("/{intervention_id}", response_model=Intervention)
def get_intervention(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.get_intervention(intervention_id, user_id))


@router.patch("/{intervention_id}", response_model=Intervention)
def update_intervention(
    intervention_id: str,
    intervention_data: InterventionUpdate,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    """Modifier les champs descriptifs (le statut ne change que par les actions)"""
    return unwrap(service.update_intervention(intervention_id, user_id, intervention_data))


@router.delete("/{intervention_id}", response_model=Intervention)
def delete_intervention(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    """Suppression logique (gestionnaire uniquement)"""
    return unwrap(service.delete(intervention_id, user_id))


@router.get("/{intervention_id}/activity", response_model=List[ActivityLog])
def intervention_activity(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.get_activity(intervention_id, user_id))


# ==================== ACTIONS DU CYCLE DE VIE ====================

@router.post("/{intervention_id}/approve", response_model=Intervention)
def approve_intervention(
    intervention_id: str,
    body: Optional[CommentRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.approve(intervention_id, user_id, body.comment if body else None))


@router.post("/{intervention_id}/reject", response_model=Intervention)
def reject_intervention(
    intervention_id: str,
    body: ReasonRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.reject(intervention_id, user_id, body.reason))


@router.post("/{intervention_id}/request-quote")
def request_quote(
    intervention_id: str,
    body: QuoteRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    """
    Demander un devis à un prestataire

    Affecte le prestataire, passe l'intervention en `demande_de_devis`
    et crée un devis en brouillon.
    """
    return unwrap(service.request_quote(intervention_id, user_id, body.provider_id, body.valid_until))


@router.post("/{intervention_id}/start-planning", response_model=Intervention)
def start_planning(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.start_planning(intervention_id, user_id))


@router.post("/{intervention_id}/confirm-schedule", response_model=Intervention)
def confirm_schedule(
    intervention_id: str,
    body: ConfirmSlotRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.confirm_schedule(intervention_id, user_id, body.slot_id))


@router.post("/{intervention_id}/start", response_model=Intervention)
def start_intervention(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.start(intervention_id, user_id))


@router.post("/{intervention_id}/complete", response_model=Intervention)
def complete_intervention(
    intervention_id: str,
    body: Optional[CommentRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.complete_by_provider(intervention_id, user_id, body.comment if body else None))


@router.post("/{intervention_id}/validate", response_model=Intervention)
def validate_intervention(
    intervention_id: str,
    body: Optional[TenantValidationRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    body = body or TenantValidationRequest()
    return unwrap(service.validate_by_tenant(intervention_id, user_id, body.satisfaction, body.comment))


@router.post("/{intervention_id}/finalize", response_model=Intervention)
def finalize_intervention(
    intervention_id: str,
    body: Optional[FinalizeRequest] = None,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    body = body or FinalizeRequest()
    return unwrap(service.finalize_by_manager(intervention_id, user_id, body.final_cost, body.comment))


@router.post("/{intervention_id}/cancel", response_model=Intervention)
def cancel_intervention(
    intervention_id: str,
    body: ReasonRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.cancel(intervention_id, user_id, body.reason))


# ==================== AFFECTATIONS ====================

@router.post("/{intervention_id}/assignments", response_model=Assignment, status_code=status.HTTP_201_CREATED)
def assign_user(
    intervention_id: str,
    body: AssignRequest,
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.assign_user(intervention_id, user_id, body.user_id, body.role, body.is_lead))


@router.delete("/{intervention_id}/assignments/{assignee_id}")
def unassign_user(
    intervention_id: str,
    assignee_id: str,
    role: Optional[AssignmentRole] = Query(None, description="Rôle à retirer (tous par défaut)"),
    user_id: str = Depends(get_current_user_id),
    service: InterventionService = Depends(get_intervention_service)
):
    return unwrap(service.unassign_user(intervention_id, user_id, assignee_id, role))


# ==================== CRÉNEAUX ====================

@router.get("/{intervention_id}/time-slots")
def list_time_slots(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TimeSlotService = Depends(get_time_slot_service)
):
    """Créneaux avec réponses et résumé de l'avancement de la planification"""
    return unwrap(service.list_slots(intervention_id, user_id))


@router.post("/{intervention_id}/time-slots", response_model=List[TimeSlot], status_code=status.HTTP_201_CREATED)
def propose_time_slots(
    intervention_id: str,
    body: ProposeSlotsRequest,
    user_id: str = Depends(get_current_user_id),
    service: TimeSlotService = Depends(get_time_slot_service)
):
    return unwrap(service.propose(intervention_id, body.slots, user_id))


@router.post("/time-slots/{slot_id}/responses", response_model=TimeSlotResponse)
def respond_to_time_slot(
    slot_id: str,
    body: SlotResponseRequest,
    user_id: str = Depends(get_current_user_id),
    service: TimeSlotService = Depends(get_time_slot_service)
):
    return unwrap(service.record_response(slot_id, user_id, body.accepted, body.note))


@router.get("/time-slots/{slot_id}/finalization")
def time_slot_finalization(
    slot_id: str,
    service: TimeSlotService = Depends(get_time_slot_service)
):
    """Le créneau peut-il être confirmé ?"""
    return {
        "can_finalize": unwrap(service.can_finalize(slot_id)),
        "can_auto_confirm": unwrap(service.can_auto_confirm(slot_id)),
    }


@router.post("/time-slots/{slot_id}/cancel", response_model=TimeSlot)
def cancel_time_slot(
    slot_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TimeSlotService = Depends(get_time_slot_service)
):
    return unwrap(service.cancel_slot(slot_id, user_id))
