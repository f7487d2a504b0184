# app/api/v1/endpoints/quotes.py
"""
Routes API pour les devis
"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
import logging

from app.api.deps import get_current_user_id, get_quote_service, require_system_caller, unwrap
from app.models import Quote, QuoteCreate, QuoteUpdate, QuoteDecision, QuoteStats
from app.services import QuoteService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=Quote, status_code=status.HTTP_201_CREATED)
def create_quote(
    quote_data: QuoteCreate,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    """
    Créer un devis (brouillon)

    - **amount** : entre 0 et le plafond configuré
    - **line_items** : si fournies, leur total doit égaler `amount` (tolérance 0,01)
    """
    return unwrap(service.create(quote_data, user_id))


@router.get("/intervention/{intervention_id}", response_model=List[Quote])
def list_intervention_quotes(
    intervention_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    return unwrap(service.list_for_intervention(intervention_id, user_id))


@router.get("/stats/{team_id}", response_model=QuoteStats)
def quote_statistics(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    return unwrap(service.get_statistics(team_id, user_id))


@router.post("/process-expired")
def process_expired_quotes(
    team_id: Optional[str] = Query(None, description="Restreindre à une équipe"),
    caller: str = Depends(require_system_caller),
    service: QuoteService = Depends(get_quote_service)
):
    """
    Passe en `expired` les devis envoyés dont la validité est dépassée

    Réservé au cron (`Authorization: Bearer <CRON_SECRET>`) ou à un administrateur.
    """
    logger.info(f"⏰ Balayage des devis expirés demandé par {caller}")
    return unwrap(service.process_expired_quotes(team_id))


@router.get("/{quote_id}", response_model=Quote)
def get_quote(
    quote_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    return unwrap(service.get_quote(quote_id, user_id))


@router.patch("/{quote_id}", response_model=Quote)
def update_quote(
    quote_id: str,
    quote_data: QuoteUpdate,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    """Modifier un brouillon"""
    return unwrap(service.update(quote_id, quote_data, user_id))


@router.post("/{quote_id}/send", response_model=Quote)
def send_quote(
    quote_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    return unwrap(service.send(quote_id, user_id))


@router.post("/{quote_id}/accept", response_model=Quote)
def accept_quote(
    quote_id: str,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    return unwrap(service.accept(quote_id, user_id))


@router.post("/{quote_id}/reject", response_model=Quote)
def reject_quote(
    quote_id: str,
    body: QuoteDecision,
    user_id: str = Depends(get_current_user_id),
    service: QuoteService = Depends(get_quote_service)
):
    return unwrap(service.reject(quote_id, user_id, body.reason))


@router.post("/{quote_id}/expire", response_model=Quote)
def expire_quote(
    quote_id: str,
    caller: str = Depends(require_system_caller),
    service: QuoteService = Depends(get_quote_service)
):
    logger.info(f"⏰ Expiration du devis {quote_id} demandée par {caller}")
    return unwrap(service.mark_expired(quote_id))
