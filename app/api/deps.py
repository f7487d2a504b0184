"""
Dépendances FastAPI : acteur courant, construction des services à partir
de la configuration, conversion des ServiceResult en réponses HTTP.
"""

from typing import Any, Optional
from fastapi import Depends, Header, HTTPException, status
from supabase import Client

from app.core.config import settings
from app.core.errors import ErrorKind, ServiceResult
from app.crud import get_user_crud
from app.db import get_supabase
from app.models import UserRole
from app.services import (
    EmailNotificationService, InterventionService, NotificationService,
    QuoteService, TimeSlotService
)
from app.services.quote_service import SYSTEM_ACTOR
from app.workflow import DEFAULT_RULES

# Correspondance type d'erreur -> code HTTP
ERROR_STATUS = {
    ErrorKind.not_found: status.HTTP_404_NOT_FOUND,
    ErrorKind.validation_error: status.HTTP_400_BAD_REQUEST,
    ErrorKind.permission_denied: status.HTTP_403_FORBIDDEN,
    ErrorKind.conflict: status.HTTP_409_CONFLICT,
    ErrorKind.storage_failure: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.internal_error: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_current_user_id(x_user_id: str = Header(..., description="Identifiant de l'utilisateur courant")) -> str:
    """L'authentification est assurée en amont ; l'API reçoit l'identifiant de l'acteur"""
    return x_user_id


def require_system_caller(
    authorization: Optional[str] = Header(None, description="Bearer <CRON_SECRET> pour les tâches planifiées"),
    x_user_id: Optional[str] = Header(None, description="Administrateur déclenchant la tâche à la main"),
    db: Client = Depends(get_supabase)
) -> str:
    """
    Tâches système (expiration des devis) : secret cron ou administrateur

    Returns:
        "system" pour le cron, sinon l'identifiant de l'administrateur

    Raises:
        HTTPException: 401 sans secret valide ni utilisateur, 403 si l'utilisateur n'est pas administrateur
    """
    if settings.CRON_SECRET and authorization == f"Bearer {settings.CRON_SECRET}":
        return SYSTEM_ACTOR

    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"kind": ErrorKind.permission_denied.value, "message": "Cron secret or admin user required"}
        )

    user = get_user_crud(db).get_by_id(x_user_id)
    if not user or user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"kind": ErrorKind.permission_denied.value, "message": "Only an admin can run system tasks"}
        )
    return user.id


def get_email_service() -> EmailNotificationService:
    return EmailNotificationService(
        api_key=settings.RESEND_API_KEY,
        sender=settings.EMAIL_FROM,
        app_url=settings.APP_URL
    )


def get_time_slot_service(
    db: Client = Depends(get_supabase),
    emails: EmailNotificationService = Depends(get_email_service)
) -> TimeSlotService:
    return TimeSlotService(
        db,
        DEFAULT_RULES,
        NotificationService(db),
        emails,
        require_finalization=settings.REQUIRE_SLOT_FINALIZATION,
        auto_cancel_siblings=settings.AUTO_CANCEL_SIBLING_SLOTS
    )


def get_quote_service(
    db: Client = Depends(get_supabase),
    emails: EmailNotificationService = Depends(get_email_service)
) -> QuoteService:
    return QuoteService(
        db,
        DEFAULT_RULES,
        NotificationService(db),
        emails,
        max_amount=settings.QUOTE_MAX_AMOUNT,
        amount_tolerance=settings.QUOTE_AMOUNT_TOLERANCE
    )


def get_intervention_service(
    db: Client = Depends(get_supabase),
    emails: EmailNotificationService = Depends(get_email_service),
    time_slots: TimeSlotService = Depends(get_time_slot_service),
    quotes: QuoteService = Depends(get_quote_service)
) -> InterventionService:
    return InterventionService(db, DEFAULT_RULES, NotificationService(db), emails, time_slots, quotes)


def unwrap(result: ServiceResult) -> Any:
    """
    Renvoie les données d'un résultat réussi

    Raises:
        HTTPException: code HTTP selon le type d'erreur, detail = {kind, message}
    """
    if result.success:
        return result.data
    error = result.error
    raise HTTPException(
        status_code=ERROR_STATUS.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"kind": error.kind.value, "message": error.message}
    )
