"""
Service de notifications applicatives

Appelé par le workflow après chaque changement d'état ; ses échecs sont
absorbés par l'appelant (exécution au mieux).
"""

from typing import Iterable, Optional, Union
from supabase import Client
import logging

from app.crud import get_notification_crud
from app.models import ByRole, ByUser, Notification, NotificationCreate, UserRole

logger = logging.getLogger(__name__)


class NotificationService:

    def __init__(self, db: Client):
        self.crud = get_notification_crud(db)

    def notify(
        self,
        type: str,
        title: str,
        message: str,
        team_id: str,
        audience: Union[ByRole, ByUser],
        intervention_id: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> Notification:
        """
        Mettre une notification en file

        Args:
            type: Catégorie (intervention, status_change, quote...)
            title: Titre court
            message: Corps du message
            team_id: Équipe concernée
            audience: ByRole(roles) ou ByUser(user_ids)
            intervention_id: Intervention liée
            created_by: Auteur de l'action à l'origine de la notification
        """
        notification = self.crud.create(NotificationCreate(
            type=type,
            title=title,
            message=message,
            team_id=team_id,
            intervention_id=intervention_id,
            created_by=created_by,
            audience=audience
        ))
        logger.debug(f"🔔 Notification {notification.id} ({audience.kind})")
        return notification

    def notify_users(self, user_ids: Iterable[str], exclude: Optional[str] = None, **kwargs) -> Optional[Notification]:
        """
        Notifier une liste d'utilisateurs (l'auteur de l'action est exclu)

        Returns:
            Notification créée, ou None si personne n'est à prévenir
        """
        targets = [uid for uid in dict.fromkeys(user_ids) if uid and uid != exclude]
        if not targets:
            return None
        return self.notify(audience=ByUser(user_ids=targets), **kwargs)

    def notify_roles(self, roles: Iterable[UserRole], **kwargs) -> Notification:
        return self.notify(audience=ByRole(roles=list(roles)), **kwargs)


def get_notification_service(db: Client) -> NotificationService:
    return NotificationService(db)
