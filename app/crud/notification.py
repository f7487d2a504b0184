# app/crud/notification.py
"""
Opérations CRUD pour les notifications applicatives
"""

from supabase import Client
import logging

from app.core.errors import storage_error
from app.models import Notification, NotificationCreate, ByRole, ByUser

logger = logging.getLogger(__name__)


class NotificationCRUD:
    """Classe pour enregistrer et lire les notifications"""

    def __init__(self, db: Client):
        self.db = db
        self.table_name = "notifications"

    def create(self, notification_data: NotificationCreate) -> Notification:
        """
        Enregistrer une notification

        L'audience est stockée dans target_roles OU target_users selon sa variante.
        """
        try:
            audience = notification_data.audience
            data = notification_data.model_dump(mode="json", exclude={"audience"})
            data["read"] = False

            if isinstance(audience, ByRole):
                data["target_roles"] = [role.value for role in audience.roles]
                data["target_users"] = None
            elif isinstance(audience, ByUser):
                data["target_roles"] = None
                data["target_users"] = list(audience.user_ids)

            response = self.db.table(self.table_name).insert(data).execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après insertion")

            logger.info(f"Notification '{notification_data.type}' créée pour l'équipe {notification_data.team_id}")
            return Notification(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur création notification: {e}")
            raise storage_error(e, "notifications:create")


def get_notification_crud(db: Client) -> NotificationCRUD:
    """Factory function pour créer une instance NotificationCRUD"""
    return NotificationCRUD(db)
