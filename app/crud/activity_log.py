# app/crud/activity_log.py
"""
Journal d'activité : ajout et lecture uniquement
"""

from typing import List
from supabase import Client
import logging

from app.core.errors import storage_error
from app.models import ActivityLog, ActivityLogCreate

logger = logging.getLogger(__name__)


class ActivityLogCRUD:
    """Aucune méthode de modification ni de suppression : les entrées sont immuables"""

    def __init__(self, db: Client):
        self.db = db
        self.table_name = "activity_logs"

    def append(self, entry: ActivityLogCreate) -> ActivityLog:
        try:
            data = entry.model_dump(mode="json")
            data["table_name"] = "interventions"

            response = self.db.table(self.table_name).insert(data).execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après insertion")

            logger.debug(f"Activité '{entry.action}' journalisée pour {entry.intervention_id}")
            return ActivityLog(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur journalisation activité '{entry.action}': {e}")
            raise storage_error(e, "activity_logs:append")

    def get_by_intervention(self, intervention_id: str) -> List[ActivityLog]:
        """Historique chronologique d'une intervention"""
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("intervention_id", intervention_id)\
                .order("created_at", desc=False)\
                .execute()

            return [ActivityLog(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération journal de {intervention_id}: {e}")
            raise storage_error(e, "activity_logs:get_by_intervention")


def get_activity_log_crud(db: Client) -> ActivityLogCRUD:
    """Factory function pour créer une instance ActivityLogCRUD"""
    return ActivityLogCRUD(db)
