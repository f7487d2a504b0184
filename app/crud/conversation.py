"""
Opérations CRUD pour les fils de discussion des interventions
"""

from supabase import Client
import logging

from app.core.errors import storage_error
from app.models import ConversationThread, ThreadCreate, THREAD_TITLES

logger = logging.getLogger(__name__)


class ConversationCRUD:
    """Classe pour gérer les fils de discussion d'une intervention"""

    def __init__(self, db: Client):
        self.db = db
        self.threads_table = "conversation_threads"

    def create_thread(self, thread_data: ThreadCreate) -> ConversationThread:
        """
        Créer un fil de discussion

        Args:
            thread_data: Intervention, type et participants du fil

        Returns:
            Fil créé (titre par défaut selon le type)
        """
        try:
            data = thread_data.model_dump(mode="json")
            data["title"] = thread_data.title or THREAD_TITLES[thread_data.thread_type]
            data["message_count"] = 0

            response = self.db.table(self.threads_table)\
                .insert(data)\
                .execute()

            if not response.data:
                raise Exception("Aucune donnée retournée")

            logger.info(
                f"Fil '{thread_data.thread_type.value}' créé pour l'intervention {thread_data.intervention_id}"
            )
            return ConversationThread(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur création fil de discussion: {e}")
            raise storage_error(e, "conversations:create_thread")


def get_conversation_crud(db: Client) -> ConversationCRUD:
    """Factory function pour créer une instance ConversationCRUD"""
    return ConversationCRUD(db)
