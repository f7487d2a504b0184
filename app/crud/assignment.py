# app/crud/assignment.py
"""
Opérations CRUD pour les affectations intervention/utilisateur
"""

from typing import Optional, List
from supabase import Client
import logging

from app.core.errors import storage_error
from app.models import Assignment, AssignmentCreate, AssignmentRole

logger = logging.getLogger(__name__)


class AssignmentCRUD:
    """Classe pour gérer les affectations (unique par intervention, utilisateur et rôle)"""

    def __init__(self, db: Client):
        self.db = db
        self.table_name = "intervention_assignments"

    def create(self, assignment_data: AssignmentCreate) -> Assignment:
        """
        Affecter un utilisateur à une intervention

        Raises:
            ConflictException: Si l'affectation existe déjà
        """
        try:
            data = assignment_data.model_dump(mode="json")

            response = self.db.table(self.table_name).insert(data).execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après insertion")

            logger.info(
                f"Utilisateur {assignment_data.user_id} affecté à {assignment_data.intervention_id} "
                f"({assignment_data.role.value})"
            )
            return Assignment(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur création affectation: {e}")
            raise storage_error(e, "assignments:create")

    def get(self, intervention_id: str, user_id: str, role: AssignmentRole) -> Optional[Assignment]:
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("intervention_id", intervention_id)\
                .eq("user_id", user_id)\
                .eq("role", AssignmentRole(role).value)\
                .execute()

            if response.data:
                return Assignment(**response.data[0])
            return None

        except Exception as e:
            logger.error(f"Erreur récupération affectation: {e}")
            raise storage_error(e, "assignments:get")

    def list_by_intervention(
        self,
        intervention_id: str,
        role: Optional[AssignmentRole] = None
    ) -> List[Assignment]:
        """
        Récupérer les affectations d'une intervention

        Args:
            intervention_id: UUID de l'intervention
            role: Filtrer sur un rôle (optionnel)
        """
        try:
            query = self.db.table(self.table_name)\
                .select("*")\
                .eq("intervention_id", intervention_id)

            if role:
                query = query.eq("role", AssignmentRole(role).value)

            response = query.order("created_at", desc=False).execute()

            return [Assignment(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération affectations de {intervention_id}: {e}")
            raise storage_error(e, "assignments:list_by_intervention")

    def user_ids(self, intervention_id: str, role: AssignmentRole) -> List[str]:
        """Identifiants des utilisateurs affectés pour un rôle"""
        return [a.user_id for a in self.list_by_intervention(intervention_id, role)]

    def list_by_user(self, user_id: str) -> List[Assignment]:
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("user_id", user_id)\
                .execute()

            return [Assignment(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération affectations de l'utilisateur {user_id}: {e}")
            raise storage_error(e, "assignments:list_by_user")

    def delete(self, intervention_id: str, user_id: str, role: Optional[AssignmentRole] = None) -> int:
        """
        Retirer un utilisateur d'une intervention

        Returns:
            Nombre d'affectations supprimées
        """
        try:
            query = self.db.table(self.table_name)\
                .delete()\
                .eq("intervention_id", intervention_id)\
                .eq("user_id", user_id)

            if role:
                query = query.eq("role", AssignmentRole(role).value)

            response = query.execute()
            removed = len(response.data or [])

            logger.info(f"{removed} affectation(s) retirée(s) pour {user_id} sur {intervention_id}")
            return removed

        except Exception as e:
            logger.error(f"Erreur suppression affectation: {e}")
            raise storage_error(e, "assignments:delete")


def get_assignment_crud(db: Client) -> AssignmentCRUD:
    """Factory function pour créer une instance AssignmentCRUD"""
    return AssignmentCRUD(db)
