# app/crud/user.py
"""
Lecture des utilisateurs (identité, rôle, équipe)
"""

from typing import Optional, List, Iterable
from supabase import Client
import logging

from app.core.errors import storage_error
from app.models import User, UserRole

logger = logging.getLogger(__name__)


class UserCRUD:
    """Accès en lecture à la table users"""

    def __init__(self, db: Client):
        self.db = db
        self.table_name = "users"

    def get_by_id(self, user_id: str) -> Optional[User]:
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("id", user_id)\
                .execute()

            if response.data:
                return User(**response.data[0])
            return None

        except Exception as e:
            logger.error(f"Erreur récupération utilisateur {user_id}: {e}")
            raise storage_error(e, "users:get_by_id")

    def get_by_ids(self, user_ids: Iterable[str]) -> List[User]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .in_("id", ids)\
                .execute()

            return [User(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération utilisateurs: {e}")
            raise storage_error(e, "users:get_by_ids")

    def get_team_members(self, team_id: str, roles: Optional[Iterable[UserRole]] = None) -> List[User]:
        """
        Membres d'une équipe

        Args:
            team_id: UUID de l'équipe
            roles: Restreindre à certains rôles (optionnel)
        """
        try:
            query = self.db.table(self.table_name)\
                .select("*")\
                .eq("team_id", team_id)

            if roles:
                query = query.in_("role", [UserRole(r).value for r in roles])

            response = query.execute()

            return [User(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération membres de l'équipe {team_id}: {e}")
            raise storage_error(e, "users:get_team_members")


def get_user_crud(db: Client) -> UserCRUD:
    """Factory function pour créer une instance UserCRUD"""
    return UserCRUD(db)
