# app/crud/quote.py
"""
Opérations CRUD pour les devis
"""

from typing import Optional, List, Dict, Any
from supabase import Client
import logging

from app.core.clock import now_iso
from app.core.errors import NotFoundException, storage_error
from app.models import Quote, QuoteCreate, QuoteStatus, QuoteType, QuoteStats

logger = logging.getLogger(__name__)


class QuoteCRUD:
    """Classe pour gérer les opérations CRUD sur les devis"""

    def __init__(self, db: Client):
        self.db = db
        self.table_name = "intervention_quotes"

    def create(
        self,
        quote_data: QuoteCreate,
        created_by: str,
        team_id: Optional[str] = None,
        status: QuoteStatus = QuoteStatus.draft
    ) -> Quote:
        """
        Créer un devis

        Args:
            quote_data: Données du devis
            created_by: Auteur (prestataire ou gestionnaire)
            team_id: Équipe de l'intervention
            status: Statut initial (brouillon par défaut)
        """
        try:
            data = quote_data.model_dump(mode="json")
            data.update({
                "status": QuoteStatus(status).value,
                "created_by": created_by,
                "team_id": team_id,
            })

            response = self.db.table(self.table_name).insert(data).execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après insertion")

            logger.info(f"Devis créé: {response.data[0]['id']} (intervention {quote_data.intervention_id})")
            return Quote(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur création devis: {e}")
            raise storage_error(e, "quotes:create")

    def get_by_id(self, quote_id: str) -> Optional[Quote]:
        """Récupérer un devis par ID (hors devis supprimés)"""
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("id", quote_id)\
                .is_("deleted_at", "null")\
                .execute()

            if response.data:
                return Quote(**response.data[0])
            return None

        except Exception as e:
            logger.error(f"Erreur récupération devis {quote_id}: {e}")
            raise storage_error(e, "quotes:get_by_id")

    def get_by_intervention(self, intervention_id: str) -> List[Quote]:
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("intervention_id", intervention_id)\
                .is_("deleted_at", "null")\
                .order("created_at", desc=True)\
                .execute()

            return [Quote(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération devis de l'intervention {intervention_id}: {e}")
            raise storage_error(e, "quotes:get_by_intervention")

    def update(self, quote_id: str, update_dict: Dict[str, Any]) -> Quote:
        """
        Mettre à jour un devis

        Raises:
            NotFoundException: Si le devis n'existe pas
        """
        try:
            data = dict(update_dict)
            data["updated_at"] = now_iso()

            response = self.db.table(self.table_name)\
                .update(data)\
                .eq("id", quote_id)\
                .execute()

            if not response.data:
                raise NotFoundException("Quote", quote_id)

            logger.info(f"Devis {quote_id} mis à jour")
            return Quote(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur mise à jour devis {quote_id}: {e}")
            raise storage_error(e, "quotes:update")

    def update_status(
        self,
        quote_id: str,
        new_status: QuoteStatus,
        expected_status: QuoteStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> Optional[Quote]:
        """
        Changer le statut d'un devis si son statut courant est celui attendu

        Returns:
            Devis mis à jour, ou None si le statut a changé entre-temps
        """
        try:
            data = dict(extra or {})
            data.update({"status": QuoteStatus(new_status).value, "updated_at": now_iso()})

            response = self.db.table(self.table_name)\
                .update(data)\
                .eq("id", quote_id)\
                .eq("status", QuoteStatus(expected_status).value)\
                .execute()

            if not response.data:
                logger.warning(f"Devis {quote_id}: statut attendu '{expected_status}' introuvable")
                return None

            logger.info(f"Devis {quote_id}: {expected_status} -> {new_status}")
            return Quote(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur changement statut devis {quote_id}: {e}")
            raise storage_error(e, "quotes:update_status")

    def get_expired_sent(self, now_iso_value: str, team_id: Optional[str] = None) -> List[Quote]:
        """
        Devis envoyés dont la date de validité est dépassée

        Args:
            now_iso_value: Instant de référence (ISO 8601)
            team_id: Restreindre à une équipe (optionnel)
        """
        try:
            query = self.db.table(self.table_name)\
                .select("*")\
                .eq("status", QuoteStatus.sent.value)\
                .lt("valid_until", now_iso_value)\
                .is_("deleted_at", "null")

            if team_id:
                query = query.eq("team_id", team_id)

            response = query.execute()

            return [Quote(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération devis expirés: {e}")
            raise storage_error(e, "quotes:get_expired_sent")

    def get_accepted(self, intervention_id: str, quote_type: QuoteType) -> List[Quote]:
        """Devis déjà acceptés pour une intervention et un type"""
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("intervention_id", intervention_id)\
                .eq("quote_type", QuoteType(quote_type).value)\
                .eq("status", QuoteStatus.accepted.value)\
                .is_("deleted_at", "null")\
                .execute()

            return [Quote(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération devis acceptés: {e}")
            raise storage_error(e, "quotes:get_accepted")

    def get_statistics(self, team_id: str) -> QuoteStats:
        """
        Statistiques des devis d'une équipe

        Returns:
            Répartition par statut et type, montants et taux d'acceptation
        """
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("team_id", team_id)\
                .is_("deleted_at", "null")\
                .execute()

            rows = response.data or []
            stats = QuoteStats(total=len(rows))

            for row in rows:
                stats.by_status[row["status"]] = stats.by_status.get(row["status"], 0) + 1
                stats.by_type[row["quote_type"]] = stats.by_type.get(row["quote_type"], 0) + 1
                amount = float(row.get("amount") or 0)
                stats.total_amount += amount
                if row["status"] == QuoteStatus.accepted.value:
                    stats.accepted_amount += amount

            if rows:
                stats.average_amount = round(stats.total_amount / len(rows), 2)

            decided = stats.by_status[QuoteStatus.accepted.value] + stats.by_status[QuoteStatus.rejected.value]
            if decided:
                stats.acceptance_rate = round(stats.by_status[QuoteStatus.accepted.value] / decided * 100)

            return stats

        except Exception as e:
            logger.error(f"Erreur calcul statistiques devis: {e}")
            raise storage_error(e, "quotes:get_statistics")


def get_quote_crud(db: Client) -> QuoteCRUD:
    """Factory function pour créer une instance QuoteCRUD"""
    return QuoteCRUD(db)
