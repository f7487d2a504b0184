# app/crud/intervention.py
"""
Opérations CRUD pour les interventions
"""

from typing import Optional, List, Dict, Any
from supabase import Client
from datetime import datetime
import uuid
import logging

from app.core.clock import utcnow, now_iso, as_utc
from app.core.errors import NotFoundException, ValidationException, storage_error
from app.models import (
    Intervention, InterventionCreate, InterventionList, InterventionFilters,
    InterventionStatus, InterventionUrgency, DashboardStats
)

logger = logging.getLogger(__name__)


class InterventionCRUD:
    """Classe pour gérer les opérations CRUD sur les interventions"""

    def __init__(self, db: Client):
        self.db = db
        self.table_name = "interventions"

    @staticmethod
    def _new_reference() -> str:
        return f"INT-{utcnow():%y%m%d}-{uuid.uuid4().hex[:6].upper()}"

    def create(self, intervention_data: InterventionCreate, status: InterventionStatus) -> Intervention:
        """
        Créer une nouvelle intervention

        Args:
            intervention_data: Données saisies
            status: Statut initial (demande ou approuvee)

        Returns:
            Intervention créée avec son ID
        """
        try:
            data = intervention_data.model_dump(mode="json")
            data.update({
                "status": InterventionStatus(status).value,
                "reference": self._new_reference(),
                "requested_date": now_iso(),
            })

            response = self.db.table(self.table_name).insert(data).execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après insertion")

            logger.info(f"Intervention créée avec succès: {response.data[0]['id']}")
            return Intervention(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur création intervention: {e}")
            raise storage_error(e, "interventions:create")

    def get_by_id(self, intervention_id: str, include_deleted: bool = False) -> Optional[Intervention]:
        """
        Récupérer une intervention par son ID

        Args:
            intervention_id: UUID de l'intervention
            include_deleted: Inclure les interventions supprimées logiquement

        Returns:
            Intervention trouvée ou None
        """
        try:
            query = self.db.table(self.table_name)\
                .select("*")\
                .eq("id", intervention_id)

            if not include_deleted:
                query = query.is_("deleted_at", "null")

            response = query.execute()

            if response.data:
                return Intervention(**response.data[0])
            return None

        except Exception as e:
            logger.error(f"Erreur récupération intervention {intervention_id}: {e}")
            raise storage_error(e, "interventions:get_by_id")

    def get_all(
        self,
        team_id: str,
        filters: Optional[InterventionFilters] = None,
        skip: int = 0,
        limit: int = 50
    ) -> List[InterventionList]:
        """
        Récupérer les interventions d'une équipe avec filtres optionnels
        """
        try:
            query = self.db.table(self.table_name)\
                .select("*")\
                .eq("team_id", team_id)\
                .is_("deleted_at", "null")

            if filters:
                if filters.status:
                    query = query.eq("status", filters.status.value)
                if filters.urgency:
                    query = query.eq("urgency", filters.urgency.value)
                if filters.type:
                    query = query.eq("type", filters.type.value)
                if filters.building_id:
                    query = query.eq("building_id", filters.building_id)
                if filters.lot_id:
                    query = query.eq("lot_id", filters.lot_id)
                if filters.date_from:
                    query = query.gte("created_at", as_utc(filters.date_from).isoformat())
                if filters.date_to:
                    query = query.lte("created_at", as_utc(filters.date_to).isoformat())

            query = query.order("created_at", desc=True)
            query = query.range(skip, skip + limit - 1)

            response = query.execute()

            return [InterventionList(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération interventions équipe {team_id}: {e}")
            raise storage_error(e, "interventions:get_all")

    def get_by_ids(self, intervention_ids: List[str]) -> List[InterventionList]:
        """Récupérer une liste d'interventions par identifiants"""
        if not intervention_ids:
            return []
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .in_("id", intervention_ids)\
                .is_("deleted_at", "null")\
                .order("created_at", desc=True)\
                .execute()

            return [InterventionList(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur récupération interventions par IDs: {e}")
            raise storage_error(e, "interventions:get_by_ids")

    def update(self, intervention_id: str, update_dict: Dict[str, Any]) -> Intervention:
        """
        Mettre à jour des champs hors statut

        Raises:
            NotFoundException: Si l'intervention n'existe pas
            ValidationException: Si aucun champ n'est fourni
        """
        try:
            if not update_dict:
                raise ValidationException("No data to update")

            data = dict(update_dict)
            data["updated_at"] = now_iso()

            response = self.db.table(self.table_name)\
                .update(data)\
                .eq("id", intervention_id)\
                .execute()

            if not response.data:
                raise NotFoundException("Intervention", intervention_id)

            logger.info(f"Intervention {intervention_id} mise à jour")
            return Intervention(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur mise à jour intervention {intervention_id}: {e}")
            raise storage_error(e, "interventions:update")

    def update_status(
        self,
        intervention_id: str,
        new_status: InterventionStatus,
        expected_status: InterventionStatus,
        extra: Optional[Dict[str, Any]] = None
    ) -> Optional[Intervention]:
        """
        Changer le statut à condition que le statut courant soit celui attendu

        Args:
            intervention_id: UUID de l'intervention
            new_status: Statut visé
            expected_status: Statut lu avant validation de la transition
            extra: Champs propres à l'opération

        Returns:
            Intervention mise à jour, ou None si le statut a changé entre-temps
        """
        try:
            data = dict(extra or {})
            data.update({
                "status": InterventionStatus(new_status).value,
                "updated_at": now_iso(),
            })

            response = self.db.table(self.table_name)\
                .update(data)\
                .eq("id", intervention_id)\
                .eq("status", InterventionStatus(expected_status).value)\
                .is_("deleted_at", "null")\
                .execute()

            if not response.data:
                logger.warning(
                    f"Intervention {intervention_id}: statut attendu '{expected_status}' introuvable, écriture ignorée"
                )
                return None

            logger.info(f"Intervention {intervention_id}: {expected_status} -> {new_status}")
            return Intervention(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur changement statut intervention {intervention_id}: {e}")
            raise storage_error(e, "interventions:update_status")

    def soft_delete(self, intervention_id: str, deleted_by: str) -> Intervention:
        """
        Supprimer logiquement une intervention (jamais de suppression physique)
        """
        try:
            response = self.db.table(self.table_name)\
                .update({
                    "deleted_at": now_iso(),
                    "deleted_by": deleted_by
                })\
                .eq("id", intervention_id)\
                .is_("deleted_at", "null")\
                .execute()

            if not response.data:
                raise NotFoundException("Intervention", intervention_id)

            logger.info(f"Intervention {intervention_id} supprimée (logique)")
            return Intervention(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur suppression intervention {intervention_id}: {e}")
            raise storage_error(e, "interventions:soft_delete")

    def get_statistics(self, team_id: str) -> DashboardStats:
        """
        Statistiques du tableau de bord d'une équipe

        Returns:
            Répartition par statut, urgence et type, délai moyen de résolution,
            interventions à venir et finalisées ce mois-ci
        """
        try:
            response = self.db.table(self.table_name)\
                .select("*")\
                .eq("team_id", team_id)\
                .is_("deleted_at", "null")\
                .execute()

            rows = response.data or []
            stats = DashboardStats(
                total=len(rows),
                by_status={s.value: 0 for s in InterventionStatus},
                by_urgency={u.value: 0 for u in InterventionUrgency},
            )

            now = utcnow()
            month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            durations = []

            for row in rows:
                stats.by_status[row["status"]] = stats.by_status.get(row["status"], 0) + 1
                if row.get("urgency"):
                    stats.by_urgency[row["urgency"]] = stats.by_urgency.get(row["urgency"], 0) + 1
                if row.get("type"):
                    stats.by_type[row["type"]] = stats.by_type.get(row["type"], 0) + 1

                if row["status"] == InterventionStatus.demande_de_devis.value:
                    stats.pending_quotes += 1

                scheduled = _parse(row.get("scheduled_date"))
                if row["status"] == InterventionStatus.planifiee.value and scheduled and scheduled >= now:
                    stats.upcoming += 1

                finalized = _parse(row.get("finalized_at"))
                if row["status"] == InterventionStatus.cloturee_par_gestionnaire.value and finalized:
                    if finalized >= month_start:
                        stats.completed_this_month += 1
                    created = _parse(row.get("created_at"))
                    if created:
                        durations.append((finalized - created).total_seconds() / 86400)

            if durations:
                stats.average_resolution_days = round(sum(durations) / len(durations), 2)

            return stats

        except Exception as e:
            logger.error(f"Erreur calcul statistiques interventions: {e}")
            raise storage_error(e, "interventions:get_statistics")


def _parse(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def get_intervention_crud(db: Client) -> InterventionCRUD:
    """Factory function pour créer une instance InterventionCRUD"""
    return InterventionCRUD(db)
