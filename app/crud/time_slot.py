# app/crud/time_slot.py
"""
Opérations CRUD pour les créneaux et les réponses des participants
"""

from typing import Optional, List, Dict, Any
from supabase import Client
import logging

from app.core.clock import now_iso
from app.core.errors import NotFoundException, storage_error
from app.models import (
    TimeSlot, TimeSlotInput, TimeSlotResponse, TimeSlotStatus, ResponseType, UserRole
)

logger = logging.getLogger(__name__)

# Statuts depuis lesquels un créneau peut être sélectionné
OPEN_STATUSES = (TimeSlotStatus.proposed, TimeSlotStatus.pending)


class TimeSlotCRUD:
    """Classe pour gérer les créneaux proposés et leurs réponses"""

    def __init__(self, db: Client):
        self.db = db
        self.slots_table = "intervention_time_slots"
        self.responses_table = "time_slot_responses"

    def create_many(self, intervention_id: str, slots: List[TimeSlotInput], proposed_by: str) -> List[TimeSlot]:
        """
        Enregistrer plusieurs créneaux en une seule insertion

        Returns:
            Créneaux créés (sans réponse)
        """
        try:
            rows = [
                {
                    "intervention_id": intervention_id,
                    "slot_date": slot.slot_date.isoformat(),
                    "start_time": slot.start_time.isoformat(),
                    "end_time": slot.end_time.isoformat(),
                    "proposed_by": proposed_by,
                    "status": TimeSlotStatus.proposed.value,
                }
                for slot in slots
            ]

            response = self.db.table(self.slots_table).insert(rows).execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après insertion")

            logger.info(f"{len(response.data)} créneau(x) proposé(s) pour {intervention_id}")
            return [TimeSlot(**row) for row in response.data]

        except Exception as e:
            logger.error(f"Erreur création créneaux: {e}")
            raise storage_error(e, "time_slots:create_many")

    def _responses_for(self, slot_ids: List[str]) -> Dict[str, List[TimeSlotResponse]]:
        grouped: Dict[str, List[TimeSlotResponse]] = {slot_id: [] for slot_id in slot_ids}
        if not slot_ids:
            return grouped

        response = self.db.table(self.responses_table)\
            .select("*")\
            .in_("time_slot_id", slot_ids)\
            .execute()

        for row in response.data:
            grouped.setdefault(row["time_slot_id"], []).append(TimeSlotResponse(**row))
        return grouped

    def get_by_id(self, slot_id: str) -> Optional[TimeSlot]:
        """Récupérer un créneau avec ses réponses"""
        try:
            response = self.db.table(self.slots_table)\
                .select("*")\
                .eq("id", slot_id)\
                .execute()

            if not response.data:
                return None

            row = dict(response.data[0])
            row["responses"] = self._responses_for([slot_id])[slot_id]
            return TimeSlot(**row)

        except Exception as e:
            logger.error(f"Erreur récupération créneau {slot_id}: {e}")
            raise storage_error(e, "time_slots:get_by_id")

    def list_by_intervention(self, intervention_id: str) -> List[TimeSlot]:
        """
        Récupérer les créneaux d'une intervention, triés chronologiquement,
        avec leurs réponses
        """
        try:
            response = self.db.table(self.slots_table)\
                .select("*")\
                .eq("intervention_id", intervention_id)\
                .order("slot_date", desc=False)\
                .order("start_time", desc=False)\
                .execute()

            rows = response.data or []
            grouped = self._responses_for([row["id"] for row in rows])

            return [TimeSlot(**{**row, "responses": grouped.get(row["id"], [])}) for row in rows]

        except Exception as e:
            logger.error(f"Erreur récupération créneaux de {intervention_id}: {e}")
            raise storage_error(e, "time_slots:list_by_intervention")

    def update_status(self, slot_id: str, status: TimeSlotStatus, extra: Optional[Dict[str, Any]] = None) -> TimeSlot:
        """
        Changer le statut d'un créneau

        Raises:
            NotFoundException: Si le créneau n'existe pas
        """
        try:
            data = dict(extra or {})
            data.update({"status": TimeSlotStatus(status).value, "updated_at": now_iso()})

            response = self.db.table(self.slots_table)\
                .update(data)\
                .eq("id", slot_id)\
                .execute()

            if not response.data:
                raise NotFoundException("TimeSlot", slot_id)

            logger.info(f"Créneau {slot_id} -> {status}")
            return TimeSlot(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur mise à jour créneau {slot_id}: {e}")
            raise storage_error(e, "time_slots:update_status")

    def select(self, slot_id: str, intervention_id: str) -> Optional[TimeSlot]:
        """
        Sélectionner un créneau encore ouvert

        L'écriture n'a lieu que si le créneau est toujours proposé ou en attente
        et qu'aucun autre créneau de l'intervention n'est déjà sélectionné.

        Returns:
            Créneau sélectionné, ou None si la sélection a été prise entre-temps
        """
        try:
            taken = self.db.table(self.slots_table)\
                .select("id")\
                .eq("intervention_id", intervention_id)\
                .eq("status", TimeSlotStatus.selected.value)\
                .neq("id", slot_id)\
                .execute()

            if taken.data:
                logger.warning(
                    f"Créneau {slot_id}: l'intervention {intervention_id} a déjà un créneau sélectionné "
                    f"({taken.data[0]['id']})"
                )
                return None

            response = self.db.table(self.slots_table)\
                .update({"status": TimeSlotStatus.selected.value, "updated_at": now_iso()})\
                .eq("id", slot_id)\
                .in_("status", [s.value for s in OPEN_STATUSES])\
                .execute()

            if not response.data:
                logger.warning(f"Créneau {slot_id}: n'est plus ouvert, sélection ignorée")
                return None

            logger.info(f"Créneau {slot_id} sélectionné")
            return TimeSlot(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur sélection créneau {slot_id}: {e}")
            raise storage_error(e, "time_slots:select")

    def cancel_many(self, slot_ids: List[str]) -> int:
        """
        Annuler plusieurs créneaux

        Returns:
            Nombre de créneaux annulés
        """
        if not slot_ids:
            return 0
        try:
            response = self.db.table(self.slots_table)\
                .update({"status": TimeSlotStatus.cancelled.value, "updated_at": now_iso()})\
                .in_("id", slot_ids)\
                .execute()

            cancelled = len(response.data or [])
            logger.info(f"{cancelled} créneau(x) annulé(s)")
            return cancelled

        except Exception as e:
            logger.error(f"Erreur annulation créneaux: {e}")
            raise storage_error(e, "time_slots:cancel_many")

    def upsert_response(
        self,
        slot_id: str,
        user_id: str,
        user_role: UserRole,
        response_type: ResponseType,
        notes: Optional[str] = None
    ) -> TimeSlotResponse:
        """
        Enregistrer la réponse d'un participant (remplace sa réponse précédente)
        """
        try:
            data = {
                "time_slot_id": slot_id,
                "user_id": user_id,
                "user_role": UserRole(user_role).value,
                "response": ResponseType(response_type).value,
                "notes": notes,
                "updated_at": now_iso(),
            }

            response = self.db.table(self.responses_table)\
                .upsert(data, on_conflict="time_slot_id,user_id")\
                .execute()

            if not response.data:
                raise Exception("Aucune donnée retournée après enregistrement")

            logger.info(f"Réponse '{data['response']}' de {user_id} sur le créneau {slot_id}")
            return TimeSlotResponse(**response.data[0])

        except Exception as e:
            logger.error(f"Erreur enregistrement réponse créneau {slot_id}: {e}")
            raise storage_error(e, "time_slots:upsert_response")


def get_time_slot_crud(db: Client) -> TimeSlotCRUD:
    """Factory function pour créer une instance TimeSlotCRUD"""
    return TimeSlotCRUD(db)
