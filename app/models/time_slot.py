# app/models/time_slot.py
"""
Modèles Pydantic pour les créneaux proposés et les réponses des participants
"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List
from datetime import date, time, datetime
from enum import Enum

from .user import UserRole


class TimeSlotStatus(str, Enum):
    """Statut d'un créneau"""
    proposed = "proposed"      # Proposé, en attente de réponses
    pending = "pending"        # Réponses partielles
    selected = "selected"      # Retenu comme date planifiée
    rejected = "rejected"      # Refusé
    cancelled = "cancelled"    # Annulé par son auteur ou un gestionnaire


class ResponseType(str, Enum):
    """Réponse d'un participant à un créneau"""
    accepted = "accepted"
    rejected = "rejected"
    pending = "pending"


class TimeSlotInput(BaseModel):
    """Créneau candidat fourni lors d'une proposition"""
    slot_date: date
    start_time: time
    end_time: time

    @model_validator(mode="after")
    def check_time_range(self) -> "TimeSlotInput":
        """Vérifier que end_time > start_time"""
        if self.end_time <= self.start_time:
            raise ValueError("end_time doit être postérieur à start_time")
        return self

    @property
    def duration_minutes(self) -> int:
        start = datetime.combine(self.slot_date, self.start_time)
        end = datetime.combine(self.slot_date, self.end_time)
        return int((end - start).total_seconds() // 60)


class TimeSlotResponse(BaseModel):
    """Réponse enregistrée (une par participant et par créneau)"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    time_slot_id: str
    user_id: str
    user_role: UserRole
    response: ResponseType = ResponseType.pending
    notes: Optional[str] = Field(None, max_length=1000)
    updated_at: Optional[datetime] = None


class TimeSlot(BaseModel):
    """Créneau complet avec ses réponses"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    intervention_id: str
    slot_date: date
    start_time: time
    end_time: time
    proposed_by: str
    status: TimeSlotStatus = TimeSlotStatus.proposed
    responses: List[TimeSlotResponse] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def starts_at(self) -> datetime:
        """Date et heure de début combinées"""
        return datetime.combine(self.slot_date, self.start_time)


class SlotResponseRequest(BaseModel):
    """Corps de requête pour répondre à un créneau"""
    accepted: bool
    note: Optional[str] = Field(None, max_length=1000)


class ProposeSlotsRequest(BaseModel):
    """Corps de requête pour proposer des créneaux"""
    slots: List[TimeSlotInput] = Field(..., min_length=1)
