# app/models/conversation.py
"""
Modèles Pydantic pour les fils de discussion d'une intervention
Un fil est créé automatiquement par le workflow (création, affectation prestataire)
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from enum import Enum


class ConversationThreadType(str, Enum):
    """Type de fil de discussion"""
    group = "group"                                  # Tous les participants
    tenant_to_managers = "tenant_to_managers"        # Locataire <-> gestionnaires
    provider_to_managers = "provider_to_managers"    # Prestataire <-> gestionnaires


THREAD_TITLES = {
    ConversationThreadType.group: "Discussion générale",
    ConversationThreadType.tenant_to_managers: "Communication avec les gestionnaires",
    ConversationThreadType.provider_to_managers: "Communication avec le prestataire",
}


class ThreadCreate(BaseModel):
    """Modèle pour créer un fil"""
    intervention_id: str
    thread_type: ConversationThreadType
    team_id: str
    created_by: str
    title: Optional[str] = Field(None, max_length=200)
    participant_ids: List[str] = Field(default_factory=list)


class ConversationThread(ThreadCreate):
    """Fil de discussion enregistré"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    message_count: int = 0
    created_at: Optional[datetime] = None
