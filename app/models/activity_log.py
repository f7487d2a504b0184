# app/models/activity_log.py
"""
Journal d'activité : entrées immuables, jamais modifiées ni supprimées
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime


class ActivityLogCreate(BaseModel):
    """Entrée à ajouter au journal"""
    model_config = ConfigDict(frozen=True)

    action: str = Field(..., min_length=1, max_length=100)
    intervention_id: str
    user_id: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ActivityLog(ActivityLogCreate):
    """Entrée enregistrée"""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    table_name: str = "interventions"
    created_at: Optional[datetime] = None
