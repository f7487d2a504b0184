# app/models/assignment.py
"""
Affectations : lien entre un utilisateur et une intervention pour un rôle donné
"""

from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum


class AssignmentRole(str, Enum):
    """Rôle tenu sur une intervention"""
    gestionnaire = "gestionnaire"
    prestataire = "prestataire"
    superviseur = "superviseur"
    locataire = "locataire"


class AssignmentCreate(BaseModel):
    """Modèle pour affecter un utilisateur (unique par intervention/utilisateur/rôle)"""
    intervention_id: str
    user_id: str
    role: AssignmentRole
    is_lead: bool = False
    assigned_by: Optional[str] = None


class Assignment(AssignmentCreate):
    """Affectation enregistrée"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None


class AssignRequest(BaseModel):
    """Corps de requête pour affecter un utilisateur"""
    user_id: str
    role: AssignmentRole
    is_lead: bool = False
