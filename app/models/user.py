# app/models/user.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum

class UserRole(str, Enum):
    """Rôles utilisateurs"""
    ADMIN = "admin"
    GESTIONNAIRE = "gestionnaire"
    LOCATAIRE = "locataire"
    PRESTATAIRE = "prestataire"

# Rôles disposant de l'autorité de gestion sur une équipe
MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.GESTIONNAIRE})

# Complet
class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    name: str = Field(..., min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole
    team_id: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES

    @property
    def display_name(self) -> str:
        """Prénom en priorité, sinon premier mot du nom complet"""
        if self.first_name:
            return self.first_name
        return self.name.split(" ")[0]
