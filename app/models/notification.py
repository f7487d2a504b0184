# app/models/notification.py
"""
Notifications applicatives

L'audience est une variante étiquetée : par rôles OU par utilisateurs,
jamais les deux.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Union, Literal, Annotated
from datetime import datetime

from .user import UserRole


class ByRole(BaseModel):
    """Audience : tous les membres de l'équipe ayant l'un de ces rôles"""
    kind: Literal["by_role"] = "by_role"
    roles: List[UserRole] = Field(..., min_length=1)


class ByUser(BaseModel):
    """Audience : utilisateurs explicitement désignés"""
    kind: Literal["by_user"] = "by_user"
    user_ids: List[str] = Field(..., min_length=1)


NotificationAudience = Annotated[Union[ByRole, ByUser], Field(discriminator="kind")]


class NotificationCreate(BaseModel):
    """Notification à mettre en file"""
    type: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    team_id: str
    intervention_id: Optional[str] = None
    created_by: Optional[str] = None
    audience: NotificationAudience


class Notification(BaseModel):
    """Notification enregistrée"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    title: str
    message: str
    team_id: str
    intervention_id: Optional[str] = None
    created_by: Optional[str] = None
    target_roles: Optional[List[UserRole]] = None
    target_users: Optional[List[str]] = None
    read: bool = False
    created_at: Optional[datetime] = None
