# app/models/intervention.py
"""
Modèles Pydantic pour les interventions
Une intervention est une demande de maintenance suivie sur 11 statuts
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict
from datetime import datetime
from enum import Enum


# ==========================================
# ENUMS
# ==========================================

class InterventionStatus(str, Enum):
    """Statut de l'intervention dans son cycle de vie"""
    demande = "demande"                                    # Demande du locataire
    rejetee = "rejetee"                                    # Refusée par le gestionnaire (terminal)
    approuvee = "approuvee"                                # Approuvée
    demande_de_devis = "demande_de_devis"                  # Devis demandé au prestataire
    planification = "planification"                       # Recherche de créneau
    planifiee = "planifiee"                                # Créneau confirmé
    en_cours = "en_cours"                                  # Travaux en cours
    cloturee_par_prestataire = "cloturee_par_prestataire"  # Terminée par le prestataire
    cloturee_par_locataire = "cloturee_par_locataire"      # Validée par le locataire
    cloturee_par_gestionnaire = "cloturee_par_gestionnaire"  # Finalisée (terminal)
    annulee = "annulee"                                    # Annulée (terminal)


class InterventionUrgency(str, Enum):
    """Niveau d'urgence"""
    basse = "basse"
    normale = "normale"
    haute = "haute"
    urgente = "urgente"


class InterventionType(str, Enum):
    """Corps de métier concerné"""
    plomberie = "plomberie"
    electricite = "electricite"
    chauffage = "chauffage"
    serrurerie = "serrurerie"
    peinture = "peinture"
    menage = "menage"
    jardinage = "jardinage"
    climatisation = "climatisation"
    vitrerie = "vitrerie"
    toiture = "toiture"
    autre = "autre"


# ==========================================
# MODÈLES PYDANTIC
# ==========================================

class InterventionBase(BaseModel):
    """Modèle de base pour une intervention"""
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    urgency: InterventionUrgency = InterventionUrgency.normale
    type: InterventionType = InterventionType.autre

    # Rattachement
    team_id: str
    building_id: Optional[str] = None
    lot_id: Optional[str] = None
    specific_location: Optional[str] = Field(None, max_length=500)

    tenant_comment: Optional[str] = Field(None, max_length=2000)


class InterventionCreate(InterventionBase):
    """Modèle pour créer une intervention"""
    pass


class InterventionUpdate(BaseModel):
    """Champs modifiables hors changement de statut (tous optionnels)"""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=5000)
    urgency: Optional[InterventionUrgency] = None
    type: Optional[InterventionType] = None
    specific_location: Optional[str] = Field(None, max_length=500)
    tenant_comment: Optional[str] = Field(None, max_length=2000)
    manager_comment: Optional[str] = Field(None, max_length=2000)
    provider_comment: Optional[str] = Field(None, max_length=2000)
    estimated_cost: Optional[float] = Field(None, ge=0)
    final_cost: Optional[float] = Field(None, ge=0)


class InterventionFilters(BaseModel):
    """Filtres de recherche par équipe"""
    status: Optional[InterventionStatus] = None
    urgency: Optional[InterventionUrgency] = None
    type: Optional[InterventionType] = None
    building_id: Optional[str] = None
    lot_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


class Intervention(InterventionBase):
    """Modèle complet d'une intervention"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    reference: Optional[str] = None
    status: InterventionStatus

    # Planification
    scheduled_date: Optional[datetime] = None
    selected_slot_id: Optional[str] = None

    # Coûts
    requires_quote: bool = False
    estimated_cost: Optional[float] = None
    final_cost: Optional[float] = None

    # Commentaires par rôle
    manager_comment: Optional[str] = None
    provider_comment: Optional[str] = None
    cancellation_reason: Optional[str] = None
    tenant_satisfaction: Optional[int] = Field(None, ge=1, le=5)

    # Horodatages du cycle de vie
    requested_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    validated_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None

    # Suppression logique
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class InterventionList(BaseModel):
    """Modèle simplifié pour lister les interventions"""
    id: str
    reference: Optional[str] = None
    title: str
    status: InterventionStatus
    urgency: InterventionUrgency
    type: InterventionType
    team_id: str
    scheduled_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DashboardStats(BaseModel):
    """Statistiques du tableau de bord d'une équipe"""
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_urgency: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)
    average_resolution_days: Optional[float] = None
    pending_quotes: int = 0
    upcoming: int = 0
    completed_this_month: int = 0


# ==========================================
# CORPS DE REQUÊTE DES ACTIONS
# ==========================================

class CommentRequest(BaseModel):
    """Commentaire optionnel (approbation, fin de travaux)"""
    comment: Optional[str] = Field(None, max_length=2000)


class ReasonRequest(BaseModel):
    """Motif obligatoire (refus, annulation)"""
    reason: str = Field(..., min_length=1, max_length=2000)


class TenantValidationRequest(BaseModel):
    satisfaction: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class FinalizeRequest(BaseModel):
    final_cost: Optional[float] = Field(None, ge=0)
    comment: Optional[str] = Field(None, max_length=2000)


class ConfirmSlotRequest(BaseModel):
    slot_id: str
