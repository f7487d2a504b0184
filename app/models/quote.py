# app/models/quote.py
"""
Modèles Pydantic pour les devis des prestataires
"""

from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


class QuoteStatus(str, Enum):
    """Statut d'un devis (flux à sens unique)"""
    draft = "draft"          # Brouillon (demande créée ou en rédaction)
    sent = "sent"            # Envoyé au gestionnaire
    accepted = "accepted"    # Accepté
    rejected = "rejected"    # Refusé
    expired = "expired"      # Date de validité dépassée


class QuoteType(str, Enum):
    """Nature du devis"""
    estimation = "estimation"
    final = "final"


class QuoteLineItem(BaseModel):
    """Ligne de devis"""
    description: str = Field(..., min_length=1, max_length=500)
    quantity: float = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)
    total: float = Field(..., ge=0)
    unit: Optional[str] = None


class QuoteCreate(BaseModel):
    """Modèle pour créer un devis"""
    intervention_id: str
    provider_id: str
    amount: float = 0
    currency: str = Field("EUR", min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=5000)
    line_items: Optional[List[QuoteLineItem]] = None
    quote_type: QuoteType = QuoteType.estimation
    valid_until: Optional[datetime] = None


class QuoteUpdate(BaseModel):
    """Modèle pour modifier un brouillon de devis"""
    amount: Optional[float] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=5000)
    line_items: Optional[List[QuoteLineItem]] = None
    quote_type: Optional[QuoteType] = None
    valid_until: Optional[datetime] = None

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        """Un champ obligatoire peut être omis, pas remis à null"""
        for name in ("amount", "currency", "quote_type"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} ne peut pas être null")
        return self


class Quote(BaseModel):
    """Devis complet"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    intervention_id: str
    provider_id: str
    team_id: Optional[str] = None
    amount: float = 0
    currency: str = "EUR"
    description: Optional[str] = None
    line_items: Optional[List[QuoteLineItem]] = None
    status: QuoteStatus = QuoteStatus.draft
    quote_type: QuoteType = QuoteType.estimation
    valid_until: Optional[datetime] = None

    created_by: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    sent_at: Optional[datetime] = None

    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class QuoteDecision(BaseModel):
    """Corps de requête pour refuser un devis"""
    reason: str = Field(..., min_length=1, max_length=2000)


class QuoteRequest(BaseModel):
    """Corps de requête pour demander un devis à un prestataire"""
    provider_id: str
    valid_until: Optional[datetime] = None


class QuoteStats(BaseModel):
    """Statistiques des devis d'une équipe"""
    total: int = 0
    by_status: Dict[str, int] = Field(default_factory=lambda: {s.value: 0 for s in QuoteStatus})
    by_type: Dict[str, int] = Field(default_factory=lambda: {t.value: 0 for t in QuoteType})
    total_amount: float = 0
    accepted_amount: float = 0
    average_amount: float = 0
    acceptance_rate: int = 0
