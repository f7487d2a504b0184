# app/models/__init__.py
"""
Modèles Pydantic du moteur d'interventions

Modules:
- User : Utilisateurs et rôles
- Intervention : Demandes de maintenance (11 statuts)
- Assignment : Affectations par rôle
- TimeSlot : Créneaux proposés et réponses
- Quote : Devis des prestataires
- Notification / Conversation / ActivityLog : collaborateurs du workflow
"""

# ====================================
# USER MODELS
# ====================================
from .user import (
    UserRole,
    MANAGER_ROLES,
    User
)

# ====================================
# INTERVENTION MODELS
# ====================================
from .intervention import (
    InterventionStatus,
    InterventionUrgency,
    InterventionType,
    InterventionBase,
    InterventionCreate,
    InterventionUpdate,
    InterventionFilters,
    InterventionList,
    Intervention,
    DashboardStats,
    CommentRequest,
    ReasonRequest,
    TenantValidationRequest,
    FinalizeRequest,
    ConfirmSlotRequest
)

# ====================================
# ASSIGNMENT MODELS
# ====================================
from .assignment import (
    AssignmentRole,
    AssignmentCreate,
    Assignment,
    AssignRequest
)

# ====================================
# TIME SLOT MODELS
# ====================================
from .time_slot import (
    TimeSlotStatus,
    ResponseType,
    TimeSlotInput,
    TimeSlotResponse,
    TimeSlot,
    SlotResponseRequest,
    ProposeSlotsRequest
)

# ====================================
# QUOTE MODELS
# ====================================
from .quote import (
    QuoteStatus,
    QuoteType,
    QuoteLineItem,
    QuoteCreate,
    QuoteUpdate,
    Quote,
    QuoteDecision,
    QuoteRequest,
    QuoteStats
)

# ====================================
# COLLABORATORS
# ====================================
from .notification import (
    ByRole,
    ByUser,
    NotificationAudience,
    NotificationCreate,
    Notification
)
from .conversation import (
    ConversationThreadType,
    THREAD_TITLES,
    ThreadCreate,
    ConversationThread
)
from .activity_log import (
    ActivityLogCreate,
    ActivityLog
)

# ====================================
# EXPORTS
# ====================================
__all__ = [
    # User
    "UserRole",
    "MANAGER_ROLES",
    "User",

    # Intervention
    "InterventionStatus",
    "InterventionUrgency",
    "InterventionType",
    "InterventionBase",
    "InterventionCreate",
    "InterventionUpdate",
    "InterventionFilters",
    "InterventionList",
    "Intervention",
    "DashboardStats",
    "CommentRequest",
    "ReasonRequest",
    "TenantValidationRequest",
    "FinalizeRequest",
    "ConfirmSlotRequest",

    # Assignment
    "AssignmentRole",
    "AssignmentCreate",
    "Assignment",
    "AssignRequest",

    # Time slots
    "TimeSlotStatus",
    "ResponseType",
    "TimeSlotInput",
    "TimeSlotResponse",
    "TimeSlot",
    "SlotResponseRequest",
    "ProposeSlotsRequest",

    # Quote
    "QuoteStatus",
    "QuoteType",
    "QuoteLineItem",
    "QuoteCreate",
    "QuoteUpdate",
    "Quote",
    "QuoteDecision",
    "QuoteRequest",
    "QuoteStats",

    # Notification
    "ByRole",
    "ByUser",
    "NotificationAudience",
    "NotificationCreate",
    "Notification",

    # Conversation
    "ConversationThreadType",
    "THREAD_TITLES",
    "ThreadCreate",
    "ConversationThread",

    # Activity log
    "ActivityLogCreate",
    "ActivityLog",
]
