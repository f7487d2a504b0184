"""
Couche CRUD pour l'API SEIDO Interventions

Modules CRUD:
- Intervention: Demandes de maintenance
- Assignment: Affectations intervention/utilisateur
- TimeSlot: Créneaux et réponses des participants
- Quote: Devis des prestataires
- Notification: Notifications applicatives
- Conversation: Fils de discussion et messages
- ActivityLog: Journal d'activité (ajout seul)
- User: Identité et rôles (lecture seule)
"""

from .intervention import InterventionCRUD, get_intervention_crud
from .assignment import AssignmentCRUD, get_assignment_crud
from .time_slot import TimeSlotCRUD, get_time_slot_crud
from .quote import QuoteCRUD, get_quote_crud
from .notification import NotificationCRUD, get_notification_crud
from .conversation import ConversationCRUD, get_conversation_crud
from .activity_log import ActivityLogCRUD, get_activity_log_crud
from .user import UserCRUD, get_user_crud

__all__ = [
    # Intervention CRUD
    "InterventionCRUD",
    "get_intervention_crud",

    # Assignment CRUD
    "AssignmentCRUD",
    "get_assignment_crud",

    # Time slot CRUD
    "TimeSlotCRUD",
    "get_time_slot_crud",

    # Quote CRUD
    "QuoteCRUD",
    "get_quote_crud",

    # Notification CRUD
    "NotificationCRUD",
    "get_notification_crud",

    # Conversation CRUD
    "ConversationCRUD",
    "get_conversation_crud",

    # Activity log CRUD
    "ActivityLogCRUD",
    "get_activity_log_crud",

    # User CRUD
    "UserCRUD",
    "get_user_crud",
]
