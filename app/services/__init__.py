"""
Services du workflow des interventions
"""

from .notification_service import NotificationService, get_notification_service
from .email_service import EmailNotificationService, InterventionEmailData, QuoteEmailData
from .base import WorkflowService
from .time_slot_service import TimeSlotService, get_time_slot_service
from .quote_service import QuoteService, get_quote_service
from .intervention_service import InterventionService, get_intervention_service

__all__ = [
    "NotificationService",
    "get_notification_service",
    "EmailNotificationService",
    "InterventionEmailData",
    "QuoteEmailData",
    "WorkflowService",
    "TimeSlotService",
    "get_time_slot_service",
    "QuoteService",
    "get_quote_service",
    "InterventionService",
    "get_intervention_service",
]
