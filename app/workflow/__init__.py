"""
Moteur de workflow des interventions : tables de transition, règles
d'autorisation, règles des devis et des créneaux, exécution des effets.
"""

from .transitions import (
    VALID_TRANSITIONS,
    TERMINAL_STATUSES,
    allowed_next,
    can_transition,
    is_terminal,
    validate_transition
)
from .permissions import (
    TRANSITION_PERMISSIONS,
    CREATION_ROLES,
    roles_allowed,
    check_role,
    check_actor,
    check_creation,
    require_manager
)
from .rules import TransitionRules, DEFAULT_RULES
from .quotes import QUOTE_TRANSITIONS, validate_quote_transition, validate_amount, line_items_total
from .slots import (
    CLOSED_SLOT_STATUSES,
    can_finalize,
    can_auto_confirm,
    has_pending_responses,
    pending_participants_message,
    open_siblings
)
from .dispatch import SideEffect, WorkflowStep, StepReport, best_effort, dispatch_side_effects, run_steps

__all__ = [
    "VALID_TRANSITIONS",
    "TERMINAL_STATUSES",
    "allowed_next",
    "can_transition",
    "is_terminal",
    "validate_transition",
    "TRANSITION_PERMISSIONS",
    "CREATION_ROLES",
    "roles_allowed",
    "check_role",
    "check_actor",
    "check_creation",
    "require_manager",
    "TransitionRules",
    "DEFAULT_RULES",
    "QUOTE_TRANSITIONS",
    "validate_quote_transition",
    "validate_amount",
    "line_items_total",
    "CLOSED_SLOT_STATUSES",
    "can_finalize",
    "can_auto_confirm",
    "has_pending_responses",
    "pending_participants_message",
    "open_siblings",
    "SideEffect",
    "WorkflowStep",
    "StepReport",
    "best_effort",
    "dispatch_side_effects",
    "run_steps",
]
