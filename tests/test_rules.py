# tests/test_rules.py
"""
Tests des règles des devis et des créneaux
Exécuter: pytest tests/test_rules.py -v
"""
import pytest

from app.core.errors import ValidationException
from app.models import (
    InterventionStatus, QuoteLineItem, QuoteStatus, ResponseType, TimeSlot,
    TimeSlotResponse, TimeSlotStatus, UserRole
)
from app.workflow import (
    QUOTE_TRANSITIONS, can_auto_confirm, can_finalize, open_siblings,
    pending_participants_message, validate_amount, validate_quote_transition
)

Q = QuoteStatus


def make_slot(slot_id="slot-1", status=TimeSlotStatus.proposed, responses=()):
    return TimeSlot(
        id=slot_id,
        intervention_id="int-1",
        slot_date="2026-11-02",
        start_time="09:00:00",
        end_time="11:00:00",
        proposed_by="manager-1",
        status=status,
        responses=[
            TimeSlotResponse(time_slot_id=slot_id, user_id=f"{role.value}-{i}", user_role=role, response=answer)
            for i, (role, answer) in enumerate(responses)
        ]
    )


# ========================================
# Devis
# ========================================

def test_quote_one_way_flow():
    """Test flux draft -> sent -> décision"""
    validate_quote_transition(Q.draft, Q.sent)
    for target in (Q.accepted, Q.rejected, Q.expired):
        validate_quote_transition(Q.sent, target)


@pytest.mark.parametrize("current,target", [
    (Q.draft, Q.accepted),
    (Q.draft, Q.rejected),
    (Q.sent, Q.draft),
    (Q.accepted, Q.rejected),
    (Q.rejected, Q.sent),
    (Q.expired, Q.sent),
])
def test_quote_illegal_moves(current, target):
    """Test retours en arrière et décisions sans envoi (doivent échouer)"""
    with pytest.raises(ValidationException):
        validate_quote_transition(current, target)


def test_quote_decided_statuses_are_final():
    """Test statuts finaux des devis"""
    for status in (Q.accepted, Q.rejected, Q.expired):
        assert QUOTE_TRANSITIONS[status] == frozenset()


def test_quote_illegal_move_names_required_status():
    """Test message indiquant le statut requis"""
    with pytest.raises(ValidationException) as exc:
        validate_quote_transition(Q.draft, Q.accepted)
    assert "'sent'" in exc.value.message


def test_amount_bounds():
    """Test montant hors bornes (doit échouer)"""
    validate_amount(0)
    validate_amount(1_000_000)
    with pytest.raises(ValidationException):
        validate_amount(-1)
    with pytest.raises(ValidationException):
        validate_amount(1_000_000.5)


def test_amount_matches_line_items():
    """Test cohérence montant / lignes à la tolérance près"""
    items = [
        QuoteLineItem(description="Joint", quantity=2, unit_price=5, total=10),
        QuoteLineItem(description="Main d'oeuvre", quantity=1, unit_price=90, total=90),
    ]
    validate_amount(100, items)
    validate_amount(100.005, items)
    with pytest.raises(ValidationException) as exc:
        validate_amount(120, items)
    assert exc.value.details["calculated"] == 100


def test_amount_without_line_items():
    """Test montant seul accepté"""
    validate_amount(250, None)
    validate_amount(250, [])


# ========================================
# Créneaux
# ========================================

def test_can_finalize_requires_both_roles():
    """Test acceptation par un locataire ET un prestataire"""
    R = UserRole
    assert not can_finalize(make_slot())
    assert not can_finalize(make_slot(responses=[(R.LOCATAIRE, ResponseType.accepted)]))
    assert not can_finalize(make_slot(responses=[(R.PRESTATAIRE, ResponseType.accepted)]))
    assert not can_finalize(make_slot(responses=[
        (R.LOCATAIRE, ResponseType.accepted),
        (R.PRESTATAIRE, ResponseType.rejected),
    ]))
    assert can_finalize(make_slot(responses=[
        (R.LOCATAIRE, ResponseType.accepted),
        (R.PRESTATAIRE, ResponseType.accepted),
        (R.GESTIONNAIRE, ResponseType.rejected),
    ]))


def test_can_auto_confirm():
    """Test confirmation automatique"""
    R = UserRole
    ready = make_slot(responses=[(R.LOCATAIRE, ResponseType.accepted), (R.PRESTATAIRE, ResponseType.accepted)])
    waiting = make_slot(responses=[
        (R.LOCATAIRE, ResponseType.accepted),
        (R.PRESTATAIRE, ResponseType.accepted),
        (R.LOCATAIRE, ResponseType.pending),
    ])
    assert can_auto_confirm(ready, InterventionStatus.planification)
    assert not can_auto_confirm(ready, InterventionStatus.planifiee)
    assert not can_auto_confirm(waiting, InterventionStatus.planification)


def test_pending_participants_message():
    """Test message d'avancement de la planification"""
    R = UserRole
    assert pending_participants_message(InterventionStatus.approuvee) is None
    assert pending_participants_message(InterventionStatus.planification, []) == "Planification en cours"
    assert pending_participants_message(
        InterventionStatus.planification, [make_slot(responses=[(R.LOCATAIRE, ResponseType.accepted)])]
    ) == "En attente des disponibilités du prestataire"
    assert pending_participants_message(
        InterventionStatus.planification, [make_slot()]
    ) == "En attente des disponibilités du locataire et prestataire"


def test_open_siblings():
    """Test autres créneaux encore ouverts"""
    slots = [
        make_slot("a"),
        make_slot("b", status=TimeSlotStatus.pending),
        make_slot("c", status=TimeSlotStatus.cancelled),
        make_slot("d", status=TimeSlotStatus.selected),
    ]
    assert [s.id for s in open_siblings(slots, "a")] == ["b"]
