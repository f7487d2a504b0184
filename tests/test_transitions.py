# tests/test_transitions.py
"""
Tests du graphe de transitions des interventions
Exécuter: pytest tests/test_transitions.py -v
"""
import pytest

from app.core.errors import ValidationException
from app.models import InterventionStatus
from app.workflow import (
    VALID_TRANSITIONS, TERMINAL_STATUSES, DEFAULT_RULES, TransitionRules,
    allowed_next, can_transition, is_terminal, validate_transition
)

S = InterventionStatus

EXPECTED = {
    (S.demande, S.approuvee), (S.demande, S.rejetee),
    (S.approuvee, S.demande_de_devis), (S.approuvee, S.planification), (S.approuvee, S.annulee),
    (S.demande_de_devis, S.planification), (S.demande_de_devis, S.annulee),
    (S.planification, S.planifiee), (S.planification, S.annulee),
    (S.planifiee, S.en_cours), (S.planifiee, S.annulee),
    (S.en_cours, S.cloturee_par_prestataire), (S.en_cours, S.annulee),
    (S.cloturee_par_prestataire, S.cloturee_par_locataire), (S.cloturee_par_prestataire, S.en_cours),
    (S.cloturee_par_locataire, S.cloturee_par_gestionnaire),
}


def test_every_status_has_an_entry():
    """Test chaque statut figure dans la table"""
    assert set(VALID_TRANSITIONS) == set(InterventionStatus)


@pytest.mark.parametrize("current", list(InterventionStatus))
@pytest.mark.parametrize("target", list(InterventionStatus))
def test_can_transition_matches_graph(current, target):
    """Test légalité sur toutes les paires de statuts"""
    assert can_transition(current, target) == ((current, target) in EXPECTED)
    assert DEFAULT_RULES.can_transition(current, target) == ((current, target) in EXPECTED)


def test_terminal_statuses():
    """Test statuts terminaux"""
    assert TERMINAL_STATUSES == {S.rejetee, S.cloturee_par_gestionnaire, S.annulee}
    for status in TERMINAL_STATUSES:
        assert allowed_next(status) == frozenset()
        assert is_terminal(status)
        assert DEFAULT_RULES.is_terminal(status)


@pytest.mark.parametrize("status", [S.rejetee, S.cloturee_par_gestionnaire, S.annulee])
def test_terminal_cannot_be_cancelled(status):
    """Test aucune annulation depuis un statut terminal"""
    with pytest.raises(ValidationException):
        validate_transition(status, S.annulee)


def test_accepts_string_values():
    """Test statuts passés sous forme de chaîne"""
    assert can_transition("demande", "approuvee")
    assert not can_transition("demande", "planifiee")


def test_validate_transition_message():
    """Test message et détails d'une transition illégale"""
    with pytest.raises(ValidationException) as exc:
        validate_transition(S.demande, S.planifiee)
    assert "demande" in exc.value.message and "planifiee" in exc.value.message
    assert exc.value.details == {"from": "demande", "to": "planifiee", "field": "status"}


def test_tenant_contest_reopens_work():
    """Test réouverture des travaux après contestation du locataire"""
    assert can_transition(S.cloturee_par_prestataire, S.en_cours)


def test_custom_rules_are_injectable():
    """Test table de transitions personnalisée"""
    rules = TransitionRules(transitions={S.demande: frozenset({S.annulee})})
    assert rules.can_transition(S.demande, S.annulee)
    assert not rules.can_transition(S.demande, S.approuvee)
    assert rules.is_terminal(S.approuvee)


def test_table_is_read_only():
    """Test table immuable"""
    with pytest.raises(TypeError):
        VALID_TRANSITIONS[S.demande] = frozenset()
