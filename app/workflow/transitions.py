"""
Graphe des transitions de statut d'une intervention.

Table immuable construite à l'import ; rien ne la modifie à l'exécution.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

from app.core.errors import ValidationException
from app.models.intervention import InterventionStatus

S = InterventionStatus

VALID_TRANSITIONS: Mapping[InterventionStatus, FrozenSet[InterventionStatus]] = MappingProxyType({
    S.demande: frozenset({S.rejetee, S.approuvee}),
    S.approuvee: frozenset({S.demande_de_devis, S.planification, S.annulee}),
    S.demande_de_devis: frozenset({S.planification, S.annulee}),
    S.planification: frozenset({S.planifiee, S.annulee}),
    S.planifiee: frozenset({S.en_cours, S.annulee}),
    S.en_cours: frozenset({S.cloturee_par_prestataire, S.annulee}),
    # Réouverture possible si le locataire conteste
    S.cloturee_par_prestataire: frozenset({S.cloturee_par_locataire, S.en_cours}),
    S.cloturee_par_locataire: frozenset({S.cloturee_par_gestionnaire}),
    S.rejetee: frozenset(),
    S.cloturee_par_gestionnaire: frozenset(),
    S.annulee: frozenset(),
})

TERMINAL_STATUSES: FrozenSet[InterventionStatus] = frozenset(
    status for status, targets in VALID_TRANSITIONS.items() if not targets
)


def allowed_next(status: InterventionStatus) -> FrozenSet[InterventionStatus]:
    return VALID_TRANSITIONS.get(InterventionStatus(status), frozenset())


def can_transition(current: InterventionStatus, target: InterventionStatus) -> bool:
    return InterventionStatus(target) in allowed_next(current)


def is_terminal(status: InterventionStatus) -> bool:
    return InterventionStatus(status) in TERMINAL_STATUSES


def validate_transition(current: InterventionStatus, target: InterventionStatus) -> None:
    """
    Vérifie qu'une transition existe dans le graphe.

    Raises:
        ValidationException: si la cible n'est pas atteignable depuis le statut courant
    """
    current = InterventionStatus(current)
    target = InterventionStatus(target)
    if not can_transition(current, target):
        raise ValidationException(
            f"Invalid status transition from '{current.value}' to '{target.value}'",
            field="status",
            details={"from": current.value, "to": target.value}
        )
