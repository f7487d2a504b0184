"""
Règles d'autorisation des transitions.

Le contrôle de rôle est nécessaire mais pas suffisant : un prestataire doit
être affecté à l'intervention, et un locataire qui valide la clôture doit
figurer parmi ses locataires.
"""

from types import MappingProxyType
from typing import Callable, FrozenSet, Iterable, Mapping

from app.core.errors import PermissionException
from app.models.assignment import AssignmentRole
from app.models.intervention import InterventionStatus
from app.models.user import User, UserRole

S = InterventionStatus
R = UserRole

_MANAGERS = frozenset({R.GESTIONNAIRE, R.ADMIN})

TRANSITION_PERMISSIONS: Mapping[InterventionStatus, FrozenSet[UserRole]] = MappingProxyType({
    S.approuvee: _MANAGERS,
    S.rejetee: _MANAGERS,
    S.demande_de_devis: _MANAGERS,
    S.planification: _MANAGERS,
    S.cloturee_par_gestionnaire: _MANAGERS,
    S.planifiee: _MANAGERS | {R.PRESTATAIRE},
    S.en_cours: frozenset({R.PRESTATAIRE}),
    S.cloturee_par_prestataire: frozenset({R.PRESTATAIRE}),
    S.cloturee_par_locataire: frozenset({R.LOCATAIRE}),
    S.annulee: _MANAGERS | {R.PRESTATAIRE, R.LOCATAIRE},
    # Création initiale
    S.demande: frozenset({R.LOCATAIRE}),
})

# Rôles autorisés à créer une intervention ; un gestionnaire la crée pré-approuvée
CREATION_ROLES: FrozenSet[UserRole] = frozenset({R.LOCATAIRE, R.GESTIONNAIRE, R.ADMIN})

# Chargement paresseux des identifiants affectés pour un rôle donné
AssigneeLoader = Callable[[AssignmentRole], Iterable[str]]


RoleTable = Mapping[InterventionStatus, FrozenSet[UserRole]]


def roles_allowed(target: InterventionStatus, table: RoleTable = TRANSITION_PERMISSIONS) -> FrozenSet[UserRole]:
    return table.get(InterventionStatus(target), frozenset())


def check_role(target: InterventionStatus, user: User, table: RoleTable = TRANSITION_PERMISSIONS) -> None:
    """Lève PermissionException si le rôle ne peut pas viser ce statut"""
    target = InterventionStatus(target)
    if user.role not in roles_allowed(target, table):
        raise PermissionException(
            f"Role '{user.role.value}' cannot transition intervention to status '{target.value}'",
            action="status_transition",
            user_id=user.id
        )


def check_actor(
    target: InterventionStatus,
    user: User,
    load_assignees: AssigneeLoader,
    table: RoleTable = TRANSITION_PERMISSIONS
) -> None:
    """
    Vérifie l'éligibilité complète de l'acteur.

    Args:
        target: Statut visé
        user: Acteur
        load_assignees: Fonction renvoyant les user_id affectés pour un rôle
            (appelée uniquement pour les prestataires et la validation locataire)
        table: Table rôle par statut visé

    Raises:
        PermissionException
    """
    target = InterventionStatus(target)
    check_role(target, user, table)

    if user.role == R.PRESTATAIRE:
        if user.id not in set(load_assignees(AssignmentRole.prestataire)):
            raise PermissionException(
                "Provider must be assigned to intervention to perform this action",
                action="provider_assignment",
                user_id=user.id
            )

    if user.role == R.LOCATAIRE and target == S.cloturee_par_locataire:
        if user.id not in set(load_assignees(AssignmentRole.locataire)):
            raise PermissionException(
                "Only the tenant assigned to the intervention can validate it",
                action="tenant_validation",
                user_id=user.id
            )


def check_creation(user: User) -> InterventionStatus:
    """
    Vérifie qu'un utilisateur peut créer une intervention.

    Returns:
        Statut initial : demande pour un locataire, approuvee pour un gestionnaire
    """
    if user.role not in CREATION_ROLES:
        raise PermissionException(
            "You do not have permission to create interventions",
            action="create",
            user_id=user.id
        )
    return S.demande if user.role == R.LOCATAIRE else S.approuvee


def require_manager(user: User, action: str) -> None:
    if not user.is_manager:
        raise PermissionException(
            f"Only managers can {action}",
            action=action,
            user_id=user.id
        )
