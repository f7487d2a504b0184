"""
Exécution des effets secondaires et des opérations en plusieurs étapes.

Deux natures d'étape :
- bloquante : son échec est propagé à l'appelant, sans annuler les étapes
  déjà validées ;
- au mieux (best-effort) : son échec est journalisé puis ignoré.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, NamedTuple
import logging

logger = logging.getLogger(__name__)


class SideEffect(NamedTuple):
    """Effet secondaire nommé, exécuté au mieux"""
    label: str
    action: Callable[[], Any]


def best_effort(label: str, action: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """
    Exécute une action dont l'échec ne doit jamais remonter.

    Returns:
        True si l'action a réussi, False si elle a échoué (erreur journalisée)
    """
    try:
        action(*args, **kwargs)
        return True
    except Exception as e:
        logger.warning(f"⚠️ Effet secondaire '{label}' en échec: {e}")
        return False


def dispatch_side_effects(effects: Iterable[SideEffect]) -> List[str]:
    """Exécute chaque effet au mieux et renvoie les libellés en échec"""
    return [effect.label for effect in effects if not best_effort(effect.label, effect.action)]


@dataclass(frozen=True)
class WorkflowStep:
    """Étape ordonnée d'une opération ; l'action reçoit et enrichit le contexte partagé"""
    name: str
    action: Callable[[Dict[str, Any]], Any]
    blocking: bool = True


@dataclass
class StepReport:
    completed: List[str] = field(default_factory=list)
    skipped_failures: List[str] = field(default_factory=list)


def run_steps(steps: Iterable[WorkflowStep], context: Dict[str, Any]) -> StepReport:
    """
    Exécute les étapes dans l'ordre.

    Une étape bloquante en échec interrompt la séquence et propage l'erreur ;
    les étapes déjà exécutées restent validées. Une étape best-effort en échec
    est notée dans le rapport et la séquence continue.
    """
    report = StepReport()
    for step in steps:
        if step.blocking:
            try:
                step.action(context)
            except Exception:
                if report.completed:
                    logger.error(
                        f"Étape '{step.name}' en échec après validation de: {', '.join(report.completed)}"
                    )
                raise
            report.completed.append(step.name)
        elif best_effort(step.name, step.action, context):
            report.completed.append(step.name)
        else:
            report.skipped_failures.append(step.name)
    return report
