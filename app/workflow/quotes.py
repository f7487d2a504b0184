"""
Règles des devis : flux à sens unique et cohérence du montant.
"""

from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional

from app.core.errors import ValidationException
from app.models.quote import QuoteLineItem, QuoteStatus

Q = QuoteStatus

QUOTE_TRANSITIONS: Mapping[QuoteStatus, FrozenSet[QuoteStatus]] = MappingProxyType({
    Q.draft: frozenset({Q.sent}),
    Q.sent: frozenset({Q.accepted, Q.rejected, Q.expired}),
    Q.accepted: frozenset(),
    Q.rejected: frozenset(),
    Q.expired: frozenset(),
})

DEFAULT_MAX_AMOUNT = 1_000_000
DEFAULT_TOLERANCE = 0.01


def validate_quote_transition(current: QuoteStatus, target: QuoteStatus) -> None:
    current = QuoteStatus(current)
    target = QuoteStatus(target)
    if target not in QUOTE_TRANSITIONS[current]:
        required = next(
            (source.value for source, targets in QUOTE_TRANSITIONS.items() if target in targets),
            None
        )
        raise ValidationException(
            f"Cannot move quote from '{current.value}' to '{target.value}'."
            + (f" Quote must be in '{required}' status." if required else ""),
            field="status",
            details={"from": current.value, "to": target.value}
        )


def line_items_total(line_items: Iterable[QuoteLineItem]) -> float:
    return sum(item.total for item in line_items)


def validate_amount(
    amount: Optional[float],
    line_items: Optional[Iterable[QuoteLineItem]] = None,
    max_amount: float = DEFAULT_MAX_AMOUNT,
    tolerance: float = DEFAULT_TOLERANCE
) -> None:
    """
    Vérifie le montant déclaré d'un devis.

    Le montant doit être compris entre 0 et le plafond ; si des lignes sont
    fournies, leur somme doit égaler le montant à la tolérance près.

    Raises:
        ValidationException
    """
    if amount is not None and not (0 <= amount <= max_amount):
        raise ValidationException(
            f"amount must be between 0 and {max_amount}",
            field="amount"
        )
    if line_items is None:
        return
    items = list(line_items)
    if not items:
        return
    calculated = line_items_total(items)
    if amount is None or abs(calculated - amount) > tolerance:
        raise ValidationException(
            f"Quote amount ({amount}) does not match line items total ({round(calculated, 2)})",
            field="amount",
            details={"declared": amount, "calculated": calculated}
        )
