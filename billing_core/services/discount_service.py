from __future__ import annotations
import logging
from decimal import Decimal
from typing import Dict, Mapping, Optional, Tuple

from billing_core.models.money import ZERO, percent_of, quantize_money
from billing_core.models.totals import DiscountSpec

logger = logging.getLogger(__name__)


def discount_amount_for(subtotal: Decimal, discount: Optional[DiscountSpec]) -> Decimal:
    """Montant de la remise globale, arrondi au centime. Jamais plafonné au sous-total."""
    if discount is None or not discount.amount:
        return ZERO
    if discount.type == "percentage":
        return quantize_money(percent_of(subtotal, discount.amount))
    return quantize_money(discount.amount)


def allocate(
    bases: Mapping[Decimal, Decimal],
    subtotal_pre_discount: Decimal,
    discount: Optional[DiscountSpec],
) -> Tuple[Dict[Decimal, Decimal], Decimal]:
    """
    Répartit la remise globale sur les bases par taux, au prorata.
    Chaque base est arrondie au centime ; l'écart d'arrondi est porté par la plus
    grosse base (à égalité : le taux le plus élevé) pour que la somme des bases
    soit exactement sous-total - remise.
    """
    discount_amount = discount_amount_for(subtotal_pre_discount, discount)
    if not discount_amount:
        return dict(bases), discount_amount

    if subtotal_pre_discount == 0:
        # rien à réduire : ratio 0, la remise reste hors buckets
        logger.debug("Remise %s sur un sous-total nul, non répartie", discount_amount)
        return dict(bases), discount_amount

    ratio = discount_amount / subtotal_pre_discount
    reduced = {rate: quantize_money(base - base * ratio) for rate, base in bases.items()}

    residue = (subtotal_pre_discount - discount_amount) - sum(reduced.values(), ZERO)
    if residue and reduced:
        anchor = max(reduced, key=lambda r: (bases[r], r))
        reduced[anchor] += residue
    return reduced, discount_amount
