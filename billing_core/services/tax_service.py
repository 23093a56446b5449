from __future__ import annotations
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping

from billing_core.models.line_item import LineItem
from billing_core.models.money import ZERO, normalize_rate, percent_of, quantize_money
from billing_core.models.totals import TaxBucket


def aggregate(lines: Iterable[LineItem]) -> Dict[Decimal, Decimal]:
    """
    Base HT par taux de TVA : somme de (qté x PU - remise ligne) des lignes de ce taux.
    Tout taux >= 0 est accepté (le catalogue n'est pas imposé ici).
    """
    bases: Dict[Decimal, Decimal] = {}
    for line in lines:
        rate = normalize_rate(line.tax_rate)
        bases[rate] = bases.get(rate, ZERO) + line.net_amount
    return bases


def sorted_rates(bases: Mapping[Decimal, object]) -> List[Decimal]:
    return sorted(bases, reverse=True)


def bucket_tax(base: Decimal, rate: Decimal) -> Decimal:
    # arrondi au centime par taux (et non par ligne)
    return quantize_money(percent_of(base, rate))


def build_buckets(bases: Mapping[Decimal, Decimal]) -> Dict[Decimal, TaxBucket]:
    return {
        rate: TaxBucket(rate=rate, base=bases[rate], tax_amount=bucket_tax(bases[rate], rate))
        for rate in sorted_rates(bases)
    }
