from __future__ import annotations
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _finite(d: Decimal) -> Decimal:
    return d if d.is_finite() else ZERO


def to_decimal(value: Any) -> Decimal:
    """
    Conversion "souple" -> Decimal.
    None / "" / valeur illisible / NaN / infini -> 0. Les floats passent par str()
    (0.1 reste 0.1), les chaînes acceptent la virgule décimale ("12,50") et la
    notation scientifique ("2.5E+1").
    """
    if isinstance(value, Decimal):
        return _finite(value)
    if value is None or value == "" or isinstance(value, bool):
        return ZERO
    if isinstance(value, (int, float)):
        try:
            return _finite(Decimal(str(value)))
        except InvalidOperation:
            return ZERO
    s = str(value).strip().replace(",", ".")
    try:
        return _finite(Decimal(s))
    except InvalidOperation:
        pass
    # saisie avec unité / séparateurs ("1 200.00 €")
    s = re.sub(r"[^0-9.\-]", "", s)
    try:
        return _finite(Decimal(s))
    except InvalidOperation:
        return ZERO


def parse_decimal(value: Any) -> Decimal:
    """Conversion stricte (configuration) : ValueError si la valeur n'est pas un nombre fini."""
    if value is None or isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        raise ValueError(f"not a number: {value!r}") from None
    if not d.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return d


def quantize_money(value: Any) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(base: Any, rate: Any) -> Decimal:
    """base * rate / 100, sans arrondi."""
    return to_decimal(base) * to_decimal(rate) / HUNDRED


def normalize_rate(rate: Any) -> Decimal:
    # 20, 20.0 et 20.00 doivent tomber dans le même bucket avec la même clé
    r = to_decimal(rate)
    if r == r.to_integral_value():
        return r.quantize(Decimal(1))
    return r.normalize()


def to_cents(value: Any) -> int:
    return int(quantize_money(value) * 100)


def from_cents(cents: Any) -> Decimal:
    try:
        return (Decimal(int(cents)) / 100).quantize(CENT)
    except (TypeError, ValueError):
        return ZERO.quantize(CENT)


def format_eur(value: Any) -> str:
    return f"{quantize_money(value):.2f} €"
