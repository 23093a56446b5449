from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from billing_core.models.line_item import CustomItem, Expense, LineItem, TimeEntry
from billing_core.models.money import ZERO, percent_of, quantize_money, to_decimal

DEFAULT_TAX_RATE = Decimal("20")
SECONDS_PER_HOUR = Decimal("3600")


# ---------- Helpers ---------- #

def _ids(selected: Optional[Iterable[Any]]) -> set[str]:
    return {str(i) for i in (selected or ())}


def _as_model(obj: Any, model):
    return obj if isinstance(obj, model) else model.model_validate(obj)


def _non_negative(v: Any) -> Decimal:
    return max(ZERO, to_decimal(v))


def _rate(rate: Optional[Any], default_tax_rate: Optional[Any]) -> Decimal:
    if rate is None:
        return DEFAULT_TAX_RATE if default_tax_rate is None else _non_negative(default_tax_rate)
    return _non_negative(rate)


def _time_entry_label(entry: TimeEntry) -> str:
    return entry.description or entry.task or entry.project or "Time entry"


# ---------- Lignes unitaires ---------- #

def time_entry_line(entry: TimeEntry, default_tax_rate: Optional[Any] = None) -> LineItem:
    hours = _non_negative(entry.duration_seconds) / SECONDS_PER_HOUR
    return LineItem(
        description=_time_entry_label(entry),
        quantity=hours,
        unit_price=_non_negative(entry.hourly_rate),
        tax_rate=_rate(None, default_tax_rate),
        source="time_entry",
    )


def expense_line(expense: Expense, default_tax_rate: Optional[Any] = None) -> LineItem:
    return LineItem(
        description=expense.description,
        quantity=Decimal("1"),
        unit_price=_non_negative(expense.amount),
        tax_rate=_rate(None, default_tax_rate),
        source="expense",
    )


def custom_item_line(item: CustomItem, default_tax_rate: Optional[Any] = None) -> LineItem:
    qty = _non_negative(item.quantity)
    price = _non_negative(item.unit_price)
    discount = item.discount
    if not discount and item.discount_percent:
        # remise % (devis) -> montant absolu sur la ligne
        discount = quantize_money(percent_of(quantize_money(qty * price), item.discount_percent))
    return LineItem(
        description=item.description,
        quantity=qty,
        unit_price=price,
        tax_rate=_rate(item.tax_rate, default_tax_rate),
        discount=discount,
        source="custom",
    )


# ---------- Normalisation ---------- #

def normalize(
    time_entries: Iterable[TimeEntry | Dict[str, Any]] = (),
    selected_time_entry_ids: Optional[Iterable[Any]] = None,
    expenses: Iterable[Expense | Dict[str, Any]] = (),
    selected_expense_ids: Optional[Iterable[Any]] = None,
    custom_items: Iterable[CustomItem | Dict[str, Any]] = (),
    *,
    default_tax_rate: Optional[Any] = None,
) -> List[LineItem]:
    """
    Convertit temps passés, dépenses et lignes libres en LineItem.
    Seuls les temps / dépenses sélectionnés sont repris. Les lignes libres
    invalides restent présentes (aperçu en direct), le filtrage est à la charge
    de l'appelant avant soumission (cf. valid_custom_items).
    """
    te_ids = _ids(selected_time_entry_ids)
    ex_ids = _ids(selected_expense_ids)

    lines: List[LineItem] = []
    for d in time_entries or ():
        entry = _as_model(d, TimeEntry)
        if entry.id in te_ids:
            lines.append(time_entry_line(entry, default_tax_rate))
    for d in expenses or ():
        expense = _as_model(d, Expense)
        if expense.id in ex_ids:
            lines.append(expense_line(expense, default_tax_rate))
    for d in custom_items or ():
        lines.append(custom_item_line(_as_model(d, CustomItem), default_tax_rate))
    return lines


def group_time_entries_by_task(
    time_entries: Iterable[TimeEntry | Dict[str, Any]],
    selected_time_entry_ids: Optional[Iterable[Any]] = None,
    *,
    default_tax_rate: Optional[Any] = None,
) -> List[LineItem]:
    """Une ligne par tâche (ou par projet sans tâche), au taux horaire de la première entrée."""
    te_ids = _ids(selected_time_entry_ids)
    groups: Dict[str, List[TimeEntry]] = {}
    for d in time_entries or ():
        entry = _as_model(d, TimeEntry)
        if entry.id not in te_ids:
            continue
        key = entry.task_id or entry.task or entry.project or ""
        groups.setdefault(key, []).append(entry)

    lines: List[LineItem] = []
    for entries in groups.values():
        first = entries[0]
        seconds = sum((_non_negative(e.duration_seconds) for e in entries), ZERO)
        hours = seconds / SECONDS_PER_HOUR
        label = first.task or first.project or _time_entry_label(first)
        lines.append(LineItem(
            description=f"{label} - {hours.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP).normalize():f} hours",
            quantity=hours,
            unit_price=_non_negative(first.hourly_rate),
            tax_rate=_rate(None, default_tax_rate),
            source="time_entry",
        ))
    return lines


# ---------- Validité (soumission) ---------- #

def is_valid_custom_item(item: CustomItem | Dict[str, Any]) -> bool:
    it = _as_model(item, CustomItem)
    return bool(it.description.strip()) and it.quantity > 0 and it.unit_price > 0


def valid_custom_items(items: Iterable[CustomItem | Dict[str, Any]]) -> List[CustomItem]:
    return [_as_model(it, CustomItem) for it in (items or ()) if is_valid_custom_item(it)]
