# billing_core/services/settings_service.py
from __future__ import annotations
import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from billing_core.errors import ConfigError
from billing_core.models.money import normalize_rate, parse_decimal

logger = logging.getLogger(__name__)

# --- Chemins de base ---
ROOT_DIR = Path(__file__).resolve().parents[2]
DATA_DIR = ROOT_DIR / "data"
SETTINGS_JSON = DATA_DIR / "settings.json"

ENV_SETTINGS = "BILLING_CORE_SETTINGS"
ENV_DEFAULT_TAX_RATE = "BILLING_CORE_DEFAULT_TAX_RATE"


class EngineSettings(BaseModel):
    default_tax_rate: Decimal = Field(default=Decimal("20"), ge=0)
    tax_rate_catalog: List[Decimal] = Field(
        default_factory=lambda: [Decimal("0"), Decimal("5.5"), Decimal("10"), Decimal("20")]
    )
    advance_percentage: Decimal = Field(default=Decimal("30"), ge=0, le=100)

    @field_validator("default_tax_rate", "advance_percentage", mode="before")
    @classmethod
    def _as_decimal(cls, v):
        if v is None or v == "":
            raise ValueError("value required")
        return parse_decimal(v)

    @field_validator("tax_rate_catalog", mode="before")
    @classmethod
    def _as_rates(cls, v):
        if not isinstance(v, (list, tuple)):
            raise ValueError("tax_rate_catalog must be a list")
        return [parse_decimal(x) for x in v]

    def is_catalog_rate(self, rate: Any) -> bool:
        r = normalize_rate(rate)
        return any(normalize_rate(c) == r for c in self.tax_rate_catalog)

    class Config:
        frozen = True


# ---------- Utils JSON ----------
def _load_json(path: os.PathLike | str) -> Optional[Any]:
    p = Path(path)
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Settings illisibles (%s): %s. Valeurs par défaut utilisées.", p, e)
        return None


def _extract(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Accepte une section "billing" ou des clés à plat (+ ancienne clé acompte_pct)."""
    section = raw.get("billing") if isinstance(raw.get("billing"), dict) else raw
    out: Dict[str, Any] = {}
    for key in ("default_tax_rate", "tax_rate_catalog", "advance_percentage"):
        if key in section:
            out[key] = section[key]
    if "advance_percentage" not in out and raw.get("acompte_pct") is not None:
        out["advance_percentage"] = raw["acompte_pct"]
    return out


def settings_path() -> Path:
    env_path = os.environ.get(ENV_SETTINGS)
    return Path(env_path) if env_path else SETTINGS_JSON


def load_settings(path: Optional[os.PathLike | str] = None) -> EngineSettings:
    """
    Charge la configuration du moteur :
    - fichier explicite, sinon $BILLING_CORE_SETTINGS, sinon data/settings.json
    - $BILLING_CORE_DEFAULT_TAX_RATE surcharge le taux par défaut
    Fichier absent ou illisible -> valeurs par défaut. Valeurs invalides -> ConfigError.
    """
    p = Path(path) if path is not None else settings_path()
    raw = _load_json(p)
    values: Dict[str, Any] = _extract(raw) if isinstance(raw, dict) else {}

    env_rate = os.environ.get(ENV_DEFAULT_TAX_RATE)
    if env_rate:
        values["default_tax_rate"] = env_rate

    try:
        settings = EngineSettings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid billing settings in {p}", details={"errors": e.errors()}) from e

    logger.debug("Billing settings loaded from %s: default_tax_rate=%s", p, settings.default_tax_rate)
    return settings
