from decimal import Decimal

import pytest

from billing_core.models.line_item import LineItem
from billing_core.services.settings_service import ENV_DEFAULT_TAX_RATE, ENV_SETTINGS, EngineSettings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.delenv(ENV_SETTINGS, raising=False)
    monkeypatch.delenv(ENV_DEFAULT_TAX_RATE, raising=False)


@pytest.fixture
def make_line():
    def _make(qty="1", price="0", rate="20", discount="0", source="custom", description="Item"):
        return LineItem(
            description=description,
            quantity=Decimal(str(qty)),
            unit_price=Decimal(str(price)),
            tax_rate=Decimal(str(rate)),
            discount=Decimal(str(discount)),
            source=source,
        )
    return _make


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()
