"""
Settings service tests.

Verifies:
- Defaults come from the registry, or from app config where mapped
- Typed coercion and range checks on write
- Batch updates validate every key before writing any
"""

import pytest

from stockdesk.models import SystemSetting
from stockdesk.services import settings_service
from stockdesk.services.settings_service import SettingsValidationError


def test_defaults(db_session):
    settings = settings_service.get_all_settings()
    assert settings["currency"] == "USD"
    assert settings["receipt_show_qr"] is True
    assert settings["low_stock_threshold"] == 10
    assert settings["expiry_alert_days"] == 30


def test_config_backed_default(app, db_session):
    app.config["LOW_STOCK_DEFAULT_THRESHOLD"] = 3
    try:
        assert settings_service.get_setting("low_stock_threshold") == 3
    finally:
        app.config["LOW_STOCK_DEFAULT_THRESHOLD"] = 10


def test_coercion(db_session):
    assert settings_service.set_setting("tax_rate", "7.5") == 7.5
    assert settings_service.set_setting("receipt_show_qr", "off") is False
    assert settings_service.set_setting("low_stock_threshold", "12") == 12

    assert settings_service.get_setting("tax_rate") == 7.5
    assert settings_service.get_setting("receipt_show_qr") is False
    assert settings_service.get_setting("low_stock_threshold") == 12


@pytest.mark.parametrize("key, value", [
    ("tax_rate", 101),
    ("tax_rate", "abc"),
    ("tax_rate", "nan"),
    ("tax_rate", float("inf")),
    ("tax_rate", "-Infinity"),
    ("low_stock_threshold", -1),
    ("low_stock_threshold", True),
    ("receipt_paper_size", "letter"),
    ("receipt_show_qr", "maybe"),
    ("no_such_setting", 1),
])
def test_invalid_values(db_session, key, value):
    with pytest.raises(SettingsValidationError):
        settings_service.set_setting(key, value)


def test_update_is_all_or_nothing(db_session):
    with pytest.raises(SettingsValidationError):
        settings_service.update_settings({"currency": "EUR", "tax_rate": 500})

    assert db_session.query(SystemSetting).count() == 0
    assert settings_service.get_setting("currency") == "USD"


def test_update_returns_everything(db_session):
    result = settings_service.update_settings({"currency": "KES", "currency_symbol": "KSh"})
    assert result["currency"] == "KES"
    assert result["currency_symbol"] == "KSh"
    assert "receipt_footer" in result


def test_corrupt_stored_value_falls_back_to_default(db_session):
    db_session.add(SystemSetting(key="tax_rate", value="not a number"))
    db_session.commit()
    assert settings_service.get_setting("tax_rate") == 0.0
