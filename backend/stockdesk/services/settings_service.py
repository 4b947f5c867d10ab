# Overview: Business settings stored as key/value rows with typed defaults.

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

from flask import current_app

from ..extensions import db
from ..models import SystemSetting
from ..validation import ValidationError


class SettingsValidationError(ValidationError):
    pass


@dataclass(frozen=True)
class SettingSpec:
    key: str
    value_type: str  # bool | int | decimal | string | enum
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    options: tuple = ()
    config_key: str | None = None  # app config value used as the default when set


SETTINGS_REGISTRY = {
    spec.key: spec
    for spec in (
        SettingSpec("business_name", "string", "My Business"),
        SettingSpec("company_email", "string", ""),
        SettingSpec("company_phone", "string", ""),
        SettingSpec("company_address", "string", ""),
        SettingSpec("currency", "string", "USD"),
        SettingSpec("currency_symbol", "string", "$"),
        SettingSpec("tax_rate", "decimal", 0.0, minimum=0, maximum=100),
        SettingSpec("low_stock_threshold", "int", 10, minimum=0, config_key="LOW_STOCK_DEFAULT_THRESHOLD"),
        SettingSpec("expiry_alert_days", "int", 30, minimum=0, maximum=3650, config_key="EXPIRY_WARNING_DAYS"),
        SettingSpec("receipt_header_text", "string", "RECEIPT"),
        SettingSpec("receipt_footer", "string", "Thank you for your business!"),
        SettingSpec("receipt_show_qr", "bool", True),
        SettingSpec("receipt_tax_label", "string", "VAT"),
        SettingSpec("receipt_paper_size", "enum", "80mm", options=("58mm", "80mm", "A4")),
        SettingSpec("receipt_show_customer_info", "bool", True),
    )
}


def _spec(key: str) -> SettingSpec:
    spec = SETTINGS_REGISTRY.get(key)
    if spec is None:
        raise SettingsValidationError(f"Unknown setting: {key}")
    return spec


def _default(spec: SettingSpec) -> Any:
    if spec.config_key and spec.config_key in current_app.config:
        return current_app.config[spec.config_key]
    return spec.default


def _coerce_value(spec: SettingSpec, v: Any) -> Any:
    t = spec.value_type
    if t == "bool":
        if isinstance(v, bool):
            return v
        if isinstance(v, str):
            s = v.strip().lower()
            if s in {"true", "1", "yes", "on"}:
                return True
            if s in {"false", "0", "no", "off"}:
                return False
        raise SettingsValidationError(f"{spec.key}: expected boolean")
    if t == "int":
        if isinstance(v, bool):
            raise SettingsValidationError(f"{spec.key}: expected integer")
        if isinstance(v, int):
            return v
        if isinstance(v, float) and int(v) == v:
            return int(v)
        if isinstance(v, str):
            try:
                return int(v.strip())
            except ValueError:
                pass
        raise SettingsValidationError(f"{spec.key}: expected integer")
    if t == "decimal":
        number = None
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            number = float(v)
        elif isinstance(v, str):
            try:
                number = float(v.strip())
            except ValueError:
                pass
        if number is not None and math.isfinite(number):
            return number
        raise SettingsValidationError(f"{spec.key}: expected decimal")
    if v is None:
        return ""
    return v.strip() if isinstance(v, str) else str(v)


def _validate_constraints(spec: SettingSpec, value: Any) -> None:
    if spec.value_type == "enum" and spec.options and value not in spec.options:
        raise SettingsValidationError(f"{spec.key}: expected one of {list(spec.options)}")
    if spec.value_type in {"int", "decimal"}:
        if spec.minimum is not None and value < spec.minimum:
            raise SettingsValidationError(f"{spec.key}: must be >= {spec.minimum}")
        if spec.maximum is not None and value > spec.maximum:
            raise SettingsValidationError(f"{spec.key}: must be <= {spec.maximum}")


def _normalize_value(spec: SettingSpec, value: Any) -> Any:
    coerced = _coerce_value(spec, value)
    _validate_constraints(spec, coerced)
    return coerced


def _serialize(value: Any) -> str:
    if isinstance(value, bool):
        return json.dumps(value)
    return str(value)


def get_setting(key: str) -> Any:
    spec = _spec(key)
    row = db.session.query(SystemSetting).filter_by(key=key).first()
    if row is None or row.value is None:
        return _default(spec)
    try:
        return _normalize_value(spec, row.value)
    except SettingsValidationError:
        current_app.logger.warning("Stored value for %s is invalid; using default", key)
        return _default(spec)


def get_all_settings() -> dict[str, Any]:
    stored = {row.key: row.value for row in db.session.query(SystemSetting).all()}
    result = {}
    for key, spec in SETTINGS_REGISTRY.items():
        raw = stored.get(key)
        if raw is None:
            result[key] = _default(spec)
            continue
        try:
            result[key] = _normalize_value(spec, raw)
        except SettingsValidationError:
            result[key] = _default(spec)
    return result


def set_setting(key: str, value: Any, actor_user_id: int | None = None) -> Any:
    spec = _spec(key)
    normalized = _normalize_value(spec, value)

    row = db.session.query(SystemSetting).filter_by(key=key).first()
    if row is None:
        row = SystemSetting(key=key)
        db.session.add(row)
    row.value = _serialize(normalized)
    row.updated_by_user_id = actor_user_id
    db.session.commit()
    return normalized


def update_settings(values: dict, actor_user_id: int | None = None) -> dict[str, Any]:
    """Validate every key first, then write them all in one commit."""
    if not isinstance(values, dict) or not values:
        raise SettingsValidationError("No settings provided")
    normalized = {key: _normalize_value(_spec(key), value) for key, value in values.items()}

    existing = {
        row.key: row
        for row in db.session.query(SystemSetting).filter(SystemSetting.key.in_(list(normalized))).all()
    }
    for key, value in normalized.items():
        row = existing.get(key)
        if row is None:
            row = SystemSetting(key=key)
            db.session.add(row)
        row.value = _serialize(value)
        row.updated_by_user_id = actor_user_id
    db.session.commit()
    return get_all_settings()
