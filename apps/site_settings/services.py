"""
Settings store.

Every settings kind is a singleton row, fetched or created with defaults on
first read. Updates apply known fields only and are audited with secret
values masked.
"""
import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError
from django.db import models, transaction

from apps.audit.audit_service import log_action, diff_fields, snapshot, AuditAction, MASK
from .models import (
    SingletonSettings,
    GeneralSettings,
    PaymentSettings,
    CourierSettings,
    IntegrationSettings,
    AuthSettings,
)

logger = logging.getLogger(__name__)

SETTINGS_MODELS = {
    'general': GeneralSettings,
    'payment': PaymentSettings,
    'courier': CourierSettings,
    'integrations': IntegrationSettings,
    'auth': AuthSettings,
}

NON_EDITABLE_FIELDS = {'id', 'created_at', 'updated_at'}


class SettingsError(Exception):
    """Raised when a settings update is rejected."""


class UnknownSettingsKind(SettingsError):
    """Raised for a settings kind that does not exist."""


def _model_for(kind: str):
    try:
        return SETTINGS_MODELS[kind]
    except KeyError:
        raise UnknownSettingsKind(f"Unknown settings kind: {kind}")


def editable_fields(model) -> list:
    return [f.name for f in model._meta.concrete_fields if f.name not in NON_EDITABLE_FIELDS]


def get_settings(kind: str) -> SingletonSettings:
    """Fetch the singleton for kind, creating it with defaults if missing."""
    return _model_for(kind).load()


def get_general_settings() -> GeneralSettings:
    return GeneralSettings.load()


def get_payment_settings() -> PaymentSettings:
    return PaymentSettings.load()


def get_courier_settings() -> CourierSettings:
    return CourierSettings.load()


def get_integration_settings() -> IntegrationSettings:
    return IntegrationSettings.load()


def get_auth_settings() -> AuthSettings:
    return AuthSettings.load()


def mask_secret(value: Any) -> str:
    return MASK if value else ''


def settings_to_dict(instance: SingletonSettings, fields=None) -> Dict[str, Any]:
    """Serialise a settings row with secret fields masked."""
    fields = fields or editable_fields(type(instance))
    data = {}
    for name in fields:
        value = getattr(instance, name)
        data[name] = mask_secret(value) if name in instance.SECRET_FIELDS else value
    data['updated_at'] = instance.updated_at
    return data


def _coerce(model, name: str, value: Any) -> Any:
    field = model._meta.get_field(name)
    if isinstance(field, models.JSONField):
        return value
    try:
        return field.to_python(value)
    except ValidationError as e:
        raise SettingsError(f"Invalid value for {name}: {'; '.join(e.messages)}")


def _validate(instance: SingletonSettings) -> None:
    if isinstance(instance, CourierSettings):
        if not instance.default_courier_partners:
            raise SettingsError("At least one courier partner must be selected")
        if instance.free_delivery_threshold < 0:
            raise SettingsError("Free delivery threshold cannot be negative")
    if isinstance(instance, AuthSettings) and instance.password_min_length < 6:
        raise SettingsError("Password minimum length must be at least 6")


def update_settings(
    kind: str,
    data: Dict[str, Any],
    actor=None,
    audit_context: Optional[dict] = None,
) -> SingletonSettings:
    """
    Apply a partial update to the settings singleton for kind.

    Unknown keys are ignored. A secret submitted as the mask placeholder
    keeps its stored value. Embedded documents (JSON dicts) are merged.

    Raises:
        UnknownSettingsKind: kind is not a settings document
        SettingsError: a value fails validation
    """
    model = _model_for(kind)
    fields = editable_fields(model)

    with transaction.atomic():
        instance = model.objects.select_for_update().get(pk=model.load().pk)
        before = snapshot(instance, fields)

        for name, value in data.items():
            if name not in fields:
                continue
            if name in model.SECRET_FIELDS and value == MASK:
                continue
            current = getattr(instance, name)
            if isinstance(current, dict) and isinstance(value, dict):
                value = {**current, **value}
            setattr(instance, name, _coerce(model, name, value))

        _validate(instance)
        instance.save()

    changes = diff_fields(before, snapshot(instance, fields), masked=model.SECRET_FIELDS)
    if changes:
        log_action(
            actor=actor,
            action=AuditAction.UPDATE_SETTINGS,
            resource=model.__name__,
            resource_id=instance.pk,
            changes=changes,
            metadata={"kind": kind},
            **(audit_context or {}),
        )
        logger.info(f"Updated {kind} settings: {[c['field'] for c in changes]}")

    return instance


def get_public_general_settings() -> Dict[str, Any]:
    """Storefront-safe subset of the general settings."""
    instance = get_general_settings()
    return {name: getattr(instance, name) for name in GeneralSettings.PUBLIC_FIELDS}


def get_public_payment_settings() -> Dict[str, bool]:
    instance = get_payment_settings()
    return {
        "gateway_enabled": instance.gateway_enabled and instance.has_credentials,
        "cod_enabled": instance.cod_enabled,
        "sandbox": instance.sslcommerz_sandbox,
    }


def get_public_courier_settings() -> Dict[str, Any]:
    instance = get_courier_settings()
    return {
        "delivery_charges": instance.delivery_charges,
        "cod_charge_rate": instance.cod_charge_rate,
        "free_delivery_threshold": instance.free_delivery_threshold,
    }


def get_public_auth_settings() -> Dict[str, Any]:
    instance = get_auth_settings()
    return {name: getattr(instance, name) for name in editable_fields(AuthSettings)}
