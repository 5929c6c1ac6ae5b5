"""Validates submitted task form data against the task's form schema.

Each field kind compiles to a JSON Schema fragment (see app.schemas.form)
checked with jsonschema. Unknown field kinds accept any value.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

import jsonschema
from jsonschema import Draft202012Validator, FormatChecker
from pydantic import ValidationError

from app.application.dtos.form import FormValidationResult
from app.domain.exceptions import ValidationException
from app.schemas.form import (
    DATE_FORMAT,
    FORM_FIELD_TYPES,
    FormSchema,
    form_field_adapter,
)
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

form_format_checker = FormatChecker()


@form_format_checker.checks(DATE_FORMAT, raises=ValueError)
def _is_iso_date(value: object) -> bool:
    """ISO-8601 calendar date ("2024-05-01") or date-time (trailing Z allowed)."""
    if not isinstance(value, str):
        return True
    if len(value) == 10:
        date.fromisoformat(value)
        return True
    if "T" not in value and " " not in value:
        return False
    datetime.fromisoformat(value.replace("Z", "+00:00"))
    return True


def is_valid_form_schema(raw: Any) -> bool:
    """True if raw is {"fields": {...}} and every field has a recognized kind
    (select options must be {value: str, label: str})."""
    return parse_form_schema(raw) is not None


def parse_form_schema(raw: Any) -> FormSchema | None:
    """Parse a stored form schema. Malformed input returns None."""
    if not isinstance(raw, dict):
        return None
    try:
        return FormSchema.model_validate(raw)
    except ValidationError:
        return None


def required_fields(schema: FormSchema) -> list[str]:
    return schema.required_fields


def apply_defaults(schema: FormSchema, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Copy of data with field defaults filled in for absent keys."""
    result = dict(data or {})
    for name, field in schema.fields.items():
        if name not in result and field.default is not None:
            result[name] = field.default
    return result


def _compile_fields(schema: FormSchema | dict[str, Any]) -> dict[str, Any]:
    """Map field name -> field kind model, or None for unknown kinds (pass-through)."""
    if isinstance(schema, FormSchema):
        return dict(schema.fields)
    compiled: dict[str, Any] = {}
    for name, raw_field in (schema.get("fields") or {}).items():
        if isinstance(raw_field, dict) and raw_field.get("type") in FORM_FIELD_TYPES:
            compiled[name] = form_field_adapter.validate_python(raw_field)
        else:
            compiled[name] = None
    return compiled


def _is_required(field: Any, raw: Any) -> bool:
    if field is not None:
        return field.required
    return bool(isinstance(raw, dict) and raw.get("required"))


def _check_value(name: str, field: Any, value: Any) -> list[str]:
    if isinstance(value, (date, datetime)) and field.type == "date":
        return []
    validator = Draft202012Validator(field.json_schema(), format_checker=form_format_checker)
    messages: list[str] = []
    for error in validator.iter_errors(value):
        message = field.error_message(name, str(error.validator))
        if message not in messages:
            messages.append(message)
    return messages


def validate_form_data(
    schema: FormSchema | dict[str, Any], data: dict[str, Any] | None
) -> FormValidationResult:
    """Validate data against schema.

    Required fields reject absence and null; optional fields accept both.
    Returned data keeps only schema fields that were submitted.

    Raises:
        ValidationException: a known field kind is itself malformed (raw dict schemas only).
    """
    data = data or {}
    try:
        fields = _compile_fields(schema)
    except ValidationError as e:
        raise ValidationException("Invalid form schema", field="form_schema") from e
    raw_fields = {} if isinstance(schema, FormSchema) else (schema.get("fields") or {})

    errors: dict[str, list[str]] = {}
    cleaned: dict[str, Any] = {}
    for name, field in fields.items():
        present = name in data and data[name] is not None
        if not present:
            if _is_required(field, raw_fields.get(name)):
                errors[name] = [f"{name} is required"]
            elif name in data:
                cleaned[name] = None
            continue
        value = data[name]
        if field is not None:
            try:
                messages = _check_value(name, field, value)
            except (jsonschema.SchemaError, re.error):
                # e.g. an invalid regex in validation.pattern
                messages = [f"{name} has an invalid validation rule"]
            if messages:
                errors[name] = messages
                continue
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        cleaned[name] = value

    if errors:
        logger.debug("Form validation failed for fields: %s", sorted(errors))
        return FormValidationResult(valid=False, data=None, errors=errors)
    return FormValidationResult(valid=True, data=cleaned, errors={})


def validate_form_data_or_raise(
    schema: FormSchema | dict[str, Any], data: dict[str, Any] | None
) -> dict[str, Any]:
    """Return cleaned data or raise ValidationException carrying all field errors."""
    result = validate_form_data(schema, data)
    if not result.valid:
        raise ValidationException("Form validation failed", field_errors=result.errors)
    return result.data or {}
