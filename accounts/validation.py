"""Rule-table validation for account requests.

Each operation declares a ``{field: FieldRules}`` table.  ``validate`` walks
the table, collects every failing message per field and raises
``ValidationFailedException`` when anything failed, so callers only ever see
clean data.

Input is normalised first: strings are trimmed (passwords excepted) and
empty strings become ``None``.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from accounts.exceptions import ValidationFailedException

UNTRIMMED_FIELDS = {"password", "password_confirmation"}


@dataclass(frozen=True)
class FieldRules:
    required: bool = False
    nullable: bool = False
    string: bool = True
    email: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    confirmed: bool = False
    unique: bool = False
    exists: bool = False


def normalise(data: Mapping[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for key, value in data.items():
        if isinstance(value, str):
            if key not in UNTRIMMED_FIELDS:
                value = value.strip()
            if value == "":
                value = None
        cleaned[key] = value
    return cleaned


def is_valid_email(value: str) -> bool:
    try:
        # Syntax only: intranet and .test addresses are accepted.
        validate_email(
            value,
            check_deliverability=False,
            globally_deliverable=False,
            test_environment=True,
        )
    except EmailNotValidError:
        return False
    return True


def _attribute(field: str) -> str:
    return field.replace("_", " ")


def check_field(field: str, value: Any, rules: FieldRules, data: Mapping[str, Any]) -> List[str]:
    """Apply the store-independent rules for one field."""
    attr = _attribute(field)

    if value is None:
        if rules.required:
            return [f"The {attr} field is required."]
        if field in data and not rules.nullable and rules.string:
            return [f"The {attr} must be a string."]
        return []
    if rules.required and isinstance(value, str) and not value.strip():
        return [f"The {attr} field is required."]

    if rules.string and not isinstance(value, str):
        return [f"The {attr} must be a string."]

    messages = []
    if rules.email and not is_valid_email(value):
        messages.append(f"The {attr} must be a valid email address.")
    if rules.min_length is not None and len(value) < rules.min_length:
        messages.append(f"The {attr} must be at least {rules.min_length} characters.")
    if rules.max_length is not None and len(value) > rules.max_length:
        messages.append(f"The {attr} must not be greater than {rules.max_length} characters.")
    if rules.confirmed and data.get(f"{field}_confirmation") != value:
        messages.append(f"The {attr} confirmation does not match.")
    return messages


def validate(
    data: Mapping[str, Any],
    table: Mapping[str, FieldRules],
    store=None,
    ignore_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Validate ``data`` against ``table`` and return the normalised fields.

    ``unique`` and ``exists`` rules consult ``store.exists_by_email``; they
    only run once the field has passed its format checks.  ``ignore_id``
    excludes one record from the uniqueness check (used by updates).
    """
    cleaned = normalise(data)
    errors: Dict[str, List[str]] = {}

    for field, rules in table.items():
        value = cleaned.get(field)
        messages = check_field(field, value, rules, cleaned)

        if not messages and value is not None and store is not None:
            attr = _attribute(field)
            if rules.unique and store.exists_by_email(value, exclude_id=ignore_id):
                messages.append(f"The {attr} has already been taken.")
            if rules.exists and not store.exists_by_email(value):
                messages.append(f"The selected {attr} is invalid.")

        if messages:
            errors[field] = messages

    if errors:
        raise ValidationFailedException(errors)

    return {field: cleaned.get(field) for field in table}
