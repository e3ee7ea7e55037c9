"""
Dynamic form engine.

Evaluates conditional visibility, validates submitted answers against a
FormSchema and prices the selected membership types. Pure functions, no
database access: callers pass in the organization's membership types.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from memberhub.core.email import is_valid_email
from memberhub.schemas.form import FormField, FormSchema, FormSection, SelectOption

PHONE_RE = re.compile(r"^\+?[0-9\s\-()]{7,20}$")

DONATION_FIELD_ID = "donation_amount"
MAX_DONATION = Decimal("100000")


@dataclass(frozen=True)
class PricedType:
    """The slice of a membership type the form engine needs."""

    id: str
    code: str
    name: str
    price: Decimal
    is_active: bool = True


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------

def _loose_equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    if isinstance(actual, bool) and isinstance(expected, str):
        return expected.strip().lower() == str(actual).lower()
    if actual is None or expected is None:
        return False
    return str(actual) == str(expected)


def is_visible(field: FormField, data: Mapping[str, Any]) -> bool:
    """Apply a field's ``show_if`` rule to the current answers."""
    rule = field.show_if
    if rule is None:
        return True

    actual = data.get(rule.field_id)
    if rule.operator == "equals":
        return _loose_equals(actual, rule.value)
    if rule.operator == "not_equals":
        return not _loose_equals(actual, rule.value)

    # contains
    if isinstance(actual, (list, tuple)):
        return any(_loose_equals(item, rule.value) for item in actual)
    if isinstance(actual, str) and rule.value is not None:
        return str(rule.value) in actual
    return False


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def _to_decimal(value: Any) -> Decimal | None:
    """Finite decimals only; NaN and Infinity count as not a number."""
    if isinstance(value, bool):
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return number if number.is_finite() else None


def _donation(data: Mapping[str, Any]) -> Decimal | None:
    """The submitted donation, or None when it is missing or out of range."""
    raw = data.get(DONATION_FIELD_ID)
    if is_empty(raw):
        return Decimal("0")
    amount = _to_decimal(raw)
    if amount is None or amount < 0 or amount > MAX_DONATION:
        return None
    return amount


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _option_values(options: list[SelectOption]) -> set[str]:
    return {option.value for option in options}


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------

def _check_rules(field: FormField, value: Any) -> str | None:
    for rule in field.validation:
        message = rule.message
        if rule.type == "required":
            if is_empty(value):
                return message or f"{field.label} is required"
            continue

        if is_empty(value):
            continue

        if rule.type in ("min", "max"):
            number = _to_decimal(value)
            bound = _to_decimal(rule.value)
            if number is None or bound is None:
                return message or f"{field.label} must be a number"
            if rule.type == "min" and number < bound:
                return message or f"{field.label} must be at least {rule.value}"
            if rule.type == "max" and number > bound:
                return message or f"{field.label} must be at most {rule.value}"

        elif rule.type == "minLength":
            if len(str(value)) < int(rule.value):
                return message or f"{field.label} must be at least {rule.value} characters"

        elif rule.type == "maxLength":
            if len(str(value)) > int(rule.value):
                return message or f"{field.label} must be at most {rule.value} characters"

        elif rule.type == "pattern":
            if not re.search(str(rule.value), str(value)):
                return message or f"{field.label} is not in the expected format"

        elif rule.type == "email":
            if not is_valid_email(str(value)):
                return message or f"{field.label} must be a valid email address"

        elif rule.type == "phone":
            if not PHONE_RE.match(str(value)):
                return message or f"{field.label} must be a valid phone number"

    return None


def _check_type(
    field: FormField,
    value: Any,
    types_by_id: Mapping[str, PricedType],
) -> str | None:
    if field.type == "email":
        if not is_valid_email(str(value)):
            return f"{field.label} must be a valid email address"

    elif field.type == "tel":
        if not PHONE_RE.match(str(value)):
            return f"{field.label} must be a valid phone number"

    elif field.type == "number":
        if _to_decimal(value) is None:
            return f"{field.label} must be a number"

    elif field.type == "date":
        try:
            date.fromisoformat(str(value))
        except ValueError:
            return f"{field.label} must be a date (YYYY-MM-DD)"

    elif field.type in ("select", "radio"):
        allowed = _option_values(field.options)
        values = _as_list(value) if field.allow_multiple else [value]
        if any(str(v) not in allowed for v in values):
            return f"{field.label} has an invalid choice"

    elif field.type == "checkbox":
        if not isinstance(value, bool):
            return f"{field.label} must be true or false"

    elif field.type == "membership_selection":
        selected = [str(v) for v in _as_list(value)]
        if len(selected) > 1 and not field.allow_multiple:
            return "Please select only one membership type"
        for type_id in selected:
            membership_type = types_by_id.get(type_id)
            if membership_type is None or not membership_type.is_active:
                return "Please choose an available membership type"

    return None


def _validate_field(
    field: FormField,
    data: Mapping[str, Any],
    types_by_id: Mapping[str, PricedType],
    errors: dict[str, str],
    prefix: str = "",
) -> None:
    if not is_visible(field, data):
        return

    key = f"{prefix}{field.id}"
    value = data.get(field.id)

    if field.required:
        if field.type == "checkbox":
            if not value:
                errors[key] = f"{field.label} is required"
                return
        elif field.type == "membership_selection":
            if is_empty(value):
                errors[key] = "Please select at least one membership type"
                return
        elif is_empty(value):
            errors[key] = f"{field.label} is required"
            return

    if field.type == "repeatable_group":
        _validate_group(field, value, types_by_id, errors, key)
        return

    if is_empty(value):
        # Unticked optional checkboxes arrive as false and are fine
        return

    message = _check_type(field, value, types_by_id) or _check_rules(field, value)
    if message:
        errors[key] = message


def _validate_group(
    field: FormField,
    value: Any,
    types_by_id: Mapping[str, PricedType],
    errors: dict[str, str],
    key: str,
) -> None:
    if value is None:
        return
    if not isinstance(value, list) or not all(isinstance(item, dict) for item in value):
        errors[key] = f"{field.label} must be a list of entries"
        return
    if field.max_repeats is not None and len(value) > field.max_repeats:
        errors[key] = f"{field.label} allows at most {field.max_repeats} entries"
        return

    for index, item in enumerate(value):
        for child in field.fields:
            _validate_field(child, item, types_by_id, errors, prefix=f"{key}[{index}].")


def validate_submission(
    schema: FormSchema,
    data: Mapping[str, Any],
    membership_types: list[PricedType] | None = None,
) -> dict[str, str]:
    """
    Validate a submission and return ``{field_id: message}``.

    An empty dict means the submission is valid. Hidden fields are skipped
    and nested group errors are keyed ``group[i].child``.
    """
    types_by_id = {t.id: t for t in membership_types or []}
    errors: dict[str, str] = {}
    for field in schema.iter_fields():
        _validate_field(field, data, types_by_id, errors)

    if _donation(data) is None:
        errors.setdefault(
            DONATION_FIELD_ID, f"Donation must be a number between 0 and {MAX_DONATION}"
        )
    return errors


# ---------------------------------------------------------------------------
# Membership selection and pricing
# ---------------------------------------------------------------------------

def selected_membership_type_ids(schema: FormSchema, data: Mapping[str, Any]) -> list[str]:
    """Collect type ids from every visible membership_selection field, in order."""
    selected: list[str] = []
    for field in schema.iter_fields():
        if field.type != "membership_selection" or not is_visible(field, data):
            continue
        for type_id in _as_list(data.get(field.id)):
            if str(type_id) not in selected:
                selected.append(str(type_id))
    return selected


def calculate_total(
    selected_ids: list[str],
    membership_types: list[PricedType],
    data: Mapping[str, Any] | None = None,
) -> Decimal:
    """Sum of the selected types' prices plus any donation."""
    prices = {t.id: t.price for t in membership_types}
    total = sum((prices.get(type_id, Decimal("0")) for type_id in selected_ids), Decimal("0"))

    # Out-of-range donations are reported by validate_submission and ignored here
    donation = _donation(data or {})
    if donation is not None:
        total += donation

    return total.quantize(Decimal("0.01"))


# ---------------------------------------------------------------------------
# Default schema
# ---------------------------------------------------------------------------

def build_default_schema() -> FormSchema:
    """The form every new organization starts with."""
    return FormSchema(
        version=1,
        sections=[
            FormSection(
                id="personal_details",
                title="Personal Details",
                description="Please provide your contact information",
                fields=[
                    FormField(
                        id="full_name",
                        type="text",
                        label="Full Name",
                        required=True,
                        placeholder="Enter your full name",
                    ),
                    FormField(
                        id="email",
                        type="email",
                        label="Email Address",
                        required=True,
                        placeholder="your.email@example.com",
                    ),
                    FormField(
                        id="phone",
                        type="tel",
                        label="Phone Number",
                        placeholder="+44 1234 567890",
                    ),
                ],
            ),
            FormSection(
                id="membership",
                title="Membership Type",
                description="Select your membership type",
                fields=[
                    FormField(
                        id="membership_selection",
                        type="membership_selection",
                        label="Choose Membership Type",
                        required=True,
                        allow_multiple=False,
                    ),
                ],
            ),
            FormSection(
                id="consent",
                title="Terms & Conditions",
                fields=[
                    FormField(
                        id="agree_rules",
                        type="checkbox",
                        label="I agree to be bound by the rules of the organization",
                        required=True,
                    ),
                    FormField(
                        id="agree_data",
                        type="checkbox",
                        label="I agree to the data processing terms",
                        required=True,
                    ),
                ],
            ),
        ],
    )
