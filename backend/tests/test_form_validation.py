"""
Dynamic form engine: visibility, validation and pricing.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from memberhub.schemas.form import FormField, FormSchema, FormSection
from memberhub.services.form_validation import (
    PricedType,
    build_default_schema,
    calculate_total,
    is_visible,
    selected_membership_type_ids,
    validate_submission,
)

FULL = PricedType(id="t-full", code="full", name="Full", price=Decimal("25.00"))
JUNIOR = PricedType(id="t-junior", code="junior", name="Junior", price=Decimal("10.50"))
RETIRED = PricedType(id="t-old", code="old", name="Old", price=Decimal("5"), is_active=False)
TYPES = [FULL, JUNIOR, RETIRED]


def schema_with(*fields: dict) -> FormSchema:
    return FormSchema(sections=[FormSection(id="main", title="Main", fields=list(fields))])


def valid_default_answers() -> dict:
    return {
        "full_name": "Jane Bell",
        "email": "jane@example.com",
        "phone": "+44 1234 567890",
        "membership_selection": FULL.id,
        "agree_rules": True,
        "agree_data": True,
    }


# ---------------------------------------------------------------------------
# Default form
# ---------------------------------------------------------------------------

def test_default_form_accepts_complete_answers():
    assert validate_submission(build_default_schema(), valid_default_answers(), TYPES) == {}


def test_default_form_reports_every_problem():
    answers = valid_default_answers() | {
        "full_name": "  ",
        "email": "not-an-email",
        "agree_data": False,
    }
    errors = validate_submission(build_default_schema(), answers, TYPES)
    assert set(errors) == {"full_name", "email", "agree_data"}
    assert errors["full_name"] == "Full Name is required"


def test_inactive_membership_type_rejected():
    answers = valid_default_answers() | {"membership_selection": RETIRED.id}
    errors = validate_submission(build_default_schema(), answers, TYPES)
    assert errors == {"membership_selection": "Please choose an available membership type"}


def test_single_selection_rejects_two_types():
    answers = valid_default_answers() | {"membership_selection": [FULL.id, JUNIOR.id]}
    errors = validate_submission(build_default_schema(), answers, TYPES)
    assert errors["membership_selection"] == "Please select only one membership type"


# ---------------------------------------------------------------------------
# Conditional visibility
# ---------------------------------------------------------------------------

def test_hidden_required_field_is_skipped():
    schema = schema_with(
        {"id": "has_tower", "type": "checkbox", "label": "Tower?"},
        {
            "id": "tower_name",
            "type": "text",
            "label": "Tower name",
            "required": True,
            "show_if": {"field_id": "has_tower", "value": True},
        },
    )
    assert validate_submission(schema, {"has_tower": False}) == {}
    assert validate_submission(schema, {"has_tower": True}) == {"tower_name": "Tower name is required"}


@pytest.mark.parametrize(
    "operator, value, answers, expected",
    [
        ("equals", "yes", {"q": "yes"}, True),
        ("equals", "true", {"q": True}, True),
        ("not_equals", "yes", {"q": "no"}, True),
        ("contains", "b", {"q": ["a", "b"]}, True),
        ("contains", "z", {"q": ["a", "b"]}, False),
        ("equals", "yes", {}, False),
    ],
)
def test_show_if_operators(operator, value, answers, expected):
    field = FormField(
        id="f",
        type="text",
        label="F",
        show_if={"field_id": "q", "operator": operator, "value": value},
    )
    assert is_visible(field, answers) is expected


# ---------------------------------------------------------------------------
# Field types and rules
# ---------------------------------------------------------------------------

def test_number_rules():
    schema = schema_with({
        "id": "age",
        "type": "number",
        "label": "Age",
        "validation": [{"type": "min", "value": 16}, {"type": "max", "value": 120}],
    })
    assert validate_submission(schema, {"age": 30}) == {}
    assert validate_submission(schema, {"age": 12}) == {"age": "Age must be at least 16"}
    assert validate_submission(schema, {"age": "old"}) == {"age": "Age must be a number"}


def test_pattern_rule_with_custom_message():
    schema = schema_with({
        "id": "postcode",
        "type": "text",
        "label": "Postcode",
        "validation": [{"type": "pattern", "value": "^[A-Z]{2}[0-9]", "message": "Bad postcode"}],
    })
    assert validate_submission(schema, {"postcode": "OX1 1AA"}) == {}
    assert validate_submission(schema, {"postcode": "x"}) == {"postcode": "Bad postcode"}


def test_select_options_enforced():
    schema = schema_with({
        "id": "colour",
        "type": "select",
        "label": "Colour",
        "options": [{"value": "red", "label": "Red"}, {"value": "blue", "label": "Blue"}],
    })
    assert validate_submission(schema, {"colour": "red"}) == {}
    assert validate_submission(schema, {"colour": "green"}) == {"colour": "Colour has an invalid choice"}


def test_date_field():
    schema = schema_with({"id": "dob", "type": "date", "label": "Date of birth"})
    assert validate_submission(schema, {"dob": "1990-05-17"}) == {}
    assert "dob" in validate_submission(schema, {"dob": "17/05/1990"})


def test_repeatable_group_errors_are_indexed():
    schema = schema_with({
        "id": "children",
        "type": "repeatable_group",
        "label": "Children",
        "max_repeats": 2,
        "fields": [
            {"id": "name", "type": "text", "label": "Name", "required": True},
            {"id": "email", "type": "email", "label": "Email"},
        ],
    })
    errors = validate_submission(
        schema, {"children": [{"name": "Ann", "email": "ann@example.com"}, {"name": ""}]}
    )
    assert errors == {"children[1].name": "Name is required"}

    too_many = validate_submission(schema, {"children": [{"name": "a"}] * 3})
    assert too_many == {"children": "Children allows at most 2 entries"}


# ---------------------------------------------------------------------------
# Schema checks
# ---------------------------------------------------------------------------

def test_duplicate_field_ids_rejected():
    with pytest.raises(ValidationError):
        schema_with(
            {"id": "x", "type": "text", "label": "X"},
            {"id": "x", "type": "text", "label": "X again"},
        )


def test_select_needs_options():
    with pytest.raises(ValidationError):
        FormField(id="s", type="select", label="S")


@pytest.mark.parametrize("rule", [
    {"type": "minLength"},
    {"type": "maxLength", "value": "ten"},
    {"type": "min", "value": "NaN"},
    {"type": "max"},
    {"type": "pattern", "value": "("},
    {"type": "pattern", "value": 5},
])
def test_rules_need_usable_values(rule):
    with pytest.raises(ValidationError):
        FormField(id="f", type="text", label="F", validation=[rule])


def test_length_rule_value_coerced_to_int():
    field = FormField(id="f", type="text", label="F", validation=[{"type": "minLength", "value": "3"}])
    assert field.validation[0].value == 3


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

def test_calculate_total_with_donation():
    total = calculate_total([FULL.id, JUNIOR.id], TYPES, {"donation_amount": "4.5"})
    assert total == Decimal("40.00")


def test_calculate_total_ignores_unknown_and_negative():
    assert calculate_total(["missing"], TYPES, {"donation_amount": "-3"}) == Decimal("0.00")


def test_selected_ids_skip_hidden_fields():
    schema = schema_with(
        {"id": "family", "type": "checkbox", "label": "Family"},
        {"id": "main_type", "type": "membership_selection", "label": "Type"},
        {
            "id": "extra_type",
            "type": "membership_selection",
            "label": "Extra",
            "show_if": {"field_id": "family", "value": True},
        },
    )
    answers = {"family": False, "main_type": FULL.id, "extra_type": JUNIOR.id}
    assert selected_membership_type_ids(schema, answers) == [FULL.id]
    assert selected_membership_type_ids(schema, answers | {"family": True}) == [FULL.id, JUNIOR.id]


def test_email_field_uses_full_address_rules():
    schema = schema_with({"id": "contact", "type": "email", "label": "Contact"})
    assert validate_submission(schema, {"contact": "ringer@example.com"}) == {}
    assert validate_submission(schema, {"contact": "x@y..z"}) == {
        "contact": "Contact must be a valid email address"
    }


def test_number_field_rejects_non_finite():
    schema = schema_with({"id": "bells", "type": "number", "label": "Bells"})
    assert validate_submission(schema, {"bells": "8"}) == {}
    assert validate_submission(schema, {"bells": "NaN"}) == {"bells": "Bells must be a number"}
    assert validate_submission(schema, {"bells": "Infinity"}) == {"bells": "Bells must be a number"}


@pytest.mark.parametrize("donation", ["NaN", "Infinity", "1e40", "-5", "lots"])
def test_bad_donation_is_a_form_error(donation):
    answers = valid_default_answers() | {"donation_amount": donation}
    errors = validate_submission(build_default_schema(), answers, TYPES)
    assert list(errors) == ["donation_amount"]
    # Pricing never raises on the same input
    assert calculate_total([FULL.id], TYPES, answers) == Decimal("25.00")
