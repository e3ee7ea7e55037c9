"""
Dynamic form schemas.

The JSON shape stored in ``form_schemas.schema_data`` plus the
request/response models for the form version endpoints.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Literal
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

FieldType = Literal[
    "text",
    "email",
    "tel",
    "number",
    "date",
    "textarea",
    "select",
    "checkbox",
    "radio",
    "membership_selection",
    "repeatable_group",
]

RuleType = Literal[
    "required", "min", "max", "pattern", "email", "phone", "minLength", "maxLength"
]


# ---------------------------------------------------------------------------
# Schema document
# ---------------------------------------------------------------------------

class SelectOption(BaseModel):
    value: str
    label: str


class ValidationRule(BaseModel):
    type: RuleType
    value: Any = None
    message: str | None = None

    @model_validator(mode="after")
    def check_value(self) -> ValidationRule:
        if self.type in ("minLength", "maxLength"):
            try:
                length = int(str(self.value))
            except ValueError:
                raise ValueError(f"{self.type} rule needs a whole number value")
            if length < 0:
                raise ValueError(f"{self.type} rule needs a value of 0 or more")
            self.value = length
        elif self.type in ("min", "max"):
            try:
                bound = Decimal(str(self.value))
            except InvalidOperation:
                bound = None
            if isinstance(self.value, bool) or bound is None or not bound.is_finite():
                raise ValueError(f"{self.type} rule needs a numeric value")
        elif self.type == "pattern":
            if not isinstance(self.value, str):
                raise ValueError("pattern rule needs a regular expression")
            try:
                re.compile(self.value)
            except re.error as exc:
                raise ValueError(f"Invalid pattern: {exc}")
        return self


class ShowIf(BaseModel):
    """Show a field only when another field's value matches."""

    field_id: str
    operator: Literal["equals", "not_equals", "contains"] = "equals"
    value: Any = None


class FormField(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1, max_length=100)
    type: FieldType
    label: str
    placeholder: str | None = None
    description: str | None = None
    required: bool = False
    validation: list[ValidationRule] = Field(default_factory=list)
    options: list[SelectOption] = Field(default_factory=list)
    default_value: Any = Field(
        default=None, validation_alias=AliasChoices("default_value", "defaultValue")
    )
    allow_multiple: bool = False
    max_repeats: int | None = Field(
        default=None, ge=1, validation_alias=AliasChoices("max_repeats", "maxRepeats")
    )
    fields: list[FormField] = Field(default_factory=list)
    link: str | None = None
    show_if: ShowIf | None = None

    @model_validator(mode="after")
    def check_type_specific(self) -> FormField:
        if self.type in ("select", "radio") and not self.options:
            raise ValueError(f"Field '{self.id}' of type {self.type} needs options")
        if self.type == "repeatable_group" and not self.fields:
            raise ValueError(f"Repeatable group '{self.id}' needs nested fields")
        if self.type != "repeatable_group" and self.fields:
            raise ValueError(f"Only repeatable groups may nest fields ('{self.id}')")
        return self


class FormSection(BaseModel):
    id: str
    title: str
    description: str | None = None
    fields: list[FormField] = Field(default_factory=list)


class FormSchema(BaseModel):
    """A complete form definition."""

    version: int = 1
    sections: list[FormSection] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_field_ids(self) -> FormSchema:
        seen: set[str] = set()
        for field in self.iter_fields():
            if field.id in seen:
                raise ValueError(f"Duplicate field id '{field.id}'")
            seen.add(field.id)
        return self

    def iter_fields(self):
        """Top-level fields in display order."""
        for section in self.sections:
            yield from section.fields

    def get_field(self, field_id: str) -> FormField | None:
        for field in self.iter_fields():
            if field.id == field_id:
                return field
        return None


# ---------------------------------------------------------------------------
# Form versions
# ---------------------------------------------------------------------------

class FormSchemaCreateRequest(BaseModel):
    """Request body for POST /organizations/{slug}/forms."""

    title: str = Field(default="Membership Application", min_length=1, max_length=200)
    description: str | None = None
    form_type: Literal["signup", "renewal", "both"] = "signup"
    schema_data: FormSchema
    activate: bool = True


class FormSchemaResponse(BaseModel):
    id: UUID
    org_id: UUID
    schema_version: int
    title: str
    description: str | None
    schema_data: dict[str, Any]
    form_type: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class FormSchemaListResponse(BaseModel):
    forms: list[FormSchemaResponse]
    total: int


class FormValidateRequest(BaseModel):
    """Request body for POST /organizations/{slug}/forms/{id}/validate."""

    response_data: dict[str, Any]


class FormValidateResponse(BaseModel):
    valid: bool
    errors: dict[str, str]
    selected_membership_types: list[str]
    total_amount: Decimal
