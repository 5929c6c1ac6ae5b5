"""Task form schema: field kinds as a tagged union on "type".

Each field kind compiles to a JSON Schema fragment (json_schema) and
renders its own error messages (error_message). The form validator
service checks submitted values against the fragments with jsonschema.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, TypeAdapter

FORM_FIELD_TYPES = ("text", "textarea", "number", "boolean", "date", "select")

# Custom jsonschema format: ISO-8601 date or date-time (see form_validator).
DATE_FORMAT = "task-date"


class FormFieldValidation(BaseModel):
    """Optional bounds: string length for text kinds, value range for numbers."""

    model_config = ConfigDict(extra="ignore")

    min: float | None = None
    max: float | None = None
    pattern: str | None = None
    message: str | None = None


class FormFieldOption(BaseModel):
    """One select option. Both value and label must be strings."""

    model_config = ConfigDict(extra="ignore")

    value: StrictStr
    label: StrictStr


class _FormFieldBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    label: str | None = None
    required: bool = False
    default: Any = None
    validation: FormFieldValidation | None = None

    def json_schema(self) -> dict[str, Any]:
        raise NotImplementedError

    def error_message(self, name: str, validator: str) -> str:
        return f"{name} is invalid"

    def _custom(self) -> str | None:
        return self.validation.message if self.validation else None


def _bound(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


class TextField(_FormFieldBase):
    type: Literal["text", "textarea"]

    def json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "string"}
        if self.validation:
            if self.validation.min is not None:
                schema["minLength"] = int(self.validation.min)
            if self.validation.max is not None:
                schema["maxLength"] = int(self.validation.max)
            if self.validation.pattern:
                schema["pattern"] = self.validation.pattern
        return schema

    def error_message(self, name: str, validator: str) -> str:
        if validator == "type":
            return f"{name} must be a string"
        bounds = self.validation or FormFieldValidation()
        if validator == "minLength":
            return self._custom() or f"{name} must be at least {_bound(bounds.min)} characters"
        if validator == "maxLength":
            return self._custom() or f"{name} must be at most {_bound(bounds.max)} characters"
        if validator == "pattern":
            return self._custom() or f"{name} has invalid format"
        return super().error_message(name, validator)


class NumberField(_FormFieldBase):
    type: Literal["number"]

    def json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "number"}
        if self.validation:
            if self.validation.min is not None:
                schema["minimum"] = self.validation.min
            if self.validation.max is not None:
                schema["maximum"] = self.validation.max
        return schema

    def error_message(self, name: str, validator: str) -> str:
        bounds = self.validation or FormFieldValidation()
        if validator == "minimum":
            return self._custom() or f"{name} must be at least {_bound(bounds.min)}"
        if validator == "maximum":
            return self._custom() or f"{name} must be at most {_bound(bounds.max)}"
        return f"{name} must be a number"


class BooleanField(_FormFieldBase):
    type: Literal["boolean"]

    def json_schema(self) -> dict[str, Any]:
        return {"type": "boolean"}

    def error_message(self, name: str, validator: str) -> str:
        return f"{name} must be a boolean"


class DateField(_FormFieldBase):
    type: Literal["date"]

    def json_schema(self) -> dict[str, Any]:
        return {"type": "string", "format": DATE_FORMAT}

    def error_message(self, name: str, validator: str) -> str:
        return f"{name} must be a valid ISO date string"


class SelectField(_FormFieldBase):
    type: Literal["select"]
    options: list[FormFieldOption] = Field(default_factory=list)

    @property
    def values(self) -> list[str]:
        return [option.value for option in self.options]

    def json_schema(self) -> dict[str, Any]:
        # No options: any string is accepted
        if not self.options:
            return {"type": "string"}
        return {"type": "string", "enum": self.values}

    def error_message(self, name: str, validator: str) -> str:
        if not self.options:
            return f"{name} must be a string"
        return f"{name} must be one of: {', '.join(self.values)}"


FormField = Annotated[
    TextField | NumberField | BooleanField | DateField | SelectField,
    Field(discriminator="type"),
]

form_field_adapter: TypeAdapter[FormField] = TypeAdapter(FormField)


class FormSchema(BaseModel):
    """Form definition stored on task.form_schema: {"fields": {name: field}}."""

    model_config = ConfigDict(extra="ignore")

    fields: dict[str, FormField]

    @property
    def required_fields(self) -> list[str]:
        return [name for name, field in self.fields.items() if field.required]
