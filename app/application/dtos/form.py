"""DTOs for form validation results."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FormValidationResult:
    """Outcome of validate_form_data.

    data holds only schema fields (unknown keys dropped) and is None when
    invalid. errors maps field name -> messages.
    """

    valid: bool
    data: dict[str, Any] | None
    errors: dict[str, list[str]] = field(default_factory=dict)
