"""Pydantic schemas for stored JSON documents (form schemas, escalation chains)."""

from app.schemas.escalation import EscalationStep
from app.schemas.form import FormSchema

__all__ = ["EscalationStep", "FormSchema"]
