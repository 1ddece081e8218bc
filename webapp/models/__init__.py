"""
Pydantic models for wizard API requests.
"""
from pydantic import BaseModel
from typing import Any, Optional


class WizardUpdate(BaseModel):
    changes: dict[str, Any]   # top-level WizardState fields to replace


class QuantityUpdate(BaseModel):
    quantity: int


class FamilySelection(BaseModel):
    selected: bool = True


class InstructionValue(BaseModel):
    value: str


class LabelValueCreate(BaseModel):
    label: str = ""
    value: str = ""


class LabelValueUpdate(BaseModel):
    label: Optional[str] = None
    value: Optional[str] = None


class SubmitRequest(BaseModel):
    email: str
