"""
Router-local metadata that has no equivalent in the source address book.

File: models/attributes.py
Created: 2026-10-13
Last Modified: 2026-10-16
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .phonebook import INTERNAL_PREFIX


class NumberAttributes(BaseModel):
    """Quickdial/vanity assignment of one number, or an internal number."""

    number: str = Field(..., description="Number the attributes belong to")
    type: str = Field("other", description="Router number type")
    quickdial: Optional[str] = Field(None, description="Quickdial digit")
    vanity: Optional[str] = Field(None, description="Vanity alias")

    @property
    def is_internal(self) -> bool:
        return self.number.startswith(INTERNAL_PREFIX)


class SpecialAttributeRecord(BaseModel):
    """All special attributes the router holds for one source identifier."""

    uid: str = Field(..., description="Source record identifier")
    name: str = Field("", description="Contact name on the router, used for keypad labels")
    numbers: List[NumberAttributes] = Field(default_factory=list)
