"""
Source address-book models.

File: models/contact.py
Created: 2026-10-12
Last Modified: 2026-10-16
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PhoneNumber(BaseModel):
    """A single TEL value with its TYPE parameters."""

    number: str = Field(..., description="Phone number as delivered by the source")
    types: List[str] = Field(default_factory=list, description="TYPE tags (e.g. WORK, CELL)")


class EmailAddress(BaseModel):
    """A single EMAIL value with its TYPE parameters."""

    address: str = Field(..., description="Email address")
    types: List[str] = Field(default_factory=list, description="TYPE tags (e.g. HOME, INTERNET)")


class Photo(BaseModel):
    """
    Photo attached to a contact.

    Either `data` holds the decoded image bytes, or `url` holds an external
    link the source never embedded.
    """

    data: Optional[bytes] = Field(None, description="Decoded image bytes")
    mime_type: Optional[str] = Field(None, description="Image subtype, upper case (e.g. JPEG, PNG)")
    url: Optional[str] = Field(None, description="External link when data is not embedded")

    @property
    def is_external(self) -> bool:
        return self.data is None and bool(self.url)


class ContactRecord(BaseModel):
    """One source address-book entry."""

    uid: str = Field(..., description="Stable unique identifier, join key for reconciliation")
    properties: Dict[str, str] = Field(
        default_factory=dict,
        description="Single-valued text properties keyed by upper-case name (FN, ORG, LASTNAME, ...)",
    )
    phones: List[PhoneNumber] = Field(default_factory=list)
    emails: List[EmailAddress] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    groups: List[str] = Field(default_factory=list)
    photo: Optional[Photo] = Field(None)
    image_url: Optional[str] = Field(
        None, description="Resolved URL of the photo stored on the router"
    )
    kind: Optional[str] = Field(None, description="'group' for iCloud group cards")
    members: List[str] = Field(default_factory=list, description="Member UIDs of a group card")

    def get(self, name: str) -> Optional[str]:
        """Return a text property by (case-insensitive) name, or None when empty."""
        value = self.properties.get(name.upper())
        return value or None

    def attribute_values(self, attribute: str) -> Optional[List[str]]:
        """
        Values of a list attribute used for filtering.

        Returns None when the record does not carry the attribute at all.
        """
        values = {"CATEGORIES": self.categories, "GROUPS": self.groups}.get(attribute.upper())
        if not values:
            return None
        return values
