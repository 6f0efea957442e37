"""
Router phonebook models.

Entries are immutable values. A document is assembled once from a list of
entries; merging special attributes produces a new document.

File: models/phonebook.py
Created: 2026-10-12
Last Modified: 2026-10-16
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# Numbers starting with this prefix are router-internal extensions
INTERNAL_PREFIX = "**"


class PhoneEntry(BaseModel):
    """A <number> node of a phonebook contact."""

    model_config = ConfigDict(frozen=True)

    number: str = Field(..., description="Dialable number")
    type: str = Field("other", description="Router number type (home, mobile, work, fax_work, other)")
    quickdial: Optional[str] = Field(None, description="Router-assigned quickdial digit")
    vanity: Optional[str] = Field(None, description="Router-assigned vanity alias")

    @property
    def is_internal(self) -> bool:
        return self.number.startswith(INTERNAL_PREFIX)


class EmailEntry(BaseModel):
    """An <email> node of a phonebook contact."""

    model_config = ConfigDict(frozen=True)

    address: str
    classifier: Optional[str] = None


class PhonebookEntry(BaseModel):
    """One router contact. Holds at most nine numbers."""

    model_config = ConfigDict(frozen=True)

    uid: Optional[str] = Field(None, description="Back-reference to the source record (carddav_uid)")
    real_name: str = Field("", description="Display name")
    numbers: Tuple[PhoneEntry, ...] = Field(default_factory=tuple)
    emails: Tuple[EmailEntry, ...] = Field(default_factory=tuple)
    vip: bool = Field(False, description="Shown as important contact on the router")
    image_url: Optional[str] = Field(None, description="Router path of the contact photo")


class PhonebookDocument(BaseModel):
    """A named, ordered collection of entries."""

    model_config = ConfigDict(frozen=True)

    name: str = Field("Telefonbuch", description="Phonebook name shown on the router")
    entries: Tuple[PhonebookEntry, ...] = Field(default_factory=tuple)

    @classmethod
    def assemble(cls, name: str, entries: List[PhonebookEntry]) -> "PhonebookDocument":
        return cls(name=name, entries=tuple(entries))
