"""
Shared data models for carddav2fb.
"""

from .attributes import NumberAttributes, SpecialAttributeRecord
from .contact import ContactRecord, EmailAddress, PhoneNumber, Photo
from .phonebook import (
    INTERNAL_PREFIX,
    EmailEntry,
    PhoneEntry,
    PhonebookDocument,
    PhonebookEntry,
)

__all__ = [
    "ContactRecord",
    "EmailAddress",
    "EmailEntry",
    "INTERNAL_PREFIX",
    "NumberAttributes",
    "PhoneEntry",
    "PhoneNumber",
    "PhonebookDocument",
    "PhonebookEntry",
    "Photo",
    "SpecialAttributeRecord",
]
