"""
Address book side: CardDAV download, vCard parsing and filtering.

File: carddav/__init__.py
Created: 2026-10-14
"""

from .backend import CardDavBackend
from .groups import count_filters, dissolve_groups, filter_records
from .local import read_vcard_file, write_vcard_file
from .vcard import decode_photo, parse_data_uri, parse_vcards, record_from_vcard

__all__ = [
    "CardDavBackend",
    "count_filters",
    "decode_photo",
    "dissolve_groups",
    "filter_records",
    "parse_data_uri",
    "parse_vcards",
    "read_vcard_file",
    "record_from_vcard",
    "write_vcard_file",
]
