"""
Router side: phonebook conversion, attribute restoring, photo and keypad
image upload.

Usage:
    >>> from carddav2fb.fritzbox import Converter, restorer
    >>> entries = Converter(config.conversions).convert(record)

File: fritzbox/__init__.py
Created: 2026-10-13
"""

from . import restorer
from .api import FritzBoxApi
from .background import (
    KeypadLayout,
    KeypadRenderer,
    build_body,
    get_quickdials,
    upload_background_image,
    upload_targets,
)
from .converter import Converter, convert_contacts, filters_match
from .ftp import FileTransfer, FtpFileTransfer, ftp_connection
from .images import ImageSynchronizer, get_jpeg_image, map_uids_to_files
from .phonebook import (
    download_attributes,
    download_phonebook,
    load_attributes,
    save_attributes,
    upload_attributes,
    upload_phonebook,
    upload_successful,
)
from .phonebook_xml import from_xml, to_xml

__all__ = [
    "Converter",
    "FileTransfer",
    "FritzBoxApi",
    "FtpFileTransfer",
    "ImageSynchronizer",
    "KeypadLayout",
    "KeypadRenderer",
    "build_body",
    "convert_contacts",
    "download_attributes",
    "download_phonebook",
    "filters_match",
    "from_xml",
    "ftp_connection",
    "get_jpeg_image",
    "get_quickdials",
    "load_attributes",
    "map_uids_to_files",
    "restorer",
    "save_attributes",
    "to_xml",
    "upload_attributes",
    "upload_background_image",
    "upload_phonebook",
    "upload_successful",
    "upload_targets",
]
