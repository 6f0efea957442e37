"""
Phonebook and special attribute transfer to and from the router.

File: fritzbox/phonebook.py
Created: 2026-10-14
Last Modified: 2026-10-18
"""

import logging
from typing import List, Optional

from ..config import ATTRIBUTES_FILE, MEDIABOX_DIR, FritzBoxConfig, PhonebookConfig
from ..exceptions import UploadError
from ..models import PhonebookDocument, SpecialAttributeRecord
from . import restorer
from .api import FritzBoxApi
from .ftp import FileTransfer, ftp_connection
from .phonebook_xml import from_xml, to_xml

log = logging.getLogger(__name__)

RESTORE_MESSAGES = (
    "Das Telefonbuch der FRITZ!Box wurde wiederhergestellt",
    "FRITZ!Box telephone book restored",
)
BACKUP_FILE = f"{ATTRIBUTES_FILE}.bak"


def upload_successful(message: str) -> bool:
    return any(text in message for text in RESTORE_MESSAGES)


def upload_phonebook(api: FritzBoxApi, document: PhonebookDocument, phonebook: PhonebookConfig) -> None:
    """
    Replace the router phonebook with `document`.

    Raises:
        UploadError: If the router does not confirm the import
    """
    api.login()
    result = api.post_file(
        {"PhonebookId": str(phonebook.id)},
        {"PhonebookImportFile": ("updatepb.xml", to_xml(document), "text/xml")},
    )
    if not upload_successful(result):
        raise UploadError("Upload failed")
    log.info(f"Uploaded {len(document.entries)} contacts to phonebook {phonebook.id}")


def download_phonebook(api: FritzBoxApi, phonebook: PhonebookConfig) -> Optional[PhonebookDocument]:
    """The router's current phonebook, or None if it could not be loaded."""
    api.login()
    content = api.post_export({
        "PhonebookId": str(phonebook.id),
        "PhonebookExportName": phonebook.name,
        "PhonebookExport": "",
    })
    if not content.lstrip().startswith(b"<?xml"):
        log.error(f"Could not load phonebook with ID={phonebook.id}")
        return None
    return from_xml(content)


def save_attributes(transfer: FileTransfer, records: List[SpecialAttributeRecord]) -> bool:
    """Write the attribute table, keeping the previous one as a single backup."""
    if transfer.size(ATTRIBUTES_FILE) is not None:
        if transfer.size(BACKUP_FILE) is not None:
            transfer.delete(BACKUP_FILE)
        transfer.rename(ATTRIBUTES_FILE, BACKUP_FILE)

    if not transfer.put(ATTRIBUTES_FILE, restorer.to_csv(records)):
        log.error(f"Error uploading {ATTRIBUTES_FILE}!")
        return False
    return True


def load_attributes(transfer: FileTransfer) -> List[SpecialAttributeRecord]:
    if transfer.size(ATTRIBUTES_FILE) is None:
        return []
    content = transfer.get(ATTRIBUTES_FILE)
    if content is None:
        return []
    return restorer.from_csv(content)


def upload_attributes(document: Optional[PhonebookDocument], config: FritzBoxConfig) -> List[SpecialAttributeRecord]:
    """
    Capture special attributes from the router's phonebook and store them.

    Returns the captured records (empty when there were none or FTP is disabled).
    """
    records = restorer.extract(document)
    if config.ftp.disabled or not records:
        log.info("No special attributes are saved!")
        return []

    log.info("Save internal data from recent FRITZ!Box phonebook!")
    with ftp_connection(config, MEDIABOX_DIR) as transfer:
        save_attributes(transfer, records)
    return records


def download_attributes(config: FritzBoxConfig) -> List[SpecialAttributeRecord]:
    """Previously stored special attributes, empty when unavailable."""
    if config.ftp.disabled:
        log.warning("Ftp is not available or disabled. Special attributes cannot be loaded!")
        return []

    with ftp_connection(config, MEDIABOX_DIR) as transfer:
        return load_attributes(transfer)
