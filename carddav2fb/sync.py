"""
One synchronization pass from the address book to the router.

    fetch -> filter -> upload images -> convert -> restore attributes
          -> upload phonebook -> upload keypad background

Each step either completes or raises; open connections are closed on the
way out.

File: sync.py
Created: 2026-10-15
Last Modified: 2026-10-17
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .carddav import CardDavBackend, dissolve_groups, filter_records
from .config import SyncConfig
from .fritzbox import (
    FritzBoxApi,
    ImageSynchronizer,
    KeypadRenderer,
    convert_contacts,
    download_attributes,
    download_phonebook,
    ftp_connection,
    get_quickdials,
    restorer,
    upload_attributes,
    upload_background_image,
    upload_phonebook,
)
from .models import ContactRecord, PhonebookDocument, SpecialAttributeRecord

log = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counters reported after a run."""

    contacts: int = 0
    entries: int = 0
    images_uploaded: int = 0
    images_total: int = 0
    attributes: int = 0
    keypad_uploads: Dict[int, bool] = field(default_factory=dict)


def fetch_contacts(
        config: SyncConfig,
        backend: Optional[CardDavBackend] = None,
        progress: Optional[Callable[[], None]] = None,
    ) -> List[ContactRecord]:
    """Download, dissolve groups and apply include/exclude filters."""
    backend = backend or CardDavBackend(config.server)
    backend.set_progress(progress)
    records = dissolve_groups(backend.get_vcards())
    filtered = filter_records(records, config.filters)
    log.info(f"{len(filtered)} of {len(records)} vCards remain after filtering")
    return filtered


def sync_images(
        records: List[ContactRecord],
        config: SyncConfig,
        now: Optional[datetime] = None,
        progress: Optional[Callable[[], None]] = None,
    ) -> tuple:
    """Upload changed photos; returns (uploaded, total)."""
    prefix = config.phonebook.image_prefix
    with ftp_connection(config.fritzbox, config.fritzbox.fonpix) as transfer:
        synchronizer = ImageSynchronizer(transfer, prefix, now=now)
        return synchronizer.sync(records, progress)


def build_phonebook(records: List[ContactRecord], config: SyncConfig) -> PhonebookDocument:
    entries = convert_contacts(records, config.conversions)
    return PhonebookDocument.assemble(config.phonebook.name, entries)


def collect_attributes(api: FritzBoxApi, config: SyncConfig) -> List[SpecialAttributeRecord]:
    """
    Special attributes to restore.

    Captured fresh from the router's phonebook when it has any, otherwise
    the table saved by an earlier run.
    """
    previous = download_phonebook(api, config.phonebook)
    saved = upload_attributes(previous, config.fritzbox) if previous is not None else []
    if not saved:
        saved = download_attributes(config.fritzbox)
    return saved


def upload_keypad(api: FritzBoxApi, records: List[SpecialAttributeRecord], config: SyncConfig) -> Dict[int, bool]:
    quickdials = get_quickdials(records, config.fritzbox.quickdial_alias)
    if not quickdials:
        log.info("No quickdial numbers are set for a background image upload")
        return {}
    if min(quickdials) > 9:
        log.info("Quickdial numbers out of range for a background image upload")
        return {}

    renderer = KeypadRenderer(config.fritzbox.keypad_template, config.fritzbox.keypad_font)
    return upload_background_image(api, renderer.render(quickdials), config.fritzbox.fritzfons)


def upload_contacts(
        records: List[ContactRecord],
        config: SyncConfig,
        api: FritzBoxApi,
        result: SyncResult,
    ) -> None:
    """Convert, restore attributes, upload phonebook and keypad image."""
    document = build_phonebook(records, config)
    result.entries = len(document.entries)

    attributes = collect_attributes(api, config)
    result.attributes = len(attributes)
    document = restorer.apply(document, attributes)

    upload_phonebook(api, document, config.phonebook)

    if config.fritzbox.fritzfons:
        result.keypad_uploads = upload_keypad(api, attributes, config)


def run(
        config: SyncConfig,
        records: Optional[List[ContactRecord]] = None,
        api: Optional[FritzBoxApi] = None,
        now: Optional[datetime] = None,
        progress: Optional[Callable[[], None]] = None,
    ) -> SyncResult:
    """
    Full synchronization pass.

    Args:
        config: Run configuration
        records: Contacts to upload; downloaded from CardDAV when None
        api: Router session; created from config when None
        now: Run timestamp used for image filenames
        progress: Called once per processed contact
    """
    result = SyncResult()
    if records is None:
        records = fetch_contacts(config, progress=progress)
    result.contacts = len(records)

    if config.phonebook.imagepath and not config.fritzbox.ftp.disabled:
        result.images_uploaded, result.images_total = sync_images(records, config, now, progress)
        log.info(f"Uploaded/refreshed {result.images_uploaded} of {result.images_total} images")

    with (api or FritzBoxApi(config.fritzbox)) as fritz:
        upload_contacts(records, config, fritz, result)

    return result


def backup_attributes(config: SyncConfig, api: Optional[FritzBoxApi] = None) -> List[SpecialAttributeRecord]:
    """Save the router's current special attributes without uploading contacts."""
    with (api or FritzBoxApi(config.fritzbox)) as fritz:
        previous = download_phonebook(fritz, config.phonebook)
    return upload_attributes(previous, config.fritzbox)


def refresh_background(config: SyncConfig, api: Optional[FritzBoxApi] = None) -> Dict[int, bool]:
    """Render and upload the keypad image from the router's current quickdials."""
    with (api or FritzBoxApi(config.fritzbox)) as fritz:
        previous = download_phonebook(fritz, config.phonebook)
        attributes = restorer.extract(previous)
        return upload_keypad(fritz, attributes, config)
