"""
Synchronize contact photos to the router's fonpix directory.

The router only displays JPEG files. A photo is transferred again only when
its byte length differs from the file currently stored for the contact.
New files embed the contact identifier and the run timestamp, so a
replacement never collides with the file it replaces.

File: fritzbox/images.py
Created: 2026-10-14
Last Modified: 2026-10-18
"""

import ftplib
import io
import logging
import re
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..config import MAX_IMAGE_COUNT
from ..models import ContactRecord, Photo
from .ftp import FileTransfer

log = logging.getLogger(__name__)

# Applied in order to a remote filename to recover the contact identifier
FILENAME_RULES = [
    (re.compile(r"_\d{12}\.jpg$", re.IGNORECASE), ""),  # uid_190106123906.jpg
    (re.compile(r"\.jpg$", re.IGNORECASE), ""),         # legacy uid.jpg
]

# Formats with transparency that are flattened onto white
TRANSPARENT_FORMATS = {"PNG"}

WHITE = (255, 255, 255)


def uid_from_filename(filename: str) -> str:
    uid = filename
    for pattern, replacement in FILENAME_RULES:
        uid = pattern.sub(replacement, uid)
    return uid


def map_uids_to_files(filenames: List[str]) -> Dict[str, str]:
    """Map contact identifier to its current remote filename."""
    return {uid_from_filename(name): name for name in filenames}


def timestamp_postfix(now: datetime) -> str:
    """Generation timestamp used in filenames, e.g. 190106123906."""
    return now.strftime("%y%m%d%H%M%S")


def convert_to_jpeg(image_data: bytes) -> bytes:
    """Flatten an image with transparency onto a white background and encode as JPEG."""
    with Image.open(io.BytesIO(image_data)) as source:
        source = source.convert("RGBA")
        target = Image.new("RGB", source.size, WHITE)
        target.paste(source, mask=source.getchannel("A"))

    buffer = io.BytesIO()
    target.save(buffer, format="JPEG")
    return buffer.getvalue()


def get_jpeg_image(photo: Photo) -> Optional[bytes]:
    """
    JPEG bytes for a photo, or None if the format is not supported.

    JPEG passes through unchanged; formats with transparency are converted.
    """
    if photo.data is None:
        return None

    mime_type = (photo.mime_type or "").upper().replace("IMAGE/", "")
    if mime_type in ("JPEG", "JPG"):
        return photo.data
    if mime_type in TRANSPARENT_FORMATS:
        try:
            return convert_to_jpeg(photo.data)
        except (UnidentifiedImageError, OSError) as e:
            log.warning(f"Could not convert {mime_type} image: {e}")
            return None

    log.info(f"Unsupported image format {mime_type or 'unknown'}")
    return None


class ImageSynchronizer:
    """
    Uploads changed contact photos and resolves each record's image URL.

    Args:
        transfer: Open file transfer, already in the fonpix directory
        image_prefix: Router path the phonebook uses to reference photos
        max_image_count: Handset limit above which a warning is logged
        now: Run timestamp (defaults to the current time)
    """

    def __init__(
            self,
            transfer: FileTransfer,
            image_prefix: str,
            max_image_count: int = MAX_IMAGE_COUNT,
            now: Optional[datetime] = None,
        ):
        self.transfer = transfer
        self.image_prefix = image_prefix.rstrip("/") + "/"
        self.max_image_count = max_image_count
        self.postfix = timestamp_postfix(now or datetime.now())

    def _remote_files(self) -> Dict[str, str]:
        try:
            filenames = self.transfer.list(".")
        except ftplib.all_errors as e:
            log.warning(f"Could not list remote images, assuming none: {e}")
            filenames = []
        return map_uids_to_files(filenames)

    def sync(
            self,
            records: List[ContactRecord],
            callback: Optional[Callable[[], None]] = None,
        ) -> Tuple[int, int]:
        """
        Synchronize photos of all records.

        Returns:
            Tuple of (uploaded images, images considered)
        """
        remote = self._remote_files()
        uploaded = 0
        considered = 0

        for record in records:
            if callback is not None:
                callback()

            if record.photo is None:
                continue

            # Embedding failed during download (e.g. no access to linked data)
            if record.photo.is_external:
                log.warning(f"The image for UID {record.uid} can not be accessed!")
                continue

            image = get_jpeg_image(record.photo)
            if image is None:
                log.info(f"Image for UID {record.uid} skipped, not all images could be considered")
                continue

            considered += 1
            if self._sync_record(record, image, remote):
                uploaded += 1

        if considered > self.max_image_count:
            log.warning(
                f"You have {considered} contact images on FritzBox. "
                f"FritzFon may handle only up to {self.max_image_count} images. "
                "Some images may not display properly."
            )

        return uploaded, considered

    def _sync_record(self, record: ContactRecord, image: bytes, remote: Dict[str, str]) -> bool:
        """Returns True if a new file was transferred."""
        current = remote.get(record.uid)
        if current is not None:
            if self.transfer.size(current) == len(image):
                record.image_url = self.image_prefix + current
                return False
            # Old image differs in size
            self.transfer.delete(current)

        filename = f"{record.uid}_{self.postfix}.jpg"
        if self.transfer.put(filename, image):
            record.image_url = self.image_prefix + filename
            remote[record.uid] = filename
            return True

        log.error(f"Error uploading {filename}.")
        # No broken link may reach the phonebook
        record.photo = None
        record.image_url = None
        return False
