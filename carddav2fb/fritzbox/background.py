"""
Keypad background image for FRITZ!Fon handsets.

Renders the names assigned to quickdial digits 2-9 onto a keypad image and
uploads it as background picture to the registered handsets.

File: fritzbox/background.py
Created: 2026-10-15
Last Modified: 2026-10-17
"""

import hashlib
import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..config import FRITZ_FONS, MAX_FONS
from ..exceptions import TransportError
from ..models import SpecialAttributeRecord
from .api import FritzBoxApi

log = logging.getLogger(__name__)

UPLOAD_SUCCESS = "SUCCEEDED"  # positive result string after upload
LABEL_LENGTH = 10


@dataclass(frozen=True)
class KeypadLayout:
    """Label positions on the keypad, as text baselines."""

    columns: Tuple[int, int, int] = (19, 178, 342)  # digits 1/4/7, 2/5/8, 3/6/9
    top: int = 74
    line_spacing: int = 100
    font_size: int = 20
    text_color: Tuple[int, int, int] = (38, 142, 223)  # light blue from FRITZ!Box GUI
    size: Tuple[int, int] = (480, 320)

    def position(self, digit: int) -> Tuple[int, int]:
        column = (digit - 1) % 3
        row = (digit - 1) // 3
        return self.columns[column], self.top + self.line_spacing * row


DEFAULT_LAYOUT = KeypadLayout()


def get_quickdials(records: Iterable[SpecialAttributeRecord], alias: bool = False) -> Dict[int, str]:
    """
    Quickdial digit to keypad label, lowest digit first.

    The label is the first name of a 'Last, First' name, else the full name.
    In alias mode a vanity alias takes precedence. Labels are capped at ten
    characters.
    """
    quickdials = {}
    for record in records:
        for number in record.numbers:
            if not number.quickdial:
                continue
            try:
                digit = int(number.quickdial)
            except ValueError:
                log.warning(f"Ignoring invalid quickdial {number.quickdial!r} for UID {record.uid}")
                continue
            parts = record.name.split(", ")
            name = parts[1] if len(parts) == 2 else record.name
            if alias and number.vanity:
                name = number.vanity.capitalize()
            quickdials[digit] = name[:LABEL_LENGTH]

    return dict(sorted(quickdials.items()))


def default_template(layout: KeypadLayout = DEFAULT_LAYOUT) -> Image.Image:
    """A plain dark keypad with grey digits, used when no template image is configured."""
    image = Image.new("RGB", layout.size, (20, 20, 20))
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default(size=layout.font_size * 2)
    cell_width = layout.size[0] // 3
    for digit in range(1, 10):
        x, y = layout.position(digit)
        column = (digit - 1) % 3
        draw.rectangle(
            (column * cell_width + 4, y - 60, (column + 1) * cell_width - 4, y + 30),
            outline=(70, 70, 70),
            width=2,
        )
        draw.text((column * cell_width + cell_width - 40, y - 50), str(digit), fill=(90, 90, 90), font=font)
    return image


class KeypadRenderer:
    """
    Draws quickdial labels onto the keypad template.

    Args:
        template: JPEG keypad image; a plain keypad is drawn when None
        font: TrueType font file; Pillow's default font when None
        layout: Label positions, size and color
    """

    def __init__(
            self,
            template: Optional[Path] = None,
            font: Optional[Path] = None,
            layout: KeypadLayout = DEFAULT_LAYOUT,
        ):
        self.template = template
        self.layout = layout
        if font is not None:
            self.font = ImageFont.truetype(str(font), layout.font_size)
        else:
            self.font = ImageFont.load_default(size=layout.font_size)

    def _load_template(self) -> Image.Image:
        if self.template is None:
            return default_template(self.layout)
        with Image.open(self.template) as image:
            return image.convert("RGB")

    def label_positions(self, quickdials: Dict[int, str]) -> List[Tuple[int, Tuple[int, int], str]]:
        """(digit, position, label) for every drawable quickdial."""
        return [
            (digit, self.layout.position(digit), label)
            for digit, label in sorted(quickdials.items())
            if 2 <= digit <= 9
        ]

    def render(self, quickdials: Dict[int, str]) -> bytes:
        """Render labels for digits 2-9 and encode as JPEG at maximum quality."""
        image = self._load_template()
        draw = ImageDraw.Draw(image)
        for _, (x, y), label in self.label_positions(quickdials):
            if isinstance(self.font, ImageFont.FreeTypeFont):
                draw.text((x, y), label, fill=self.layout.text_color, font=self.font, anchor="ls")
            else:
                draw.text((x, y - self.layout.font_size), label, fill=self.layout.text_color, font=self.font)

        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", quality=100)
        return buffer.getvalue()


def build_body(sid: str, phone: int, image: bytes, boundary: str) -> bytes:
    """
    Multipart body the FRITZ!Box accepts for a handset background image.

    The endpoint rejects bodies produced by generic multipart encoders, so
    parts are written in a fixed order with explicit Content-Length headers.
    """
    phone_id = str(phone)
    parts = [
        ("sid", sid),
        ("PhonebookId", "255"),
        ("PhonebookType", "1"),
        ("PhonebookEntryId", phone_id),
    ]
    delimiter = f"--{boundary}".encode()
    lines: List[bytes] = []
    for name, value in parts:
        lines += [
            delimiter,
            f'Content-Disposition: form-data; name="{name}"'.encode(),
            f"Content-Length: {len(value)}".encode(),
            b"",
            value.encode(),
        ]
    lines += [
        delimiter,
        b'Content-Disposition: form-data; name="PhonebookPictureFile"; filename="dummy.jpg"',
        b"Content-Type: image/jpeg",
        f"Content-Length: {len(image)}".encode(),
        b"",
        image,
        delimiter + b"--",
    ]
    return b"\r\n".join(lines) + b"\r\n"


def upload_targets(fritzfons: Sequence[int]) -> List[int]:
    """The first six configured handsets that are valid FRITZ!Fon slots."""
    targets = []
    for phone in list(fritzfons)[:MAX_FONS]:
        if int(phone) in FRITZ_FONS:
            targets.append(int(phone))
    return targets


def upload_background_image(api: FritzBoxApi, image: bytes, fritzfons: Sequence[int]) -> Dict[int, bool]:
    """
    Upload a background image to each valid handset.

    Each handset is tried independently. Returns handset -> success.
    """
    results = {}
    for phone in upload_targets(fritzfons):
        log.info(f"Uploading background image to FRITZ!Fon #{phone}")
        try:
            api.login()
            boundary = hashlib.sha1(uuid.uuid4().bytes).hexdigest()
            body = build_body(api.sid, phone, image, boundary)
            result = api.post_image(body, boundary)
        except TransportError as e:
            log.error(f"Background image upload to FRITZ!Fon #{phone} failed: {e}")
            results[phone] = False
            continue
        results[phone] = UPLOAD_SUCCESS in result
        if results[phone]:
            log.info("Background image upload successful")
        else:
            log.warning("Background image upload failed")
    return results
