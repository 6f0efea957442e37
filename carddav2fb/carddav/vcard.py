"""
vCard parsing into ContactRecords.

Handles vCard 3.0 and 4.0 as delivered by common CardDAV servers,
including embedded photos in their various encodings. Cards are read
without vobject's value transformation and structured values are decoded
here. PHOTO is taken from the card text before vobject sees it.

File: carddav/vcard.py
Created: 2026-10-14
Last Modified: 2026-10-18
"""

import base64
import binascii
import logging
import re
import urllib.parse
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import vobject

from ..models import ContactRecord, EmailAddress, PhoneNumber, Photo

log = logging.getLogger(__name__)

# N components, in vCard order, exposed as name template tokens
NAME_PARTS = ("LASTNAME", "FIRSTNAME", "ADDITIONAL", "PREFIX", "SUFFIX")

# Plain text properties exposed as name template tokens
TEXT_PROPERTIES = ("fn", "nickname", "title", "role", "note")

ESCAPES = {"n": "\n", "N": "\n", ",": ",", ";": ";", "\\": "\\"}

# Unfolded PHOTO property: name, parameters, value
PHOTO_PATTERN = re.compile(r"^PHOTO((?:;[^:\r\n]*)?):([^\r\n]*)\r?\n?", re.IGNORECASE | re.MULTILINE)


@dataclass
class PhotoLine:
    """A PHOTO property taken from the card text before vobject parses it."""

    value: str
    params: Dict[str, List[str]] = field(default_factory=dict)
    singletonparams: List[str] = field(default_factory=list)


def unescape(value: str) -> str:
    return re.sub(r"\\(.)", lambda m: ESCAPES.get(m.group(1), m.group(1)), value)


def split_escaped(value: str, separator: str) -> List[str]:
    """Split on separators not preceded by a backslash, then unescape."""
    return [unescape(part).strip() for part in re.split(rf"(?<!\\){re.escape(separator)}", value)]


def _lines(card, name: str) -> list:
    return card.contents.get(name, [])


def _value_text(value) -> str:
    """Raw value as text; some vobject releases hand out lists or bytes."""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, (list, tuple)):
        return ",".join(str(part) for part in value)
    return str(value)


def _parts(line, separator: str) -> List[str]:
    """Components of a structured value, split by vobject or still escaped."""
    value = line.value
    if hasattr(value, "family"):
        value = [value.family, value.given, value.additional, value.prefix, value.suffix]
    if isinstance(value, (list, tuple)):
        return [
            unescape(",".join(part) if isinstance(part, list) else str(part)).strip()
            for part in value
        ]
    return split_escaped(_value_text(line.value), separator)


def _raw(card, name: str) -> str:
    lines = _lines(card, name)
    return _value_text(lines[0].value).strip() if lines else ""


def _first_parts(card, name: str, separator: str) -> List[str]:
    lines = _lines(card, name)
    return _parts(lines[0], separator) if lines else []


def unfold(text: str) -> str:
    return re.sub(r"\r?\n[ \t]", "", text)


def extract_photo(block: str) -> Tuple[Optional[PhotoLine], str]:
    """
    Remove the PHOTO property from an unfolded card.

    vobject decodes PHOTO values differently between releases (some cut
    data URIs at their comma), so the raw text is kept here.
    """
    match = PHOTO_PATTERN.search(block)
    if match is None:
        return None, block

    line = PhotoLine(value=match.group(2).strip())
    for param in match.group(1).split(";"):
        if not param:
            continue
        name, sep, values = param.partition("=")
        if sep:
            line.params.setdefault(name.strip().upper(), []).extend(
                v.strip().strip('"') for v in values.split(",") if v.strip()
            )
        else:
            line.singletonparams.append(name.strip().upper())
    return line, block[:match.start()] + block[match.end():]


def _types(line) -> List[str]:
    """TYPE parameters, flattening comma-separated vCard 4.0 values."""
    types = []
    for value in line.params.get("TYPE", []):
        types.extend(part.strip().upper() for part in value.split(",") if part.strip())
    return types


def parse_data_uri(uri: str) -> Photo:
    """
    Decode a `data:image/<type>[;base64],<content>` URI.

    Non-base64 content is percent-decoded.
    """
    header, _, content = uri.partition(",")
    media = header[len("data:"):] if header.lower().startswith("data:") else header
    mime_type, _, encoding = media.partition(";")
    subtype = mime_type.partition("/")[2].upper()
    if encoding.lower() == "base64":
        try:
            data = base64.b64decode(content)
        except (binascii.Error, ValueError) as e:
            log.warning(f"Invalid base64 photo data: {e}")
            return Photo(mime_type=subtype)
    elif not encoding:
        data = urllib.parse.unquote_to_bytes(content)
    else:
        log.warning(f"Unsupported photo encoding {encoding!r}")
        return Photo(mime_type=subtype)
    return Photo(data=data, mime_type=subtype)


def decode_photo(line) -> Optional[Photo]:
    """Photo from a PHOTO line: inline base64, data URI or external link."""
    types = _types(line)
    mime_type = types[0].replace("IMAGE/", "") if types else None

    # Already decoded by vobject
    if isinstance(line.value, bytes):
        return Photo(data=line.value, mime_type=mime_type) if line.value else None

    value = "".join(_value_text(line.value).split())
    if not value:
        return None

    if value.lower().startswith("data:"):
        return parse_data_uri(value)
    if value.lower().startswith("http"):
        return Photo(url=value, mime_type=mime_type)

    encoding = [e.lower() for e in line.params.get("ENCODING", [])]
    if "b" in encoding or "base64" in encoding or "BASE64" in line.singletonparams:
        try:
            return Photo(data=base64.b64decode(value), mime_type=mime_type)
        except (binascii.Error, ValueError) as e:
            log.warning(f"Invalid base64 photo data: {e}")
            return None

    log.info(f"Unsupported PHOTO value {value[:30]!r}")
    return None


def record_from_vcard(card, photo_line: Optional[PhotoLine] = None) -> Optional[ContactRecord]:
    """
    Convert a raw vobject vCard; cards without UID are skipped.

    `photo_line` is the PHOTO property taken out by extract_photo, if any.
    """
    uid = unescape(_raw(card, "uid"))
    if not uid:
        log.warning(f"Skipping vCard without UID: {unescape(_raw(card, 'fn'))!r}")
        return None

    properties = {}
    for name in TEXT_PROPERTIES:
        value = unescape(_raw(card, name))
        if value:
            properties[name.upper()] = value
    org = " ".join(part for part in _first_parts(card, "org", ";") if part)
    if org:
        properties["ORG"] = org
    for token, part in zip(NAME_PARTS, _first_parts(card, "n", ";")):
        part = " ".join(p for p in part.split(",") if p.strip()).strip()
        if part:
            properties[token] = part

    phones = [
        PhoneNumber(number=unescape(_value_text(line.value)).strip(), types=_types(line))
        for line in _lines(card, "tel")
        if _value_text(line.value).strip()
    ]
    emails = [
        EmailAddress(address=unescape(_value_text(line.value)).strip(), types=_types(line))
        for line in _lines(card, "email")
        if _value_text(line.value).strip()
    ]

    categories = []
    for line in _lines(card, "categories"):
        categories.extend(part for part in _parts(line, ",") if part)
    groups = []
    for line in _lines(card, "groups"):
        groups.extend(part for part in _parts(line, ",") if part)

    if photo_line is None:
        photo_lines = _lines(card, "photo")
        photo_line = photo_lines[0] if photo_lines else None
    photo = decode_photo(photo_line) if photo_line is not None else None

    kind = unescape(_raw(card, "x-addressbookserver-kind")).lower() or None
    members = [
        _value_text(line.value).replace("urn:", "").replace("uuid:", "").strip()
        for line in _lines(card, "x-addressbookserver-member")
    ]

    return ContactRecord(
        uid=uid,
        properties=properties,
        phones=phones,
        emails=emails,
        categories=categories,
        groups=groups,
        photo=photo,
        kind=kind,
        members=members,
    )


def split_vcards(text: str) -> List[str]:
    """Split concatenated vCards into single BEGIN..END blocks."""
    blocks = []
    current: List[str] = []
    for line in text.splitlines():
        if line.strip().upper() == "BEGIN:VCARD":
            current = []
        current.append(line)
        if line.strip().upper() == "END:VCARD":
            blocks.append("\r\n".join(current) + "\r\n")
            current = []
    return blocks


def parse_vcards(text: str) -> List[ContactRecord]:
    """Parse every vCard in `text`; a card that cannot be parsed is skipped."""
    records = []
    for block in split_vcards(unfold(text)):
        photo_line, block = extract_photo(block)
        try:
            card = vobject.readOne(block, transform=False)
        except (vobject.base.ParseError, ValueError) as e:
            log.warning(f"Could not parse vCard: {e}")
            continue
        record = record_from_vcard(card, photo_line)
        if record is not None:
            records.append(record)
    return records
