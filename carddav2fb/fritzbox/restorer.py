"""
Preserve router-local metadata across phonebook regeneration.

Quickdial digits, vanity aliases and internal numbers only exist on the
router. Each run rebuilds the phonebook from the address book, so these
attributes are captured from the router's current phonebook, persisted as
a flat CSV table and re-applied to the fresh document before upload.

File: fritzbox/restorer.py
Created: 2026-10-13
Last Modified: 2026-10-17
"""

import csv
import io
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import MAX_PHONE_NUMBERS
from ..models import (
    NumberAttributes,
    PhoneEntry,
    PhonebookDocument,
    PhonebookEntry,
    SpecialAttributeRecord,
)

log = logging.getLogger(__name__)

CSV_COLUMNS = ("uid", "name", "number", "type", "quickdial", "vanity")


def _number_key(number: str) -> str:
    return "".join(number.split())


def extract(document: Optional[PhonebookDocument]) -> List[SpecialAttributeRecord]:
    """
    Project the special attributes out of a router phonebook.

    Only entries carrying a source identifier are considered. Entries that
    were split from one source record are folded into a single record.
    """
    if document is None:
        return []

    records: Dict[str, SpecialAttributeRecord] = {}
    for entry in document.entries:
        if not entry.uid:
            continue
        numbers = [
            NumberAttributes(
                number=phone.number,
                type=phone.type,
                quickdial=phone.quickdial,
                vanity=phone.vanity,
            )
            for phone in entry.numbers
            if phone.quickdial or phone.vanity or phone.is_internal
        ]
        if not numbers:
            continue
        record = records.setdefault(
            entry.uid, SpecialAttributeRecord(uid=entry.uid, name=entry.real_name)
        )
        record.numbers.extend(numbers)

    return list(records.values())


def serialize(records: Iterable[SpecialAttributeRecord]) -> List[List[str]]:
    """One row per identifier/number pairing, columns as CSV_COLUMNS."""
    rows = []
    for record in records:
        for number in record.numbers:
            rows.append([
                record.uid,
                record.name,
                number.number,
                number.type,
                number.quickdial or "",
                number.vanity or "",
            ])
    return rows


def deserialize(rows: Iterable[Sequence[str]]) -> List[SpecialAttributeRecord]:
    """Rebuild records from rows; rows of the same identifier are grouped."""
    records: Dict[str, SpecialAttributeRecord] = {}
    for row in rows:
        if len(row) < len(CSV_COLUMNS):
            log.warning(f"Skipping malformed attribute row: {row!r}")
            continue
        uid, name, number, phone_type, quickdial, vanity = row[:len(CSV_COLUMNS)]
        record = records.setdefault(uid, SpecialAttributeRecord(uid=uid, name=name))
        record.numbers.append(
            NumberAttributes(
                number=number,
                type=phone_type or "other",
                quickdial=quickdial or None,
                vanity=vanity or None,
            )
        )
    return list(records.values())


def merge(*batches: Iterable[SpecialAttributeRecord]) -> List[SpecialAttributeRecord]:
    """Combine batches; a later batch replaces an earlier one per identifier."""
    merged: Dict[str, SpecialAttributeRecord] = {}
    for batch in batches:
        for record in batch:
            merged[record.uid] = record
    return list(merged.values())


def to_csv(records: Iterable[SpecialAttributeRecord]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(serialize(records))
    return buffer.getvalue().encode("utf-8")


def from_csv(content: bytes) -> List[SpecialAttributeRecord]:
    reader = csv.reader(io.StringIO(content.decode("utf-8")))
    return deserialize(row for row in reader if row)


def _apply_to_entry(
        entry: PhonebookEntry,
        record: SpecialAttributeRecord,
        placed: set,
    ) -> PhonebookEntry:
    remembered = {_number_key(n.number): n for n in record.numbers}

    numbers = []
    for phone in entry.numbers:
        key = _number_key(phone.number)
        placed.add(key)
        attributes = remembered.get(key)
        if attributes is not None:
            phone = phone.model_copy(update={
                "quickdial": phone.quickdial or attributes.quickdial,
                "vanity": phone.vanity or attributes.vanity,
            })
        numbers.append(phone)

    for internal in record.numbers:
        if not internal.is_internal or len(numbers) >= MAX_PHONE_NUMBERS:
            continue
        key = _number_key(internal.number)
        if key in placed:
            continue
        placed.add(key)
        numbers.append(
            PhoneEntry(
                number=internal.number,
                type=internal.type,
                quickdial=internal.quickdial,
                vanity=internal.vanity,
            )
        )

    return entry.model_copy(update={"numbers": tuple(numbers)})


def apply(
        document: PhonebookDocument,
        records: Iterable[SpecialAttributeRecord],
    ) -> PhonebookDocument:
    """
    Re-apply remembered attributes to a freshly generated document.

    Quickdial and vanity are copied onto matching numbers where unset.
    Internal numbers missing from the entry are appended while the entry
    has room. Entries without a matching record pass through unchanged.
    """
    by_uid = {record.uid: record for record in records}
    if not by_uid:
        return document

    # Numbers already present per identifier, across split entries
    placed: Dict[str, set] = {}
    for entry in document.entries:
        if entry.uid in by_uid:
            placed.setdefault(entry.uid, set()).update(_number_key(p.number) for p in entry.numbers)

    entries = []
    restored = 0
    for entry in document.entries:
        record = by_uid.get(entry.uid) if entry.uid else None
        if record is None:
            entries.append(entry)
            continue
        entries.append(_apply_to_entry(entry, record, placed[entry.uid]))
        restored += 1

    log.info(f"Restored special attributes on {restored} phonebook entries")
    return PhonebookDocument(name=document.name, entries=tuple(entries))
