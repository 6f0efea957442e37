"""
Tests for special attribute capture, persistence format and restoring.
"""

from carddav2fb.fritzbox import restorer
from carddav2fb.models import (
    NumberAttributes,
    PhoneEntry,
    PhonebookDocument,
    PhonebookEntry,
    SpecialAttributeRecord,
)


def _entry(uid, *numbers, name="Smith, John") -> PhonebookEntry:
    return PhonebookEntry(uid=uid, real_name=name, numbers=tuple(numbers))


def _router_document() -> PhonebookDocument:
    return PhonebookDocument.assemble("Telefonbuch", [
        _entry(
            "u1",
            PhoneEntry(number="0301", type="home", quickdial="5", vanity="JOHN"),
            PhoneEntry(number="0171", type="mobile"),
            PhoneEntry(number="**610", type="intern"),
        ),
        _entry("u2", PhoneEntry(number="0401", type="work"), name="Doe, Jane"),
        _entry(None, PhoneEntry(number="0501", type="home", quickdial="7")),
    ])


def test_extract_collects_attributes_by_uid():
    records = restorer.extract(_router_document())

    assert len(records) == 1
    record = records[0]
    assert record.uid == "u1"
    assert record.name == "Smith, John"
    assert [(n.number, n.quickdial, n.vanity) for n in record.numbers] == [
        ("0301", "5", "JOHN"),
        ("**610", None, None),
    ]


def test_extract_folds_split_entries():
    document = PhonebookDocument.assemble("pb", [
        _entry("u1", PhoneEntry(number="01", quickdial="2")),
        _entry("u1", PhoneEntry(number="02", vanity="X")),
    ])

    records = restorer.extract(document)

    assert len(records) == 1
    assert [n.number for n in records[0].numbers] == ["01", "02"]


def test_extract_without_document_is_empty():
    assert restorer.extract(None) == []


def test_serialize_deserialize_round_trip():
    records = [
        SpecialAttributeRecord(uid="u1", name="Smith, John", numbers=[
            NumberAttributes(number="0301", type="home", quickdial="5", vanity="JOHN"),
            NumberAttributes(number="**610", type="intern"),
        ]),
        SpecialAttributeRecord(uid="u2", name="Doe, Jane", numbers=[
            NumberAttributes(number="0401", type="work", quickdial="3"),
        ]),
    ]

    rows = restorer.serialize(records)
    restored = restorer.deserialize(rows)

    assert len(rows) == 3
    assert {r.uid: r for r in restored} == {r.uid: r for r in records}


def test_csv_round_trip_with_delimiters_in_names():
    records = [
        SpecialAttributeRecord(uid="u1", name='Smith, "JJ" John', numbers=[
            NumberAttributes(number="0301", quickdial="5"),
        ]),
    ]

    assert restorer.from_csv(restorer.to_csv(records)) == records


def test_deserialize_skips_short_rows():
    records = restorer.deserialize([["u1", "name"], ["u2", "n", "01", "home", "2", ""]])

    assert [r.uid for r in records] == ["u2"]


def test_merge_is_last_writer_wins_per_uid():
    first = [
        SpecialAttributeRecord(uid="u1", numbers=[NumberAttributes(number="01", quickdial="2")]),
        SpecialAttributeRecord(uid="u2", numbers=[NumberAttributes(number="02", quickdial="3")]),
    ]
    second = [
        SpecialAttributeRecord(uid="u1", numbers=[NumberAttributes(number="09", quickdial="4")]),
    ]

    merged = {r.uid: r for r in restorer.merge(first, second)}

    assert [n.number for n in merged["u1"].numbers] == ["09"]
    assert [n.number for n in merged["u2"].numbers] == ["02"]


def _fresh_document() -> PhonebookDocument:
    return PhonebookDocument.assemble("Telefonbuch", [
        _entry("u1", PhoneEntry(number="0301", type="home"), PhoneEntry(number="0171", type="mobile")),
        _entry("u3", PhoneEntry(number="0601", type="home")),
    ])


def test_apply_restores_quickdial_vanity_and_internal_numbers():
    attributes = restorer.extract(_router_document())

    merged = restorer.apply(_fresh_document(), attributes)

    first = merged.entries[0]
    assert [(p.number, p.quickdial, p.vanity) for p in first.numbers] == [
        ("0301", "5", "JOHN"),
        ("0171", None, None),
        ("**610", None, None),
    ]
    assert merged.entries[1] == _fresh_document().entries[1]


def test_apply_keeps_existing_attributes():
    document = PhonebookDocument.assemble("pb", [
        _entry("u1", PhoneEntry(number="0301", quickdial="8")),
    ])
    attributes = [SpecialAttributeRecord(uid="u1", numbers=[
        NumberAttributes(number="0301", quickdial="5", vanity="JOHN"),
    ])]

    merged = restorer.apply(document, attributes)

    assert merged.entries[0].numbers[0].quickdial == "8"
    assert merged.entries[0].numbers[0].vanity == "JOHN"


def test_apply_is_idempotent():
    attributes = restorer.extract(_router_document())

    once = restorer.apply(_fresh_document(), attributes)
    twice = restorer.apply(once, attributes)

    assert once == twice


def test_apply_does_not_mutate_input():
    document = _fresh_document()
    before = document.model_dump()

    restorer.apply(document, restorer.extract(_router_document()))

    assert document.model_dump() == before


def test_apply_internal_number_respects_capacity():
    full = tuple(PhoneEntry(number=f"0{i}") for i in range(9))
    document = PhonebookDocument.assemble("pb", [_entry("u1", *full), _entry("u1", PhoneEntry(number="99"))])
    attributes = [SpecialAttributeRecord(uid="u1", numbers=[NumberAttributes(number="**611")])]

    merged = restorer.apply(document, attributes)

    assert len(merged.entries[0].numbers) == 9
    assert [p.number for p in merged.entries[1].numbers] == ["99", "**611"]


def test_apply_without_records_returns_document_unchanged():
    document = _fresh_document()

    assert restorer.apply(document, []) is document
