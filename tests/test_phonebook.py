"""
Tests for phonebook upload/download and special attribute storage.
"""

from contextlib import contextmanager

import pytest

from carddav2fb.config import FritzBoxConfig, FtpConfig, PhonebookConfig
from carddav2fb.exceptions import UploadError
from carddav2fb.fritzbox import phonebook as phonebook_module
from carddav2fb.fritzbox import restorer
from carddav2fb.fritzbox.phonebook import (
    download_attributes,
    download_phonebook,
    load_attributes,
    save_attributes,
    upload_attributes,
    upload_phonebook,
    upload_successful,
)
from carddav2fb.fritzbox.phonebook_xml import to_xml
from carddav2fb.models import (
    NumberAttributes,
    PhoneEntry,
    PhonebookDocument,
    PhonebookEntry,
    SpecialAttributeRecord,
)

from conftest import FakeApi, FakeTransfer

RECORDS = [
    SpecialAttributeRecord(uid="u1", name="Smith, John", numbers=[
        NumberAttributes(number="0301", type="home", quickdial="5"),
    ]),
]


def _document() -> PhonebookDocument:
    return PhonebookDocument.assemble("Telefonbuch", [
        PhonebookEntry(uid="u1", real_name="Smith, John", numbers=(
            PhoneEntry(number="0301", type="home", quickdial="5"),
        )),
    ])


@pytest.fixture
def fake_ftp(monkeypatch):
    """Route ftp_connection to one shared in-memory transfer."""
    transfer = FakeTransfer()
    opened = []

    @contextmanager
    def connection(config, directory):
        opened.append(directory)
        yield transfer

    monkeypatch.setattr(phonebook_module, "ftp_connection", connection)
    transfer.opened = opened
    return transfer


def test_upload_success_messages():
    assert upload_successful("<p>Das Telefonbuch der FRITZ!Box wurde wiederhergestellt.</p>")
    assert upload_successful("FRITZ!Box telephone book restored")
    assert not upload_successful("Fehler")


def test_upload_phonebook_posts_xml():
    api = FakeApi(file_response="FRITZ!Box telephone book restored")

    upload_phonebook(api, _document(), PhonebookConfig(id=2))

    assert api.logins == 1
    form, files = api.posted_files[0]
    assert form == {"PhonebookId": "2"}
    filename, content, content_type = files["PhonebookImportFile"]
    assert filename == "updatepb.xml"
    assert content == to_xml(_document())
    assert content_type == "text/xml"


def test_upload_phonebook_raises_when_not_confirmed():
    with pytest.raises(UploadError):
        upload_phonebook(FakeApi(file_response="<html>error</html>"), _document(), PhonebookConfig())


def test_download_phonebook_parses_export():
    api = FakeApi(file_response=to_xml(_document()).decode("utf-8"))

    document = download_phonebook(api, PhonebookConfig(id=1, name="Privat"))

    assert document == _document()
    form, files = api.posted_files[0]
    assert form == {"PhonebookId": "1", "PhonebookExportName": "Privat", "PhonebookExport": ""}
    assert files == {}


def test_download_phonebook_without_xml_is_none():
    assert download_phonebook(FakeApi(file_response="<html>login</html>"), PhonebookConfig()) is None


def test_save_attributes_keeps_one_backup():
    transfer = FakeTransfer({"Attributes.csv": b"old", "Attributes.csv.bak": b"older"})

    assert save_attributes(transfer, RECORDS)

    assert transfer.files["Attributes.csv.bak"] == b"old"
    assert restorer.from_csv(transfer.files["Attributes.csv"]) == RECORDS
    assert transfer.operations("delete") == [("delete", "Attributes.csv.bak")]


def test_save_attributes_first_time_has_no_backup():
    transfer = FakeTransfer()

    assert save_attributes(transfer, RECORDS)
    assert transfer.operations("rename") == []
    assert list(transfer.files) == ["Attributes.csv"]


def test_save_attributes_reports_failed_put():
    assert not save_attributes(FakeTransfer(fail_put=True), RECORDS)


def test_load_attributes():
    transfer = FakeTransfer({"Attributes.csv": restorer.to_csv(RECORDS)})

    assert load_attributes(transfer) == RECORDS
    assert load_attributes(FakeTransfer()) == []


def test_upload_attributes_stores_records(fake_ftp):
    records = upload_attributes(_document(), FritzBoxConfig())

    assert [r.uid for r in records] == ["u1"]
    assert fake_ftp.opened == ["/FRITZ/mediabox"]
    assert "Attributes.csv" in fake_ftp.files


def test_upload_attributes_without_special_numbers(fake_ftp):
    document = PhonebookDocument.assemble("pb", [
        PhonebookEntry(uid="u1", numbers=(PhoneEntry(number="0301"),)),
    ])

    assert upload_attributes(document, FritzBoxConfig()) == []
    assert fake_ftp.opened == []


def test_attributes_are_skipped_when_ftp_disabled(fake_ftp):
    config = FritzBoxConfig(ftp=FtpConfig(disabled=True))

    assert upload_attributes(_document(), config) == []
    assert download_attributes(config) == []
    assert fake_ftp.opened == []


def test_download_attributes(fake_ftp):
    fake_ftp.files["Attributes.csv"] = restorer.to_csv(RECORDS)

    assert download_attributes(FritzBoxConfig()) == RECORDS


def test_download_phonebook_keeps_umlauts():
    document = PhonebookDocument.assemble("Telefonbuch", [
        PhonebookEntry(uid="u2", real_name="Müller, Jürgen", numbers=(PhoneEntry(number="0302"),)),
    ])

    result = download_phonebook(FakeApi(file_response=to_xml(document)), PhonebookConfig())

    assert result.entries[0].real_name == "Müller, Jürgen"
