"""
Tests for contact photo synchronization.
"""

import io
import logging
from datetime import datetime

from PIL import Image

from carddav2fb.fritzbox.images import (
    ImageSynchronizer,
    get_jpeg_image,
    map_uids_to_files,
    uid_from_filename,
)
from carddav2fb.models import ContactRecord, Photo

from conftest import FakeTransfer, make_image

PREFIX = "file:///var/InternerSpeicher/fonpix"
NOW = datetime(2026, 10, 17, 8, 30, 15)


def _record(uid="u1", data=None, mime_type="JPEG", url=None) -> ContactRecord:
    return ContactRecord(uid=uid, photo=Photo(data=data, mime_type=mime_type, url=url))


def test_uid_from_filename_rules():
    assert uid_from_filename("9e40f1f9-33df_190106123906.jpg") == "9e40f1f9-33df"
    assert uid_from_filename("legacy-uid.JPG") == "legacy-uid"
    assert map_uids_to_files(["a_190101000000.jpg", "b.jpg"]) == {"a": "a_190101000000.jpg", "b": "b.jpg"}


def test_uid_with_underscores_is_kept_whole():
    assert uid_from_filename("abc_def_190106123906.jpg") == "abc_def"
    assert uid_from_filename("abc_def.jpg") == "abc_def"


def test_same_size_skips_transfer_for_underscore_uid():
    transfer = FakeTransfer({"abc_def_190101000000.jpg": bytes(50)})
    record = _record(uid="abc_def", data=bytes(50))

    uploaded, considered = ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record])

    assert (uploaded, considered) == (0, 1)
    assert transfer.operations("put") == []
    assert record.image_url == f"{PREFIX}/abc_def_190101000000.jpg"


def test_same_size_skips_transfer():
    image = bytes(50)
    transfer = FakeTransfer({"u1_190101000000.jpg": bytes(50)})
    record = _record(data=image)

    uploaded, considered = ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record])

    assert (uploaded, considered) == (0, 1)
    assert transfer.operations("put") == []
    assert transfer.operations("delete") == []
    assert record.image_url == f"{PREFIX}/u1_190101000000.jpg"


def test_changed_size_replaces_file():
    transfer = FakeTransfer({"u1_190101000000.jpg": bytes(50)})
    record = _record(data=bytes(60))

    uploaded, considered = ImageSynchronizer(transfer, PREFIX + "/", now=NOW).sync([record])

    assert (uploaded, considered) == (1, 1)
    assert transfer.operations("delete") == [("delete", "u1_190101000000.jpg")]
    assert transfer.operations("put") == [("put", "u1_261017083015.jpg")]
    assert record.image_url == f"{PREFIX}/u1_261017083015.jpg"


def test_new_image_is_uploaded_without_delete():
    transfer = FakeTransfer()
    record = _record(data=bytes(10))

    uploaded, _ = ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record])

    assert uploaded == 1
    assert transfer.operations("delete") == []
    assert transfer.files == {"u1_261017083015.jpg": bytes(10)}


def test_failed_transfer_clears_photo_and_url():
    transfer = FakeTransfer(fail_put=True)
    record = _record(data=bytes(10))

    uploaded, considered = ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record])

    assert (uploaded, considered) == (0, 1)
    assert record.photo is None
    assert record.image_url is None


def test_external_photo_is_skipped(caplog):
    transfer = FakeTransfer()
    record = _record(url="https://example.com/photo.jpg")

    with caplog.at_level(logging.WARNING):
        result = ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record])

    assert result == (0, 0)
    assert "can not be accessed" in caplog.text
    assert record.image_url is None


def test_records_without_photo_are_ignored():
    transfer = FakeTransfer()

    assert ImageSynchronizer(transfer, PREFIX, now=NOW).sync([ContactRecord(uid="x")]) == (0, 0)


def test_unsupported_format_is_skipped():
    transfer = FakeTransfer()
    record = _record(data=make_image("GIF"), mime_type="GIF")

    assert ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record]) == (0, 0)
    assert transfer.operations("put") == []


def test_png_is_converted_to_jpeg_on_white(png_bytes):
    jpeg = get_jpeg_image(Photo(data=png_bytes, mime_type="PNG"))

    with Image.open(io.BytesIO(jpeg)) as image:
        assert image.format == "JPEG"
        red, green, blue = image.convert("RGB").getpixel((4, 4))
    # Fully transparent source pixels end up white
    assert min(red, green, blue) > 240


def test_jpeg_passes_through(jpeg_bytes):
    assert get_jpeg_image(Photo(data=jpeg_bytes, mime_type="image/jpeg")) == jpeg_bytes


def test_listing_failure_means_empty_remote_state():
    transfer = FakeTransfer({"u1_190101000000.jpg": bytes(10)}, fail_list=True)
    record = _record(data=bytes(10))

    uploaded, _ = ImageSynchronizer(transfer, PREFIX, now=NOW).sync([record])

    assert uploaded == 1
    assert transfer.operations("delete") == []


def test_warns_above_image_ceiling(caplog):
    transfer = FakeTransfer()
    records = [_record(uid=f"u{i}", data=bytes(5)) for i in range(3)]

    with caplog.at_level(logging.WARNING):
        uploaded, considered = ImageSynchronizer(transfer, PREFIX, max_image_count=2, now=NOW).sync(records)

    assert (uploaded, considered) == (3, 3)
    assert "FritzFon may handle only up to 2 images" in caplog.text


def test_callback_called_per_record():
    calls = []
    records = [ContactRecord(uid="a"), _record(uid="b", data=bytes(3))]

    ImageSynchronizer(FakeTransfer(), PREFIX, now=NOW).sync(records, callback=lambda: calls.append(1))

    assert len(calls) == 2
