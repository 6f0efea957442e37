"""
Shared pytest setup for unit tests.

Router collaborators (FTP storage and HTTP session) are replaced with
in-memory fakes that record every call, so tests can assert on transfer
behaviour without network access. Test images are generated with Pillow.
"""

import io
from typing import Dict, List, Optional, Tuple, Union

import pytest
from PIL import Image

from carddav2fb.config import ConversionConfig


class FakeTransfer:
    """In-memory FileTransfer that logs calls as (operation, args...)."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None, fail_put: bool = False, fail_list: bool = False):
        self.files = dict(files or {})
        self.fail_put = fail_put
        self.fail_list = fail_list
        self.calls: List[Tuple] = []

    def list(self, directory: str = ".") -> List[str]:
        self.calls.append(("list", directory))
        if self.fail_list:
            raise OSError("listing refused")
        return list(self.files)

    def size(self, filename: str) -> Optional[int]:
        self.calls.append(("size", filename))
        content = self.files.get(filename)
        return None if content is None else len(content)

    def delete(self, filename: str) -> bool:
        self.calls.append(("delete", filename))
        return self.files.pop(filename, None) is not None

    def rename(self, old: str, new: str) -> bool:
        self.calls.append(("rename", old, new))
        if old not in self.files:
            return False
        self.files[new] = self.files.pop(old)
        return True

    def put(self, filename: str, content: bytes) -> bool:
        self.calls.append(("put", filename))
        if self.fail_put:
            return False
        self.files[filename] = content
        return True

    def get(self, filename: str) -> Optional[bytes]:
        self.calls.append(("get", filename))
        return self.files.get(filename)

    def operations(self, name: str) -> List[Tuple]:
        return [call for call in self.calls if call[0] == name]


class FakeApi:
    """Stand-in for FritzBoxApi that returns canned responses."""

    def __init__(self, file_response: Union[str, bytes] = "", image_responses: Optional[List[str]] = None):
        self.sid = "0123456789abcdef"
        self.file_response = file_response
        self.image_responses = list(image_responses or [])
        self.logins = 0
        self.posted_files: List[Tuple[dict, dict]] = []
        self.posted_images: List[Tuple[bytes, str]] = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return None

    def login(self) -> str:
        self.logins += 1
        return self.sid

    def post_file(self, form_fields, file_fields) -> str:
        self.posted_files.append((form_fields, file_fields))
        return self.file_response

    def post_export(self, form_fields) -> bytes:
        self.posted_files.append((form_fields, {}))
        if isinstance(self.file_response, str):
            return self.file_response.encode("utf-8")
        return self.file_response

    def post_image(self, body: bytes, boundary: str) -> str:
        self.posted_images.append((body, boundary))
        response = self.image_responses.pop(0) if self.image_responses else ""
        if isinstance(response, Exception):
            raise response
        return response


def make_image(fmt: str = "JPEG", mode: str = "RGB", size=(8, 8), color=(200, 10, 10)) -> bytes:
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 0)
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def conversions() -> ConversionConfig:
    return ConversionConfig(
        vip={"categories": ["VIP"]},
        phone_types={"WORK": "business", "HOME": "home", "CELL": "mobile"},
        email_types={"WORK": "work", "HOME": "home"},
        real_name=["{LASTNAME}, {FIRSTNAME}", "{ORG}", "{FN}"],
    )


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image("JPEG")


@pytest.fixture
def png_bytes() -> bytes:
    return make_image("PNG", mode="RGBA")
