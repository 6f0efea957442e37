"""
Authenticated HTTP session with the FRITZ!Box.

Login follows AVM's session ID protocol (login_sid.lua): PBKDF2 challenges
on current firmware, MD5 challenges on older releases. Phonebook and image
uploads are posted to the firmware configuration endpoint.

see: https://avm.de/fileadmin/user_upload/Global/Service/Schnittstellen/AVM_Technical_Note_-_Session_ID_english_2021-05-03.pdf

File: fritzbox/api.py
Created: 2026-10-13
Last Modified: 2026-10-18
"""

import hashlib
import logging
import xml.etree.ElementTree as ET
from typing import Dict, Optional, Tuple

import requests

from ..config import FritzBoxConfig
from ..exceptions import AuthenticationError, TransportError

log = logging.getLogger(__name__)

INVALID_SID = "0000000000000000"
LOGIN_PATH = "/login_sid.lua?version=2"
UPLOAD_PATH = "/cgi-bin/firmwarecfg"

# (filename, content, content type)
FileField = Tuple[str, bytes, str]


def pbkdf2_response(challenge: str, password: str) -> str:
    """Answer a '2$iter1$salt1$iter2$salt2' challenge."""
    _, iter1, salt1, iter2, salt2 = challenge.split("$")
    hash1 = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt1), int(iter1))
    hash2 = hashlib.pbkdf2_hmac("sha256", hash1, bytes.fromhex(salt2), int(iter2))
    return f"{salt2}${hash2.hex()}"


def md5_response(challenge: str, password: str) -> str:
    """Answer a legacy MD5 challenge; characters above U+00FF become '.'."""
    password = "".join(c if ord(c) <= 255 else "." for c in password)
    digest = hashlib.md5(f"{challenge}-{password}".encode("utf-16-le")).hexdigest()
    return f"{challenge}-{digest}"


def challenge_response(challenge: str, password: str) -> str:
    if challenge.startswith("2$"):
        return pbkdf2_response(challenge, password)
    return md5_response(challenge, password)


class FritzBoxApi:
    """
    HTTP access to one router.

    Usage:
        >>> with FritzBoxApi(config) as fritz:
        ...     fritz.login()
        ...     fritz.post_file({"PhonebookId": "0"}, {...})
    """

    def __init__(self, config: FritzBoxConfig, session: Optional[requests.Session] = None):
        self.url = config.url.rstrip("/")
        if "://" not in self.url:
            self.url = f"http://{self.url}"
        self.user = config.user
        self.password = config.password
        self.timeout = config.timeout
        self.session = session or requests.Session()
        self.sid = INVALID_SID

    def __enter__(self) -> "FritzBoxApi":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.session.close()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, self.url + path, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            log.error(f"Request to {self.url}{path} failed: {e}")
            raise TransportError(f"Request to {self.url}{path} failed: {e}") from e
        return response

    @staticmethod
    def _parse_session_info(content: bytes) -> Dict[str, str]:
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise TransportError(f"Malformed login response: {e}") from e
        return {
            "sid": root.findtext("SID") or INVALID_SID,
            "challenge": root.findtext("Challenge") or "",
            "block_time": root.findtext("BlockTime") or "0",
        }

    def login(self) -> str:
        """
        Obtain a session ID.

        Raises:
            AuthenticationError: If the router rejects the credentials
            TransportError: If the router cannot be reached
        """
        info = self._parse_session_info(self._request("GET", LOGIN_PATH).content)
        if info["sid"] != INVALID_SID:
            self.sid = info["sid"]
            return self.sid

        if int(info["block_time"]) > 0:
            log.warning(f"FRITZ!Box login blocked for {info['block_time']} seconds")

        response = challenge_response(info["challenge"], self.password)
        info = self._parse_session_info(
            self._request("POST", LOGIN_PATH, data={"username": self.user, "response": response}).content
        )
        if info["sid"] == INVALID_SID:
            raise AuthenticationError(f"FRITZ!Box login failed for user {self.user!r}")

        self.sid = info["sid"]
        log.debug("FRITZ!Box login successful")
        return self.sid

    def _post_form(self, form_fields: Dict[str, str], file_fields: Dict[str, FileField]) -> requests.Response:
        data = {"sid": self.sid, **form_fields}
        files = dict(file_fields) or None
        if files is None:
            # Force multipart/form-data for plain fields as well
            files = {key: (None, str(value)) for key, value in data.items()}
            data = None
        return self._request("POST", UPLOAD_PATH, data=data, files=files)

    def post_file(self, form_fields: Dict[str, str], file_fields: Dict[str, FileField]) -> str:
        """Post a multipart form with the session ID as first field."""
        return self._post_form(form_fields, file_fields).text

    def post_export(self, form_fields: Dict[str, str]) -> bytes:
        """
        Post an export form and return the undecoded response body.

        The router declares no charset for exports, so the XML is left to
        its own encoding declaration.
        """
        return self._post_form(form_fields, {}).content

    def post_image(self, body: bytes, boundary: str) -> str:
        """Post a hand-assembled multipart body."""
        headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}
        return self._request("POST", UPLOAD_PATH, data=body, headers=headers).text
