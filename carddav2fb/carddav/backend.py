"""
CardDAV client for downloading an address book.

Supports a single addressbook-query REPORT, or PROPFIND followed by one
GET per card for servers without REPORT support. Linked photos are
embedded after download where the server grants access to them.

File: carddav/backend.py
Created: 2026-10-14
Last Modified: 2026-10-17
"""

import logging
import urllib.parse
import xml.etree.ElementTree as ET
from typing import Callable, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from ..config import ServerConfig
from ..exceptions import AuthenticationError, TransportError
from ..models import ContactRecord
from .vcard import parse_vcards

log = logging.getLogger(__name__)

NAMESPACES = {
    "d": "DAV:",
    "c": "urn:ietf:params:xml:ns:carddav",
}

REPORT_BODY = """<?xml version="1.0" encoding="utf-8" ?>
<C:addressbook-query xmlns:D="DAV:" xmlns:C="urn:ietf:params:xml:ns:carddav">
  <D:prop>
    <D:getetag/>
    <C:address-data/>
  </D:prop>
</C:addressbook-query>"""

PROPFIND_BODY = """<?xml version="1.0" encoding="utf-8" ?>
<D:propfind xmlns:D="DAV:">
  <D:prop>
    <D:getcontenttype/>
    <D:getetag/>
  </D:prop>
</D:propfind>"""


class CardDavBackend:
    """
    Downloads vCards from one address book collection.

    Args:
        config: Server URL, credentials and download method
        session: Optional requests session (for testing or shared pools)
    """

    def __init__(self, config: ServerConfig, session: Optional[requests.Session] = None):
        self.url = config.url if config.url.endswith("/") else config.url + "/"
        self.method = config.method.upper()
        self.session = session or requests.Session()
        self.session.auth = HTTPBasicAuth(config.user, config.password)
        self.session.verify = config.verify
        self.progress: Optional[Callable[[], None]] = None

    def set_progress(self, callback: Optional[Callable[[], None]]) -> None:
        self.progress = callback

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            log.error(f"CardDAV request {method} {url} failed: {e}")
            raise TransportError(f"CardDAV request {method} {url} failed: {e}") from e
        if response.status_code == 401:
            raise AuthenticationError(f"CardDAV server rejected credentials for {url}")
        if response.status_code >= 400:
            raise TransportError(f"CardDAV request {method} {url} returned HTTP {response.status_code}")
        return response

    def _multistatus(self, content: bytes) -> ET.Element:
        try:
            return ET.fromstring(content)
        except ET.ParseError as e:
            raise TransportError(f"Malformed CardDAV response: {e}") from e

    def _tick(self) -> None:
        if self.progress is not None:
            self.progress()

    def _report(self) -> List[str]:
        response = self._request(
            "REPORT",
            self.url,
            data=REPORT_BODY.encode("utf-8"),
            headers={"Depth": "1", "Content-Type": "application/xml; charset=utf-8"},
        )
        cards = []
        for data in self._multistatus(response.content).iterfind(".//c:address-data", NAMESPACES):
            if data.text:
                cards.append(data.text)
                self._tick()
        return cards

    def _propfind(self) -> List[str]:
        response = self._request(
            "PROPFIND",
            self.url,
            data=PROPFIND_BODY.encode("utf-8"),
            headers={"Depth": "1", "Content-Type": "application/xml; charset=utf-8"},
        )
        collection = urllib.parse.urlparse(self.url).path
        cards = []
        for href in self._multistatus(response.content).iterfind(".//d:response/d:href", NAMESPACES):
            path = (href.text or "").strip()
            if not path or path.rstrip("/") == collection.rstrip("/"):
                continue
            card = self._request("GET", urllib.parse.urljoin(self.url, path))
            cards.append(card.text)
            self._tick()
        return cards

    def get_raw_vcards(self) -> List[str]:
        """All vCards of the collection as text."""
        if self.method == "PROPFIND":
            return self._propfind()
        return self._report()

    def embed_photo(self, record: ContactRecord) -> None:
        """Replace an external photo link by the downloaded image, if accessible."""
        if record.photo is None or not record.photo.is_external:
            return
        try:
            response = self.session.get(record.photo.url)
            response.raise_for_status()
        except requests.RequestException as e:
            log.info(f"Could not embed photo for UID {record.uid}: {e}")
            return
        content_type = response.headers.get("Content-Type", "")
        subtype = content_type.split(";")[0].partition("/")[2].upper()
        record.photo = record.photo.model_copy(
            update={"data": response.content, "mime_type": subtype or record.photo.mime_type}
        )

    def get_vcards(self) -> List[ContactRecord]:
        """Download, parse and embed photos."""
        records = parse_vcards("\r\n".join(self.get_raw_vcards()))
        for record in records:
            self.embed_photo(record)
        log.info(f"Downloaded {len(records)} vCards from {self.url}")
        return records
