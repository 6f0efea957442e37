"""
Router phonebook XML format.

Mirrors the schema the FRITZ!Box accepts for phonebook import and produces
on export:

    <phonebooks>
      <phonebook name="...">
        <contact>
          <carddav_uid>...</carddav_uid>
          <category>1</category>
          <telephony>
            <number id="0" type="home" quickdial="2" vanity="MOM">...</number>
          </telephony>
          <services>
            <email id="0" classifier="private">...</email>
          </services>
          <person>
            <realName>...</realName>
            <imageURL>...</imageURL>
          </person>
        </contact>
      </phonebook>
    </phonebooks>

see: https://avm.de/fileadmin/user_upload/Global/Service/Schnittstellen/x_contactSCPD.pdf

File: fritzbox/phonebook_xml.py
Created: 2026-10-13
Last Modified: 2026-10-16
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional, Union

from ..models import EmailEntry, PhoneEntry, PhonebookDocument, PhonebookEntry

log = logging.getLogger(__name__)

# Attribute order on <number> as the router writes it
NUMBER_ATTRIBUTES = ("type", "quickdial", "vanity")


def _entry_to_element(entry: PhonebookEntry) -> ET.Element:
    contact = ET.Element("contact")
    if entry.uid:
        ET.SubElement(contact, "carddav_uid").text = entry.uid
    if entry.vip:
        ET.SubElement(contact, "category").text = "1"

    telephony = ET.SubElement(contact, "telephony")
    for idx, phone in enumerate(entry.numbers):
        number = ET.SubElement(telephony, "number")
        number.set("id", str(idx))
        for attribute in NUMBER_ATTRIBUTES:
            value = getattr(phone, attribute)
            if value:
                number.set(attribute, value)
        number.text = phone.number

    if entry.emails:
        services = ET.SubElement(contact, "services")
        for idx, address in enumerate(entry.emails):
            email = ET.SubElement(services, "email")
            email.set("id", str(idx))
            if address.classifier:
                email.set("classifier", address.classifier)
            email.text = address.address

    person = ET.SubElement(contact, "person")
    ET.SubElement(person, "realName").text = entry.real_name
    if entry.image_url:
        ET.SubElement(person, "imageURL").text = entry.image_url

    return contact


def to_xml(document: PhonebookDocument) -> bytes:
    """Serialize a document to UTF-8 XML bytes with declaration."""
    root = ET.Element("phonebooks")
    phonebook = ET.SubElement(root, "phonebook")
    phonebook.set("name", document.name)
    for entry in document.entries:
        phonebook.append(_entry_to_element(entry))
    return ET.tostring(root, encoding="UTF-8", xml_declaration=True)


def _text(element: Optional[ET.Element]) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _element_to_entry(contact: ET.Element) -> PhonebookEntry:
    numbers = []
    for number in contact.findall("./telephony/number"):
        numbers.append(
            PhoneEntry(
                number=_text(number),
                type=number.get("type") or "other",
                quickdial=number.get("quickdial") or None,
                vanity=number.get("vanity") or None,
            )
        )

    emails = [
        EmailEntry(address=_text(email), classifier=email.get("classifier") or None)
        for email in contact.findall("./services/email")
    ]

    return PhonebookEntry(
        uid=_text(contact.find("carddav_uid")) or None,
        real_name=_text(contact.find("./person/realName")),
        numbers=tuple(numbers),
        emails=tuple(emails),
        vip=_text(contact.find("category")) == "1",
        image_url=_text(contact.find("./person/imageURL")) or None,
    )


def from_xml(content: Union[str, bytes, None]) -> Optional[PhonebookDocument]:
    """
    Parse router XML into a document.

    Returns None for missing or unparsable input, which callers treat as
    "no prior phonebook".
    """
    if not content:
        return None
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        log.warning(f"Could not parse phonebook XML: {e}")
        return None

    phonebook = root if root.tag == "phonebook" else root.find("phonebook")
    if phonebook is None:
        log.warning("Phonebook XML has no <phonebook> element")
        return None

    entries = [_element_to_entry(contact) for contact in phonebook.findall("contact")]
    return PhonebookDocument(name=phonebook.get("name", ""), entries=tuple(entries))
