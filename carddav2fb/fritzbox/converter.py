"""
Convert source contacts into router phonebook entries.

The router stores at most nine numbers per contact. Contacts with more
numbers are split into several entries that share the source identifier,
contacts without any number are dropped.

File: fritzbox/converter.py
Created: 2026-10-12
Last Modified: 2026-10-17
"""

import logging
import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import (
    DEFAULT_PHONE_TYPE,
    FAX_PHONE_TYPE,
    MAX_PHONE_NUMBERS,
    ConversionConfig,
)
from ..models import (
    INTERNAL_PREFIX,
    ContactRecord,
    EmailEntry,
    PhoneEntry,
    PhonebookEntry,
)

log = logging.getLogger(__name__)

# {token} placeholders in name templates
TOKEN_PATTERN = re.compile(r"{([^}]+)}")

# Email-shaped numbers are SIP addresses
SIP_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# A classification rule: (predicate over the upper-cased TYPE string, result)
Rule = Tuple[Callable[[str], bool], str]


def tag_rules(table: Sequence[Tuple[str, str]]) -> List[Rule]:
    """
    Turn an ordered (tag, result) table into predicate rules.

    A rule matches when its tag occurs anywhere in the TYPE string, so
    'CELL' matches 'CELL,VOICE'.
    """
    rules = []
    for tag, result in table:
        needle = str(tag).upper()
        rules.append((lambda types, needle=needle: needle in types, str(result).lower()))
    return rules


def classify(types: str, rules: Sequence[Rule], default: Optional[str] = None) -> Optional[str]:
    """Return the result of the first matching rule, or `default`."""
    for predicate, result in rules:
        if predicate(types):
            return result
    return default


def is_sip_number(number: str) -> bool:
    return bool(SIP_PATTERN.match(number))


def is_internal_number(number: str) -> bool:
    return number.startswith(INTERNAL_PREFIX)


def filters_match(record: ContactRecord, filters: Dict[str, List[str]]) -> bool:
    """
    Check a record's CATEGORIES and/or GROUPS against attribute filters.

    An empty string in a filter's values matches records that lack the
    attribute entirely.
    """
    for attribute, values in filters.items():
        present = record.attribute_values(attribute)
        if present is not None:
            if set(present) & set(values):
                return True
        elif "" in values:
            return True
    return False


class Converter:
    """Maps ContactRecords onto router PhonebookEntries."""

    def __init__(self, conversions: ConversionConfig):
        self.conversions = conversions
        self.phone_rules = tag_rules(conversions.phone_types)
        self.email_rules = tag_rules(conversions.email_types)
        self.phone_sort = self._phone_types_sort_order()
        self.vip_categories = conversions.vip or {}
        self.replacements = conversions.phone_replace_characters or {}
        self._replace_pattern = None
        if self.replacements:
            # Longest keys win when replacements overlap
            keys = sorted(self.replacements, key=len, reverse=True)
            self._replace_pattern = re.compile("|".join(re.escape(k) for k in keys))

    def _phone_types_sort_order(self) -> List[str]:
        """Router types in declared rule order, default type last, no duplicates."""
        order: List[str] = []
        for _, result in self.phone_rules:
            if result not in order:
                order.append(result)
        if DEFAULT_PHONE_TYPE not in order:
            order.append(DEFAULT_PHONE_TYPE)
        return order

    def convert(self, record: ContactRecord) -> List[PhonebookEntry]:
        """
        Convert one record into zero or more entries.

        Numbers are split into consecutive chunks of nine in sorted order.
        Every chunk carries the same emails, name, VIP flag and photo.
        """
        numbers = self.get_phone_numbers(record)
        emails = tuple(self.get_email_addresses(record))

        if len(numbers) > MAX_PHONE_NUMBERS:
            log.info(f"Contact (UID {record.uid}) with >{MAX_PHONE_NUMBERS} phone numbers will be split")
        elif not numbers:
            log.info(f"Contact (UID {record.uid}) without phone numbers will be skipped")
            return []

        real_name = self.get_real_name(record)
        vip = filters_match(record, self.vip_categories)
        image_url = record.image_url if record.photo is not None and record.image_url else None

        entries = []
        for start in range(0, len(numbers), MAX_PHONE_NUMBERS):
            entries.append(
                PhonebookEntry(
                    uid=record.uid,
                    real_name=real_name,
                    numbers=tuple(numbers[start:start + MAX_PHONE_NUMBERS]),
                    emails=emails,
                    vip=vip,
                    image_url=image_url,
                )
            )
        return entries

    def convert_phone_number(self, number: str) -> str:
        """
        Apply the configured character replacements.

        SIP addresses and internal numbers are returned unchanged.
        """
        if is_sip_number(number) or is_internal_number(number):
            return number
        number = number.replace("\xa0", " ")
        if self._replace_pattern is not None:
            number = self._replace_pattern.sub(lambda m: self.replacements[m.group(0)], number)
        return re.sub(r"\s+", " ", number).strip()

    def get_phone_numbers(self, record: ContactRecord) -> List[PhoneEntry]:
        """Typed and sorted numbers of a record."""
        numbers = []
        for phone in record.phones:
            number = phone.number
            if self.replacements:
                number = self.convert_phone_number(number)
            types = ",".join(phone.types).upper()
            phone_type = classify(types, self.phone_rules, DEFAULT_PHONE_TYPE)
            if "FAX" in types:
                phone_type = FAX_PHONE_TYPE
            numbers.append(PhoneEntry(number=number, type=phone_type))
        return self.sort_phone_numbers(numbers)

    def sort_key(self, phone: PhoneEntry) -> Tuple[int, str]:
        # Types outside the declared order sort after the default type
        try:
            index = self.phone_sort.index(phone.type)
        except ValueError:
            index = len(self.phone_sort)
        return index, phone.number

    def sort_phone_numbers(self, numbers: List[PhoneEntry]) -> List[PhoneEntry]:
        return sorted(numbers, key=self.sort_key)

    def get_email_addresses(self, record: ContactRecord) -> List[EmailEntry]:
        """Emails in source order, classified by the first matching rule."""
        addresses = []
        for email in record.emails:
            types = ",".join(email.types).upper()
            addresses.append(
                EmailEntry(address=email.address, classifier=classify(types, self.email_rules))
            )
        return addresses

    def get_real_name(self, record: ContactRecord) -> str:
        """
        Resolve the first name template whose placeholders are all present.

        Returns an empty string (and logs) when no template resolves.
        """
        for template in self.conversions.real_name:
            tokens = TOKEN_PATTERN.findall(template)
            if not tokens:
                log.warning(f"Invalid realName template without placeholders: {template!r}")
                continue
            replacements = {token: record.get(token) for token in tokens}
            if not all(replacements.values()):
                continue
            return TOKEN_PATTERN.sub(lambda m: replacements[m.group(1)], template)

        log.warning(f"No data for conversion `realName` (UID {record.uid})")
        return ""


def convert_contacts(records: List[ContactRecord], conversions: ConversionConfig) -> List[PhonebookEntry]:
    """Convert all records, preserving their order."""
    converter = Converter(conversions)
    entries: List[PhonebookEntry] = []
    for record in records:
        entries.extend(converter.convert(record))
    return entries
