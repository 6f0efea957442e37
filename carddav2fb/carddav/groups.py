"""
Group dissolving and include/exclude filtering of source contacts.

File: carddav/groups.py
Created: 2026-10-14
Last Modified: 2026-10-16
"""

import logging
from typing import Dict, List

from ..config import FilterConfig
from ..fritzbox.converter import filters_match
from ..models import ContactRecord

log = logging.getLogger(__name__)


def dissolve_groups(records: List[ContactRecord]) -> List[ContactRecord]:
    """
    Remove iCloud group cards and add the group name to each member's GROUPS.
    """
    groups: Dict[str, List[str]] = {}
    contacts = []
    for record in records:
        if record.kind == "group" and record.members:
            name = record.get("FN") or record.uid
            groups.setdefault(name, []).extend(record.members)
        else:
            contacts.append(record)

    for record in contacts:
        for group, members in groups.items():
            if record.uid in members and group not in record.groups:
                record.groups.append(group)

    return contacts


def count_filters(filters: Dict[str, List[str]]) -> int:
    """Number of populated filter values across all attributes."""
    return sum(len(values) for values in filters.values() if isinstance(values, list))


def filter_records(records: List[ContactRecord], filters: FilterConfig) -> List[ContactRecord]:
    """Apply the include filter (if populated), then the exclude filter."""
    if count_filters(filters.include):
        selected = [record for record in records if filters_match(record, filters.include)]
    else:
        if filters.include:
            log.warning("Include filter is empty: including all downloaded vCards")
        selected = list(records)

    if not filters.exclude:
        return selected

    return [record for record in selected if not filters_match(record, filters.exclude)]
