"""
Local vCard files as contact source and download target.

File: carddav/local.py
Created: 2026-10-15
"""

import logging
from pathlib import Path
from typing import List

from ..models import ContactRecord
from .vcard import parse_vcards

log = logging.getLogger(__name__)


def read_vcard_file(path: Path) -> List[ContactRecord]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"vCard file not found: {path}")
    records = parse_vcards(path.read_text(encoding="utf-8"))
    log.info(f"Read {len(records)} vCards from {path}")
    return records


def write_vcard_file(path: Path, cards: List[str]) -> int:
    """Write raw vCards to one .vcf file; returns the number written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        for card in cards:
            f.write(card.strip() + "\r\n")
    return len(cards)
