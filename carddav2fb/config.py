"""
Run configuration for carddav2fb.

Configuration is read from a JSON file. Credentials can be kept out of the
file and supplied through the environment (or a .env file).

File: config.py
Created: 2026-10-12
Last Modified: 2026-10-17
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv

from .exceptions import ConfigError

log = logging.getLogger(__name__)

# Router limits
MAX_PHONE_NUMBERS = 9
# see: AVM knowledge base "Hintergrund- und Anruferbilder in FRITZ!Fon einrichten"
MAX_IMAGE_COUNT = 150
FRITZ_FONS = (610, 611, 612, 613, 614, 615)  # up to six handsets can be registered
MAX_FONS = 6

DEFAULT_PHONE_TYPE = "other"  # appears as 'sonstige' in German
FAX_PHONE_TYPE = "fax_work"

# Remote location of the special attribute table
MEDIABOX_DIR = "/FRITZ/mediabox"
ATTRIBUTES_FILE = "Attributes.csv"


@dataclass
class ServerConfig:
    """CardDAV server access."""

    url: str
    user: str = ""
    password: str = ""
    method: str = "REPORT"
    verify: bool = True


@dataclass
class FtpConfig:
    plain: bool = False
    disabled: bool = False


@dataclass
class FritzBoxConfig:
    """Router access for HTTP, FTP and handset uploads."""

    url: str = "http://fritz.box"
    user: str = ""
    password: str = ""
    fonpix: str = "/FRITZ/fonpix"
    ftp: FtpConfig = field(default_factory=FtpConfig)
    fritzfons: List[int] = field(default_factory=list)
    quickdial_alias: bool = False
    keypad_template: Optional[Path] = None
    keypad_font: Optional[Path] = None
    timeout: Optional[float] = None

    @property
    def host(self) -> str:
        """Host name for FTP, accepting either a bare host or a URL."""
        url = self.url.split("://", 1)[-1]
        return url.split("/", 1)[0].split(":", 1)[0]


@dataclass
class PhonebookConfig:
    id: int = 0
    name: str = "Telefonbuch"
    imagepath: Optional[str] = None

    @property
    def image_prefix(self) -> str:
        """Image path with exactly one trailing slash."""
        if not self.imagepath:
            raise ConfigError("Missing phonebook/imagepath in config. Image upload not possible.")
        return self.imagepath.rstrip("/") + "/"


@dataclass
class ConversionConfig:
    """
    Rules for turning source contacts into router entries.

    `phone_types` and `email_types` are ordered: the first tag that matches
    wins, and the order of `phone_types` values decides how numbers sort.
    """

    vip: Dict[str, List[str]] = field(default_factory=dict)
    phone_types: List[Tuple[str, str]] = field(default_factory=list)
    email_types: List[Tuple[str, str]] = field(default_factory=list)
    real_name: List[str] = field(default_factory=lambda: ["{FN}"])
    phone_replace_characters: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # JSON objects arrive as dicts; their key order is the rule order
        if isinstance(self.phone_types, dict):
            self.phone_types = list(self.phone_types.items())
        if isinstance(self.email_types, dict):
            self.email_types = list(self.email_types.items())
        self.phone_types = [tuple(rule) for rule in self.phone_types]
        self.email_types = [tuple(rule) for rule in self.email_types]


@dataclass
class FilterConfig:
    include: Dict[str, List[str]] = field(default_factory=dict)
    exclude: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class SyncConfig:
    """Complete configuration of one synchronization run."""

    server: ServerConfig
    fritzbox: FritzBoxConfig = field(default_factory=FritzBoxConfig)
    phonebook: PhonebookConfig = field(default_factory=PhonebookConfig)
    conversions: ConversionConfig = field(default_factory=ConversionConfig)
    filters: FilterConfig = field(default_factory=FilterConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "SyncConfig":
        if "server" not in data:
            raise ConfigError("Missing 'server' section in config")
        try:
            fritz_data = dict(data.get("fritzbox", {}))
            fritz_data["ftp"] = FtpConfig(**fritz_data.get("ftp", {}))
            for key in ("keypad_template", "keypad_font"):
                if fritz_data.get(key):
                    fritz_data[key] = Path(fritz_data[key])
            return cls(
                server=ServerConfig(**data["server"]),
                fritzbox=FritzBoxConfig(**fritz_data),
                phonebook=PhonebookConfig(**data.get("phonebook", {})),
                conversions=ConversionConfig(**data.get("conversions", {})),
                filters=FilterConfig(**data.get("filters", {})),
            )
        except TypeError as e:
            raise ConfigError(f"Invalid config: {e}") from e


def load_config(path: Path) -> SyncConfig:
    """
    Load configuration from a JSON file.

    Environment variables CARDDAV_USER, CARDDAV_PASSWORD, FRITZBOX_USER and
    FRITZBOX_PASSWORD override the corresponding file values.

    Raises:
        ConfigError: If the file is missing, unreadable or incomplete
    """
    load_dotenv()

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e

    config = SyncConfig.from_dict(data)

    config.server.user = os.environ.get("CARDDAV_USER", config.server.user)
    config.server.password = os.environ.get("CARDDAV_PASSWORD", config.server.password)
    config.fritzbox.user = os.environ.get("FRITZBOX_USER", config.fritzbox.user)
    config.fritzbox.password = os.environ.get("FRITZBOX_PASSWORD", config.fritzbox.password)

    log.debug(f"Loaded config from {path}")
    return config
