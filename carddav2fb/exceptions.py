"""
Exception types for carddav2fb.

File: exceptions.py
Created: 2026-10-12
Last Modified: 2026-10-14
"""


class Carddav2FbError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(Carddav2FbError):
    """Configuration is missing or invalid."""


class TransportError(Carddav2FbError):
    """A remote peer could not be reached or answered unexpectedly. Fatal for the run."""


class AuthenticationError(TransportError):
    """The CardDAV server or the router rejected the credentials."""


class UploadError(TransportError):
    """The router did not confirm a phonebook import."""


class FileTransferError(TransportError):
    """FTP connection, login or directory change failed."""
