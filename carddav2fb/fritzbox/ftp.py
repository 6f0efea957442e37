"""
File transfer to the router's storage over FTP.

Used for contact photos (fonpix directory) and for the special attribute
table (mediabox). A single connection is opened per task and always closed
on exit.

File: fritzbox/ftp.py
Created: 2026-10-13
Last Modified: 2026-10-18
"""

import ftplib
import io
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol

from ..config import FritzBoxConfig
from ..exceptions import FileTransferError

log = logging.getLogger(__name__)


class FileTransfer(Protocol):
    """Operations the sync needs from a remote file store."""

    def list(self, directory: str = ".") -> List[str]: ...

    def size(self, filename: str) -> Optional[int]: ...

    def delete(self, filename: str) -> bool: ...

    def rename(self, old: str, new: str) -> bool: ...

    def put(self, filename: str, content: bytes) -> bool: ...

    def get(self, filename: str) -> Optional[bytes]: ...


class FtpFileTransfer:
    """FileTransfer over an ftplib connection."""

    def __init__(self, ftp: ftplib.FTP):
        self.ftp = ftp

    def list(self, directory: str = ".") -> List[str]:
        return self.ftp.nlst(directory)

    def size(self, filename: str) -> Optional[int]:
        """Byte size, or None if the file is missing."""
        try:
            # SIZE is refused in ASCII mode, which nlst() leaves active
            self.ftp.voidcmd("TYPE I")
            return self.ftp.size(filename)
        except ftplib.error_perm:
            return None

    def delete(self, filename: str) -> bool:
        try:
            self.ftp.delete(filename)
            return True
        except ftplib.error_perm as e:
            log.warning(f"Could not delete {filename}: {e}")
            return False

    def rename(self, old: str, new: str) -> bool:
        try:
            self.ftp.rename(old, new)
            return True
        except ftplib.error_perm as e:
            log.warning(f"Could not rename {old} to {new}: {e}")
            return False

    def put(self, filename: str, content: bytes) -> bool:
        try:
            self.ftp.storbinary(f"STOR {filename}", io.BytesIO(content))
            return True
        except ftplib.all_errors as e:
            log.error(f"Error uploading {filename}: {e}")
            return False

    def get(self, filename: str) -> Optional[bytes]:
        buffer = io.BytesIO()
        try:
            self.ftp.retrbinary(f"RETR {filename}", buffer.write)
        except ftplib.error_perm as e:
            log.warning(f"Could not download {filename}: {e}")
            return None
        return buffer.getvalue()

    def close(self) -> None:
        try:
            self.ftp.quit()
        except ftplib.all_errors:
            self.ftp.close()


@contextmanager
def ftp_connection(config: FritzBoxConfig, directory: str) -> Iterator[FtpFileTransfer]:
    """
    Open a passive-mode FTP session in `directory`.

    Uses explicit TLS unless `ftp.plain` is set.

    Raises:
        FileTransferError: If connecting, logging in or changing directory fails
    """
    host = config.host
    ftp = ftplib.FTP(timeout=config.timeout) if config.ftp.plain else ftplib.FTP_TLS(timeout=config.timeout)

    try:
        ftp.connect(host)
    except (OSError, ftplib.Error) as e:
        ftp.close()
        raise FileTransferError(f"Could not connect to ftp server {host}: {e}") from e

    transfer = FtpFileTransfer(ftp)
    try:
        try:
            ftp.login(config.user, config.password)
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
        except ftplib.all_errors as e:
            raise FileTransferError(f"Could not log in {config.user} to ftp server {host}: {e}") from e
        ftp.set_pasv(True)
        try:
            ftp.cwd(directory)
        except ftplib.all_errors as e:
            raise FileTransferError(f"Could not change to dir {directory} on ftp server {host}: {e}") from e

        yield transfer
    finally:
        transfer.close()
