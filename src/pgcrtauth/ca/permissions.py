"""Owner-only permissions for private key files.

The guard runs after a key file has been written. On POSIX systems the file
mode is set to 0600. On Windows the file ACL is reset and inheritance removed,
leaving full control to the file owner only.
"""

import logging
import os
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path

from pgcrtauth.ca.errors import PermissionGuardFailed

logger = logging.getLogger(__name__)

KEY_FILE_MODE = 0o600


class PermissionGuard(ABC):
    """Restricts a key file to its owner."""

    @abstractmethod
    def restrict(self, path: Path) -> None:
        """Apply owner-only access to path.

        Raises:
            PermissionGuardFailed: If permissions cannot be changed.
        """


class PosixPermissionGuard(PermissionGuard):
    """Sets mode 0600 on the key file."""

    def restrict(self, path: Path) -> None:
        try:
            os.chmod(path, KEY_FILE_MODE)
        except OSError as e:
            raise PermissionGuardFailed(str(path), str(e)) from e
        logger.debug("key_file_restricted", extra={"path": str(path), "mode": "0600"})


class WindowsPermissionGuard(PermissionGuard):
    """Replaces the key file ACL using icacls."""

    ICACLS = "icacls"

    def restrict(self, path: Path) -> None:
        # First remove explicitly set permissions, then drop inherited ones
        # and grant full control to the owner only
        self._icacls(path, "/reset")
        self._icacls(path, "/inheritance:r", "/grant:r", "CREATOR OWNER:F")
        logger.debug("key_file_restricted", extra={"path": str(path), "acl": "CREATOR OWNER:F"})

    def _icacls(self, path: Path, *args: str) -> None:
        try:
            subprocess.run(
                [self.ICACLS, str(path), *args],
                check=True,
                capture_output=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise PermissionGuardFailed(str(path), str(e)) from e


def default_guard() -> PermissionGuard:
    """Return the guard for the running platform."""
    if sys.platform == "win32":
        return WindowsPermissionGuard()
    return PosixPermissionGuard()


permission_guard = default_guard()
