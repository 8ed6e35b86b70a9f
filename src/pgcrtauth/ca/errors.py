"""Error taxonomy of the certificate engine.

Every failure raised by the engine derives from CrtAuthError so the command
line layer can turn any of them into a message and a non-zero exit code.
"""


class CrtAuthError(Exception):
    """Base class for certificate engine failures."""

    pass


class InvalidKeySize(CrtAuthError):
    """Raised when a key-size token is not one of the supported values."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"invalid key size '{token}'")


class KeyGenerationFailed(CrtAuthError):
    """Raised when the backend fails to generate a private key."""

    pass


class TemplateError(CrtAuthError):
    """Raised when a template cannot be turned into a certificate descriptor."""

    pass


class IncompleteParent(CrtAuthError):
    """Raised when signing with a pair that lacks a certificate or a key."""

    def __init__(self) -> None:
        super().__init__("can't sign certificate with incomplete parent pair")


class SigningFailed(CrtAuthError):
    """Raised when the signed certificate cannot be created."""

    pass


class CertificateParseFailed(CrtAuthError):
    """Raised when a freshly signed certificate cannot be parsed back."""

    pass


class NotFound(CrtAuthError):
    """Raised when a certificate or key file does not exist."""

    def __init__(self, path: str, kind: str):
        self.path = path
        self.kind = kind
        super().__init__(f"{kind} file {path} not found")


class BlockNotFound(CrtAuthError):
    """Raised when a PEM stream holds no block with the expected label."""

    def __init__(self, label: str, path: str | None = None):
        self.label = label
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"{label} block not found{where}")


class ParseError(CrtAuthError):
    """Raised when a matching PEM block does not decode."""

    def __init__(self, label: str, reason: str, path: str | None = None):
        self.label = label
        self.path = path
        where = f" in {path}" if path else ""
        super().__init__(f"failed to parse {label} block{where}: {reason}")


class FileIOError(CrtAuthError):
    """Raised when a directory or file cannot be created, read or written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"{path}: {reason}")


class PermissionGuardFailed(CrtAuthError):
    """Raised when owner-only permissions cannot be applied to a key file."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"failed to restrict permissions to {path} file: {reason}")
