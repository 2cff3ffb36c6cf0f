"""Exception hierarchy for node identities."""

from __future__ import annotations

from pathlib import Path


class IdentityError(Exception):
    """
    Base exception for all identity errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class IdentityGenerationError(IdentityError):
    """Raised when fresh key, peer id or secret material cannot be produced."""


class IdentityParseError(IdentityError):
    """
    Raised when a persisted identity document cannot be parsed.

    Attributes:
        field: The document key that failed, or None for the document itself.
        detail: Description of what went wrong.
    """

    def __init__(self, field: str | None, detail: str) -> None:
        self.field = field
        self.detail = detail

        if field is None:
            msg = f"error decoding identity document: {detail}"
        else:
            msg = f"error decoding {field}: {detail}"

        super().__init__(msg)


class IdentityValidationError(IdentityError):
    """
    Raised when an identity is missing a required field.

    Attributes:
        field: The offending field.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class SecretLengthError(IdentityValidationError):
    """
    Raised when a cluster secret is neither empty nor the expected length.

    Attributes:
        actual: Length of the decoded secret.
        expected: Required length.
    """

    def __init__(self, actual: int, expected: int) -> None:
        self.actual = actual
        self.expected = expected
        super().__init__(
            "secret",
            f"input secret is {actual} bytes, cluster secret should be {expected}",
        )


class IdentityEncodingError(IdentityError):
    """Raised when the private key cannot be converted to its canonical bytes."""


class IdentityIOError(IdentityError):
    """
    Raised when an identity file cannot be read or written.

    Attributes:
        path: The file involved.
        operation: "read" or "write".
    """

    def __init__(self, path: Path, operation: str, detail: str) -> None:
        self.path = path
        self.operation = operation
        super().__init__(f"error trying to {operation} identity file {path}: {detail}")
