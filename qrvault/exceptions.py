"""
QRVault Exceptions

Custom exception classes for the QRVault registry.

Every registry failure carries an ``ErrorCode`` so the transaction layer can
turn it into a tagged receipt without inspecting the exception type.
"""

from enum import IntEnum


class ErrorCode(IntEnum):
    """Numeric error tags returned in transaction receipts."""
    UNAUTHORIZED = 100
    INVALID_SIGNATURE = 101
    INVALID_HASH = 102
    ALREADY_EXISTS = 103
    NOT_FOUND = 104
    INVALID_KEY_MATERIAL = 105
    THRESHOLD_EXCEEDED = 106


class QRVaultException(Exception):
    """Base exception for QRVault."""
    pass


class RegistryError(QRVaultException):
    """A registry operation was rejected. State is left unchanged."""
    code: ErrorCode

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__)


class UnauthorizedError(RegistryError):
    """Caller lacks the required role or its key material is inactive."""
    code = ErrorCode.UNAUTHORIZED


class InvalidSignatureError(RegistryError):
    """Signature verification failed."""
    code = ErrorCode.INVALID_SIGNATURE


class InvalidHashError(RegistryError):
    """Hash, size or bound validation failed."""
    code = ErrorCode.INVALID_HASH


class AlreadyExistsError(RegistryError):
    """Record already exists."""
    code = ErrorCode.ALREADY_EXISTS


class NotFoundError(RegistryError):
    """Required record does not exist."""
    code = ErrorCode.NOT_FOUND


class InvalidKeyMaterialError(RegistryError):
    """Key or ciphertext failed its validator."""
    code = ErrorCode.INVALID_KEY_MATERIAL


class ThresholdExceededError(RegistryError):
    """Requested threat level is outside the allowed range."""
    code = ErrorCode.THRESHOLD_EXCEEDED


class UnknownFunctionError(QRVaultException):
    """Transaction names a function the registry does not expose."""
    pass


class ConfigurationError(QRVaultException):
    """Configuration error."""
    pass


class DatabaseError(QRVaultException):
    """Persistence backend error."""
    pass
