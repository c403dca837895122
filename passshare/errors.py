from typing import Optional


class PassShareError(Exception):
    """Base error. Messages are generic and safe to show to callers."""

    code = "INTERNAL_ERROR"
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class InvalidPolicy(PassShareError):
    code = "INVALID_POLICY"
    status_code = 400
    message = "At least one character type must be selected"


class EncryptionFailure(PassShareError):
    code = "ENCRYPTION_FAILED"
    status_code = 500
    message = "Encryption failed"


class AuthenticationFailure(PassShareError):
    code = "DECRYPTION_FAILED"
    status_code = 400
    message = "Cannot decrypt secret"


class MalformedEncoding(PassShareError):
    code = "MALFORMED_ENCODING"
    status_code = 400
    message = "Invalid encoded data"


class InvalidSecretId(PassShareError):
    code = "INVALID_SECRET_ID"
    status_code = 400
    message = "Invalid secret ID format"


class StorageUnavailable(PassShareError):
    code = "STORAGE_UNAVAILABLE"
    status_code = 500
    message = "Internal server error"


class OriginRejected(PassShareError):
    code = "ORIGIN_REJECTED"
    status_code = 403
    message = "Cross-origin requests are not allowed"


class RateLimited(PassShareError):
    code = "RATE_LIMITED"
    status_code = 429
    message = "Rate limit exceeded"

    def __init__(self, result, message: Optional[str] = None):
        self.result = result
        super().__init__(message)


class SecretNotFound(PassShareError):
    code = "SECRET_NOT_FOUND"
    status_code = 404
    message = "Secret not found or already accessed"


class RelayError(PassShareError):
    """The relay answered with an unexpected status."""

    code = "RELAY_ERROR"
    status_code = 502
    message = "Failed to reach the secret relay"
