# saasguard/core/exceptions.py

from fastapi import HTTPException, status


class SaasGuardError(HTTPException):
    def __init__(self, detail="An error occurred", status_code=status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class AuthenticationError(SaasGuardError):
    def __init__(self, detail="Authentication failed"):
        super().__init__(detail=detail, status_code=status.HTTP_401_UNAUTHORIZED)


class NotFoundError(SaasGuardError):
    def __init__(self, detail="Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


# ---------------------------------------------------------------------------
# Credential cipher errors (not HTTP aware; mapped to 500 in main.py)
# ---------------------------------------------------------------------------

class CredentialCipherError(Exception):
    """Base class for credential encryption failures."""


class DecryptionError(CredentialCipherError):
    """A well-formed envelope could not be decrypted (strict mode only)."""


class EncryptionUnavailableError(CredentialCipherError):
    """
    Raised by the credential store when a sensitive value could not be
    encrypted. The value must not be persisted.
    """

    def __init__(self, field: str):
        super().__init__(f"Could not encrypt sensitive field '{field}'")
        self.field = field
