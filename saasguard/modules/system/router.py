# saasguard/modules/system/router.py

from fastapi import APIRouter, Depends

from saasguard.core.encryption import CredentialCipher, cipher
from saasguard.dependencies.auth_utils import get_current_token_payload
from saasguard.modules.integrations.schemas import EncryptionStatus

router = APIRouter(
    prefix="/system",
    tags=["System"],
)


def get_cipher() -> CredentialCipher:
    return cipher


@router.get(
    "/encryption",
    response_model=EncryptionStatus,
    dependencies=[Depends(get_current_token_payload)],
)
async def encryption_status(credential_cipher: CredentialCipher = Depends(get_cipher)):
    """
    Lets operators detect a deployment that is storing credentials in
    plaintext because no ENCRYPTION_KEY is configured.
    """
    return EncryptionStatus(
        enabled=credential_cipher.is_enabled(),
        strict=credential_cipher.strict,
    )
