# saasguard/core/encryption.py

"""
Authenticated encryption for stored integration credentials.

Values are protected with AES-256-GCM and serialized as an envelope string:

    <iv hex>:<auth tag hex>:<ciphertext hex>

The envelope format is shared with records written by earlier deployments,
so it must stay byte-compatible (16-byte IV, 16-byte tag, lowercase hex).

When no key is configured the cipher runs in pass-through mode and both
directions return their input. Values that do not parse as an envelope are
treated as legacy plaintext and returned unchanged by decrypt().
"""

import hashlib
import logging
import re
import secrets
from typing import Any, Callable, Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from saasguard.core.config import settings
from saasguard.core.exceptions import DecryptionError

logger = logging.getLogger(__name__)

IV_LENGTH = 16
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32
ENVELOPE_SEPARATOR = ":"

# Fields protected at every level that is scanned.
SENSITIVE_FIELDS = ("access_token", "refresh_token", "client_secret", "api_key")
# Fields protected inside a nested "tokens" object.
TOKEN_FIELDS = ("access_token", "refresh_token")

_HEX_KEY_RE = re.compile(r"[0-9a-fA-F]{64}")
_HEX_RE = re.compile(r"[0-9a-fA-F]+")

FieldTransform = Callable[[str, Any], Any]


def derive_key(secret: Optional[str]) -> Optional[bytes]:
    """
    Turn the configured secret into a 32-byte AES key.

    - 64 hex characters: decoded directly.
    - anything else: SHA-256 of the UTF-8 secret.
    - empty / None: no key (pass-through mode).
    """
    if not secret:
        return None
    if _HEX_KEY_RE.fullmatch(secret):
        return bytes.fromhex(secret)
    return hashlib.sha256(secret.encode("utf-8")).digest()


def generate_key() -> str:
    """Return a fresh random key as 64 hex characters, for ENCRYPTION_KEY."""
    return secrets.token_bytes(KEY_LENGTH).hex()


def is_encrypted(value: Any) -> bool:
    """
    True if value looks like an envelope: three segments, with the IV and
    auth tag each 32 hex characters. Does not verify the tag.
    """
    if not value or not isinstance(value, str):
        return False
    parts = value.split(ENVELOPE_SEPARATOR)
    if len(parts) != 3:
        return False
    iv_hex, tag_hex = parts[0], parts[1]
    return (
        len(iv_hex) == IV_LENGTH * 2
        and len(tag_hex) == AUTH_TAG_LENGTH * 2
        and bool(_HEX_RE.fullmatch(iv_hex))
        and bool(_HEX_RE.fullmatch(tag_hex))
    )


def _parse_envelope(parts):
    """
    Hex-decode envelope segments. Returns (iv, tag, ciphertext_hex) or None
    if the IV or tag is not valid hex of the expected length.
    """
    iv_hex, tag_hex, ciphertext_hex = parts
    if len(iv_hex) != IV_LENGTH * 2 or len(tag_hex) != AUTH_TAG_LENGTH * 2:
        return None
    # bytes.fromhex() tolerates whitespace, so check the alphabet first
    if not _HEX_RE.fullmatch(iv_hex) or not _HEX_RE.fullmatch(tag_hex):
        return None
    return bytes.fromhex(iv_hex), bytes.fromhex(tag_hex), ciphertext_hex


class CredentialCipher:
    """
    Encrypts and decrypts sensitive string values.

    The secret is injected at construction; the key is re-derived on each
    call and never cached. Instances hold no mutable state and are safe to
    share between concurrent request handlers.

    With strict=True, decrypt() raises DecryptionError for a well-formed
    envelope that cannot be decrypted instead of returning it unchanged.
    """

    def __init__(self, secret: Optional[str] = None, strict: bool = False):
        self._secret = secret or None
        self.strict = strict

    # ---------------------------------------------------------
    # CONFIG
    # ---------------------------------------------------------
    def is_enabled(self) -> bool:
        return self._secret is not None

    def _get_key(self) -> Optional[bytes]:
        return derive_key(self._secret)

    # ---------------------------------------------------------
    # SINGLE VALUES
    # ---------------------------------------------------------
    def encrypt(self, plaintext: Any) -> Any:
        """
        Encrypt a string into an envelope.

        Falsy or non-string input is returned unchanged, as is everything
        when no key is configured. Returns None if encryption itself fails;
        callers must not persist a None result.
        """
        if not plaintext or not isinstance(plaintext, str):
            return plaintext

        key = self._get_key()
        if key is None:
            logger.warning("ENCRYPTION_KEY not set - credentials will not be encrypted")
            return plaintext

        try:
            iv = secrets.token_bytes(IV_LENGTH)
            encryptor = Cipher(algorithms.AES(key), modes.GCM(iv)).encryptor()
            ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
            tag = encryptor.tag
        except Exception as e:
            logger.error(f"Encrypt error: {e}")
            return None

        return ENVELOPE_SEPARATOR.join((iv.hex(), tag.hex(), ciphertext.hex()))

    def decrypt(self, data: Any, strict: Optional[bool] = None) -> Any:
        """
        Decrypt an envelope back to its plaintext.

        Anything that is not an envelope is returned unchanged. By default a
        failed decryption (wrong key, tampered data) also returns the input
        unchanged, so a caller cannot tell it apart from legacy plaintext.
        Pass strict=True (or construct the cipher strict) to get a
        DecryptionError instead.
        """
        if not data or not isinstance(data, str):
            return data
        if strict is None:
            strict = self.strict

        parts = data.split(ENVELOPE_SEPARATOR)
        if len(parts) != 3:
            return data

        key = self._get_key()
        if key is None:
            logger.warning("Cannot decrypt - ENCRYPTION_KEY not set")
            if strict and is_encrypted(data):
                raise DecryptionError("Encrypted value found but no ENCRYPTION_KEY is configured")
            return data

        parsed = _parse_envelope(parts)
        if parsed is None:
            # plaintext that happens to contain two colons
            return data
        iv, tag, ciphertext_hex = parsed

        try:
            if not _HEX_RE.fullmatch(ciphertext_hex):
                raise ValueError("ciphertext is not valid hex")
            ciphertext = bytes.fromhex(ciphertext_hex)
            decryptor = Cipher(algorithms.AES(key), modes.GCM(iv, tag)).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            return plaintext.decode("utf-8")
        except InvalidTag:
            logger.warning("Decrypt failed: authentication tag mismatch")
            if strict:
                raise DecryptionError("Authentication tag mismatch")
            return data
        except Exception as e:
            logger.warning(f"Decrypt failed, returning original: {e}")
            if strict:
                raise DecryptionError(str(e)) from e
            return data

    def decrypt_strict(self, data: Any) -> Any:
        return self.decrypt(data, strict=True)

    # ---------------------------------------------------------
    # OBJECTS
    # ---------------------------------------------------------
    def encrypt_object_fields(self, obj: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return transform_sensitive_fields(obj, lambda _path, value: self.encrypt(value))

    def decrypt_object_fields(self, obj: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return transform_sensitive_fields(obj, lambda _path, value: self.decrypt(value))


def transform_sensitive_fields(
    obj: Optional[Dict[str, Any]],
    fn: FieldTransform,
    _prefix: str = "",
    _nested: bool = True,
) -> Optional[Dict[str, Any]]:
    """
    Return a shallow copy of obj with fn(path, value) applied to every
    sensitive field that holds a truthy value.

    Covered: SENSITIVE_FIELDS at the top level, TOKEN_FIELDS inside a
    "tokens" object, and the same rules once more inside "oauth_data".
    The input object is never mutated.
    """
    if not obj:
        return obj

    result = dict(obj)

    for field in SENSITIVE_FIELDS:
        if result.get(field):
            result[field] = fn(f"{_prefix}{field}", result[field])

    tokens = result.get("tokens")
    if tokens and isinstance(tokens, dict):
        tokens = dict(tokens)
        for field in TOKEN_FIELDS:
            if tokens.get(field):
                tokens[field] = fn(f"{_prefix}tokens.{field}", tokens[field])
        result["tokens"] = tokens

    oauth_data = result.get("oauth_data")
    if _nested and oauth_data and isinstance(oauth_data, dict):
        result["oauth_data"] = transform_sensitive_fields(
            oauth_data, fn, _prefix=f"{_prefix}oauth_data.", _nested=False
        )

    return result


# ---------------------------------------------------------------------------
# Application-wide cipher built from settings
# ---------------------------------------------------------------------------

cipher = CredentialCipher(settings.ENCRYPTION_KEY, strict=settings.ENCRYPTION_STRICT)


def encrypt(plaintext: Any) -> Any:
    return cipher.encrypt(plaintext)


def decrypt(data: Any) -> Any:
    return cipher.decrypt(data)


def encrypt_object_fields(obj: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return cipher.encrypt_object_fields(obj)


def decrypt_object_fields(obj: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return cipher.decrypt_object_fields(obj)


def is_enabled() -> bool:
    return cipher.is_enabled()
