"""
Encryption boundary for voter PII.

Names and emails are stored Fernet-encrypted. Fernet output is randomized, so
the per-voter uniqueness constraint runs on a keyed HMAC of the normalized
email instead of the ciphertext.
"""
import base64
import binascii
import hashlib
import hmac
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from faceoff.core.config import settings

logger = logging.getLogger(__name__)

DECRYPTION_FAILED = "[Decryption Failed]"


def _load_fernet(key: str) -> Fernet:
    try:
        return Fernet(key.encode())
    except (ValueError, binascii.Error):
        derived = hashlib.sha256(key.encode()).digest()
        return Fernet(base64.urlsafe_b64encode(derived))


fernet = _load_fernet(settings.ENCRYPTION_KEY)
_hash_key = (settings.VOTER_HASH_KEY or settings.ENCRYPTION_KEY).encode()


def encrypt(text: str) -> str:
    return fernet.encrypt(text.encode()).decode()


def decrypt(token: str) -> str:
    return fernet.decrypt(token.encode()).decode()


def safe_decrypt(token: Optional[str]) -> str:
    """Decrypt for admin reporting; a corrupt value yields a placeholder, never an exception."""
    if not token:
        return DECRYPTION_FAILED
    try:
        return decrypt(token)
    except InvalidToken:
        logger.warning("Stored voter field could not be decrypted")
        return DECRYPTION_FAILED


def normalize_email(email: str) -> str:
    return email.strip().lower()


def voter_fingerprint(email: str) -> str:
    return hmac.new(_hash_key, normalize_email(email).encode(), hashlib.sha256).hexdigest()


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"
