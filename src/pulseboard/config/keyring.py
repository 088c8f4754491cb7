"""Optional system keyring integration for refreshed credentials."""

import logging
from functools import lru_cache

logger = logging.getLogger(__name__)

SERVICE_NAME = "pulseboard"


@lru_cache(maxsize=1)
def keyring_available() -> bool:
    """Check if keyring module is available and functional."""
    try:
        import keyring

        return keyring.get_keyring() is not None
    except Exception:
        return False


def keyring_key(app_id: str, credential_key: str) -> str:
    """Generate a keyring key for storage."""
    return f"{SERVICE_NAME}:{app_id}:{credential_key}"


def store_in_keyring(app_id: str, credential_key: str, value: str) -> bool:
    """Store a serialized credential in the system keyring.

    Returns:
        True if stored successfully, False otherwise
    """
    if not keyring_available():
        return False

    try:
        import keyring

        keyring.set_password(SERVICE_NAME, keyring_key(app_id, credential_key), value)
        return True
    except Exception as e:
        logger.debug("Keyring write failed for %s/%s: %s", app_id, credential_key, e)
        return False


def get_from_keyring(app_id: str, credential_key: str) -> str | None:
    """Retrieve a serialized credential from the system keyring.

    Returns:
        Credential value if found, None otherwise
    """
    if not keyring_available():
        return None

    try:
        import keyring

        return keyring.get_password(SERVICE_NAME, keyring_key(app_id, credential_key))
    except Exception as e:
        logger.debug("Keyring read failed for %s/%s: %s", app_id, credential_key, e)
        return None


def delete_from_keyring(app_id: str, credential_key: str) -> bool:
    """Delete a credential from the system keyring.

    Returns:
        True if deleted successfully, False otherwise
    """
    if not keyring_available():
        return False

    try:
        import keyring

        keyring.delete_password(SERVICE_NAME, keyring_key(app_id, credential_key))
        return True
    except Exception:
        return False
