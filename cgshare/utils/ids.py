# cgshare/utils/ids.py

import secrets

from cgshare import config
from cgshare.constants import ID_ALPHABET


def generate_id(length: int = config.ENTRY_ID_LENGTH) -> str:
    """Generate a short alphanumeric ID from a cryptographically strong source.

    Uniqueness is not checked here; the store retries on a duplicate key.
    """
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))
