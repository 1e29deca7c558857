# cgshare/constants.py
# Entry discriminants and identifier alphabet

import string
from enum import IntEnum


class EntryType(IntEnum):
    """Stored entry kind. Values are persisted in the `type` column."""
    GAME = 0
    SPECTATE = 1
    SESSION = 2

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "EntryType":
        """Map a `?type=` query value ("game", "spectate", "session") to a type."""
        for entry_type in cls:
            if entry_type.label == label:
                return entry_type
        raise ValueError(f"Unknown entry type: {label}")


# 0-9, A-Z, a-z
ID_ALPHABET: str = string.digits + string.ascii_uppercase + string.ascii_lowercase

# Attempts to store an entry before giving up on ID collisions
MAX_INSERT_ATTEMPTS: int = 3

# bcrypt only hashes the first 72 bytes and newer releases reject longer input
MAX_PASSWORD_BYTES: int = 72
