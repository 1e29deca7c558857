# cgshare/utils/codec.py
# Payload codec: entry payloads <-> JSON bytes stored in entries.data

from pydantic import ValidationError

from cgshare.constants import EntryType
from cgshare.middleware.error_handler import MalformedPayloadError
from cgshare.schemas.entries import EntryPayload, PAYLOAD_MODELS


def encode(payload: EntryPayload) -> bytes:
    """Serialize a payload to field-tagged JSON bytes."""
    return payload.model_dump_json().encode("utf-8")


def decode(entry_type: EntryType, data: bytes) -> EntryPayload:
    """Parse stored bytes into the payload model selected by `entry_type`.

    Raises MalformedPayloadError if the bytes do not match that model.
    """
    model = PAYLOAD_MODELS.get(entry_type)
    if model is None:
        raise MalformedPayloadError(f"Unknown entry type {entry_type!r}.")
    try:
        return model.model_validate_json(data)
    except (ValidationError, UnicodeDecodeError) as e:
        raise MalformedPayloadError() from e
