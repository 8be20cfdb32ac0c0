"""
Exception types raised by the manifest store, identifier codec, and item hydrator.

Not-found is never an exception: lookups return None and callers treat it as a normal
negative result.
"""


class ManifestError(Exception):
    """Base class for manifest service errors."""


class StoreUnavailable(ManifestError):
    """No manifest snapshot is loaded (or the loaded one cannot be read)."""


class CorruptRecord(ManifestError):
    """
    A stored definition payload could not be decoded.

    Attributes:
        record_type (str): Manifest table the record lives in.
        record_id (int | None): Unsigned hash of the record, when known.
    """

    def __init__(self, record_type: str, record_id: int | None = None, reason: str = ""):
        self.record_type = record_type
        self.record_id = record_id
        self.reason = reason
        message = f"Corrupt {record_type} record"
        if record_id is not None:
            message += f" {record_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidIdentifier(ManifestError, ValueError):
    """Identifier outside the signed 32-bit domain, or not an integer at all."""
