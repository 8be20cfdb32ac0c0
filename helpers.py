# pylint: disable=line-too-long
"""
Utility functions for the Destiny 2 weapon manifest service.

This module provides:
    - Identifier conversion between the signed 32-bit hashes issued by the Bungie API
      and the unsigned 32-bit hashes used as manifest keys
    - Azure Blob Storage helpers used to pick up published manifest snapshots
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobClient, BlobServiceClient

from errors import InvalidIdentifier

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
UINT32_MAX = 2 ** 32 - 1


def to_store_key(signed_hash: int) -> int:
    """
    Convert a signed 32-bit item identifier into the unsigned 32-bit manifest key.

    Args:
        signed_hash (int): Identifier in [-2^31, 2^31 - 1].

    Returns:
        int: Unsigned identifier in [0, 2^32 - 1].

    Raises:
        InvalidIdentifier: If the value is not an integer or is outside the signed 32-bit range.
    """
    # bool is an int subclass but never a valid hash
    if isinstance(signed_hash, bool) or not isinstance(signed_hash, int):
        raise InvalidIdentifier(f"Identifier must be an integer, got {signed_hash!r}")
    if signed_hash < INT32_MIN or signed_hash > INT32_MAX:
        raise InvalidIdentifier(f"Identifier {signed_hash} is outside the signed 32-bit range")
    return signed_hash + 2 ** 32 if signed_hash < 0 else signed_hash


def to_signed(unsigned_hash: int) -> int:
    """
    Convert an unsigned 32-bit manifest key back into its signed (two's complement) form.

    Raises:
        InvalidIdentifier: If the value is not an integer or is outside the unsigned 32-bit range.
    """
    if isinstance(unsigned_hash, bool) or not isinstance(unsigned_hash, int):
        raise InvalidIdentifier(f"Hash must be an integer, got {unsigned_hash!r}")
    if unsigned_hash < 0 or unsigned_hash > UINT32_MAX:
        raise InvalidIdentifier(f"Hash {unsigned_hash} is outside the unsigned 32-bit range")
    return unsigned_hash - 2 ** 32 if unsigned_hash > INT32_MAX else unsigned_hash


def parse_identifier(raw: int | str) -> int:
    """
    Parse an identifier supplied by a caller (e.g. a route parameter) into a manifest key.

    Args:
        raw (int | str): Base-10 signed 32-bit identifier.

    Returns:
        int: Unsigned 32-bit manifest key.
    """
    if isinstance(raw, str):
        try:
            raw = int(raw.strip(), 10)
        except ValueError as exc:
            raise InvalidIdentifier(f"Identifier {raw!r} is not a base-10 integer") from exc
    return to_store_key(raw)


def _blob_client(connection_string: str, container_name: str, blob_name: str) -> BlobClient:
    return BlobServiceClient.from_connection_string(connection_string).get_blob_client(container_name, blob_name)


def get_blob_last_modified(connection_string: str, container_name: str, blob_name: str) -> Optional[datetime]:
    """
    Read the last-modified time of a published blob.

    Args:
        connection_string (str): Azure Blob Storage connection string.
        container_name (str): Name of the blob container.
        blob_name (str): Name of the blob.

    Returns:
        datetime or None: Last modified time in UTC, or None if the blob does not exist.

    Raises:
        AzureError: If the storage account cannot be reached.
    """
    try:
        props = _blob_client(connection_string, container_name, blob_name).get_blob_properties()
    except ResourceNotFoundError:
        return None
    return props.last_modified.astimezone(timezone.utc)


def download_blob_to_file(connection_string: str, container_name: str, blob_name: str, file_path: str) -> bool:
    """
    Stream a blob into a local file without holding the whole payload in memory.

    Args:
        connection_string (str): Azure Blob Storage connection string.
        container_name (str): Name of the blob container.
        blob_name (str): Name of the blob to download.
        file_path (str): Destination path; overwritten if present.

    Returns:
        bool: True if the blob was written, False otherwise.
    """
    try:
        blob_client = _blob_client(connection_string, container_name, blob_name)
        with open(file_path, "wb") as handle:
            blob_client.download_blob().readinto(handle)
    except (AzureError, OSError) as e:
        logging.error("Failed to download blob %s/%s: %s", container_name, blob_name, e)
        return False
    logging.info("Downloaded blob %s/%s to %s", container_name, blob_name, file_path)
    return True
