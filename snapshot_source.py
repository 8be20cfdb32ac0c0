# pylint: disable=line-too-long
"""
Picks up manifest snapshots published to Azure Blob Storage by the ingestion job.

The blob's last-modified time is the snapshot version. A newer blob is downloaded to a
temporary file, renamed to a version-named file next to the configured manifest path,
and swapped into the ManifestCache. Refreshes are serialized, and a file an active
snapshot has open is never written to.
"""
import glob
import logging
import os
import tempfile
import threading

from azure.core.exceptions import AzureError

from constants import (MANIFEST_BLOB_CONTAINER, MANIFEST_BLOB_NAME, MANIFEST_DB_PATH,
                       STORAGE_CONNECTION_STRING)
from errors import StoreUnavailable
from helpers import download_blob_to_file, get_blob_last_modified
from manifest_cache import ManifestCache

SNAPSHOT_PREFIX = "manifest-"
SNAPSHOT_SUFFIX = ".content"


class BlobSnapshotSource:
    """
    Loads the latest published manifest snapshot into a ManifestCache.

    Args:
        manifest_cache (ManifestCache): Cache to swap snapshots into.
        connection_string (str): Azure Storage connection string.
        container_name (str): Blob container the snapshot is published to.
        blob_name (str): Snapshot blob name.
        storage_dir (str): Local directory for downloaded snapshots.
    """

    def __init__(
        self,
        manifest_cache: ManifestCache,
        connection_string: str = STORAGE_CONNECTION_STRING,
        container_name: str = MANIFEST_BLOB_CONTAINER,
        blob_name: str = MANIFEST_BLOB_NAME,
        storage_dir: str = None,
    ):
        self.manifest_cache = manifest_cache
        self.connection_string = connection_string
        self.container_name = container_name
        self.blob_name = blob_name
        self.storage_dir = storage_dir or os.path.dirname(MANIFEST_DB_PATH) or "."
        self._lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self.connection_string)

    def snapshot_path(self, version: str) -> str:
        """Local path a snapshot of `version` is stored under."""
        return os.path.join(self.storage_dir, f"{SNAPSHOT_PREFIX}{version}{SNAPSHOT_SUFFIX}")

    def refresh(self) -> bool:
        """
        Load the published snapshot if it is newer than the one currently loaded.

        Concurrent callers are serialized; a caller that waited for another refresh sees
        the version it loaded and returns without downloading again.

        Returns:
            bool: True if a new snapshot was swapped in, False otherwise.
        """
        if not self.is_configured:
            logging.debug("Snapshot refresh skipped: no storage connection string configured.")
            return False
        with self._lock:
            try:
                last_modified = get_blob_last_modified(self.connection_string, self.container_name, self.blob_name)
            except (AzureError, ValueError) as e:
                logging.error("Could not read snapshot blob properties %s/%s: %s", self.container_name, self.blob_name, e)
                return False
            if last_modified is None:
                logging.warning("No manifest snapshot published at %s/%s.", self.container_name, self.blob_name)
                return False
            version = last_modified.strftime("%Y%m%dT%H%M%S")
            if self.manifest_cache.is_loaded and self.manifest_cache.version == version:
                logging.debug("Manifest snapshot %s already loaded.", version)
                return False

            target = self._download(version)
            if target is None:
                return False
            try:
                self.manifest_cache.load_snapshot(target, version)
            except StoreUnavailable as e:
                logging.error("Downloaded manifest snapshot %s rejected: %s", version, e)
                self._remove(target)
                return False

            # Open connections keep unlinked files readable until they close
            self.sweep(keep=target)
            logging.info("Manifest snapshot %s is now active.", version)
            return True

    def _download(self, version: str):
        """
        Download the blob to a fresh temporary file, then rename it into place.

        Returns:
            str or None: Path of the downloaded snapshot, or None if the download failed.
        """
        os.makedirs(self.storage_dir, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=self.storage_dir, prefix=SNAPSHOT_PREFIX, suffix=".download", delete=False) as tmp_file:
            tmp_path = tmp_file.name
        if not download_blob_to_file(self.connection_string, self.container_name, self.blob_name, tmp_path):
            self._remove(tmp_path)
            return None
        target = self.snapshot_path(version)
        os.replace(tmp_path, target)
        return target

    def sweep(self, keep: str) -> None:
        """
        Delete version-named snapshot files other than `keep`, including ones left behind
        by earlier processes.
        """
        pattern = os.path.join(self.storage_dir, f"{SNAPSHOT_PREFIX}*{SNAPSHOT_SUFFIX}")
        for path in glob.glob(pattern):
            if os.path.abspath(path) != os.path.abspath(keep):
                logging.info("Removing stale manifest snapshot %s", path)
                self._remove(path)

    @staticmethod
    def _remove(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logging.warning("Failed to delete manifest file %s: %s", path, e)
