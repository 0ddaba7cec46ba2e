"""Per-device, per-storage, per-object ingest loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from .camera import CameraSession
from .commit import commit_file
from .config import IngestConfig
from .destination import resolve_destination
from .errors import DeviceError, ObjectError, SessionCloseError, VolumeError
from .metadata import resolve_metadata
from .ptp.protocol import PTPError
from .ptp.transport import USBTransportError
from .transfer import fetch_object

logger = logging.getLogger(__name__)

# Errors raised by the camera or the filesystem that stay within one object
OBJECT_LEVEL_ERRORS = (ObjectError, PTPError, USBTransportError, OSError)


@dataclass
class RunSummary:
    """Counters for one ingest run."""

    devices: int = 0
    devices_skipped: int = 0
    volumes: int = 0
    volumes_skipped: int = 0
    downloaded: int = 0
    duplicates: int = 0
    folders: int = 0
    failed: int = 0
    bytes_written: int = 0


def storage_available(storage_id: int) -> bool:
    """PTP storage ids with a zero physical-store half are not mounted."""
    return storage_id & 0xFFFF != 0


class Ingestor:
    """Downloads every file object of every camera into date buckets."""

    def __init__(self, config: IngestConfig | None = None) -> None:
        self.config = config or IngestConfig()
        self.summary = RunSummary()

    def run(self, cameras: Iterable[CameraSession]) -> RunSummary:
        """Process cameras one after another.

        Raises:
            SessionCloseError: if a session cannot be closed.
        """
        for camera in cameras:
            self.process_camera(camera)
        return self.summary

    def process_camera(self, camera: CameraSession) -> None:
        try:
            self._open(camera)
        except DeviceError as e:
            logger.warning("Skipping device %s: %s", camera.name, e)
            self.summary.devices_skipped += 1
            camera.disconnect()
            return

        self.summary.devices += 1
        try:
            try:
                storage_ids = camera.get_storage_ids()
            except (PTPError, USBTransportError) as e:
                logger.warning("Could not get storage ids from %s: %s", camera.name, e)
                storage_ids = []

            for storage_id in storage_ids:
                try:
                    self.process_storage(camera, storage_id)
                except VolumeError as e:
                    logger.warning("Skipping storage %#010x: %s", storage_id, e)
                    self.summary.volumes_skipped += 1

            try:
                camera.close_session()
            except (PTPError, USBTransportError) as e:
                raise SessionCloseError(
                    f"Could not close session on {camera.name}: {e}"
                ) from e
        finally:
            camera.disconnect()

    def _open(self, camera: CameraSession) -> None:
        try:
            camera.connect()
            info = camera.get_device_info()
            logger.info("%s %s (firmware %s)", info.manufacturer, info.model, info.device_version)
            camera.open_session()
        except (RuntimeError, USBTransportError) as e:
            raise DeviceError(str(e)) from e

    def process_storage(self, camera: CameraSession, storage_id: int) -> None:
        if not storage_available(storage_id):
            logger.info("Storage %#010x is not available, skipping", storage_id)
            return

        try:
            handles = camera.get_object_handles(storage_id)
        except (PTPError, USBTransportError) as e:
            raise VolumeError(f"Could not get object handles: {e}") from e

        self.summary.volumes += 1
        logger.info("Storage %#010x: %d objects", storage_id, len(handles))

        for handle in handles:
            try:
                self.process_object(camera, handle)
            except OBJECT_LEVEL_ERRORS as e:
                logger.warning("Object %#010x skipped: %s", handle, e)
                self.summary.failed += 1

    def process_object(self, camera: CameraSession, handle: int) -> None:
        """Fetch one object and write it into its date bucket."""
        meta = resolve_metadata(camera, handle, self.config)
        if meta is None:
            self.summary.folders += 1
            return

        path = resolve_destination(
            self.config.destination, meta.captured, meta.filename, meta.size
        )
        if path is None:
            self.summary.duplicates += 1
            return

        data = fetch_object(camera, handle, meta.size, self.config)
        commit_file(path, data)
        logger.debug("Wrote %d bytes to %s", len(data), path)
        self.summary.downloaded += 1
        self.summary.bytes_written += len(data)
