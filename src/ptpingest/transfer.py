"""Object retrieval, whole or in bounded chunks."""

from __future__ import annotations

import logging

from .camera import CameraSession
from .config import IngestConfig, TransferMode
from .errors import SizeMismatchError, TransferError
from .ptp.protocol import PTPError
from .ptp.transport import USBTransportError

logger = logging.getLogger(__name__)


def use_chunked(camera: CameraSession, size: int, config: IngestConfig) -> bool:
    """Decide between a single GetObject and a run of GetPartialObject calls."""
    if config.mode is TransferMode.WHOLE or not camera.supports_partial_transfer:
        return False
    if config.mode is TransferMode.CHUNKED:
        return True
    return size > config.chunk_size


def fetch_whole(camera: CameraSession, handle: int) -> bytes:
    try:
        return camera.get_object(handle)
    except (PTPError, USBTransportError) as e:
        raise TransferError(f"Could not fetch object {handle:#010x}: {e}", handle) from e


def fetch_chunked(camera: CameraSession, handle: int, size: int, chunk_size: int) -> bytes:
    """Read ``size`` bytes in requests of at most ``chunk_size`` bytes.

    Requests start at offsets 0, chunk_size, 2 * chunk_size, ... and the
    returned chunks are appended in order.
    """
    buffer = bytearray()
    offset = 0
    while offset < size:
        length = min(chunk_size, size - offset)
        logger.debug("Object %#010x: requesting %d bytes at offset %d", handle, length, offset)
        try:
            buffer += camera.get_partial_object(handle, offset, length)
        except (PTPError, USBTransportError) as e:
            raise TransferError(
                f"Could not fetch object {handle:#010x} at offset {offset}: {e}", handle
            ) from e
        offset += chunk_size
    return bytes(buffer)


def fetch_object(camera: CameraSession, handle: int, size: int, config: IngestConfig) -> bytes:
    """Retrieve an object and check it has exactly ``size`` bytes.

    Raises:
        TransferError: if the camera fails mid-transfer.
        SizeMismatchError: if the assembled data is shorter or longer than ``size``.
    """
    if use_chunked(camera, size, config):
        data = fetch_chunked(camera, handle, size, config.chunk_size)
    else:
        data = fetch_whole(camera, handle)

    if len(data) != size:
        raise SizeMismatchError(handle, size, len(data))
    return data
