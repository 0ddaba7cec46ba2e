"""High-level PTP camera interface used by the ingest pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .ptp.constants import PTPOperation
from .ptp.protocol import DeviceInfo, ObjectInfo, PTPProtocol
from .ptp.transport import USBTransport, find_ptp_devices

if TYPE_CHECKING:
    from usb.core import Device


class CameraSession(Protocol):
    """Operations the ingest pipeline needs from a camera."""

    @property
    def name(self) -> str: ...

    @property
    def supports_partial_transfer(self) -> bool: ...

    def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    def get_device_info(self) -> DeviceInfo: ...

    def open_session(self) -> None: ...

    def close_session(self) -> None: ...

    def get_storage_ids(self) -> list[int]: ...

    def get_object_handles(self, storage_id: int) -> list[int]: ...

    def get_object_info(self, handle: int) -> ObjectInfo: ...

    def get_object(self, handle: int) -> bytes: ...

    def get_partial_object(self, handle: int, offset: int, max_bytes: int) -> bytes: ...


class Camera:
    """A USB PTP camera."""

    def __init__(self, device: Device) -> None:
        self.transport = USBTransport(device)
        self.protocol: PTPProtocol | None = None
        self._name = self.transport.description
        self._device_info: DeviceInfo | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def supports_partial_transfer(self) -> bool:
        """Whether the device advertises GetPartialObject."""
        if self._device_info is None:
            return False
        return PTPOperation.GET_PARTIAL_OBJECT in self._device_info.operations_supported

    def connect(self) -> None:
        """Claim the USB interface."""
        self.transport.connect()
        self.protocol = PTPProtocol(self.transport)

    def disconnect(self) -> None:
        """Release the USB interface. Safe to call repeatedly."""
        self.protocol = None
        self.transport.disconnect()

    def _require_protocol(self) -> PTPProtocol:
        if not self.protocol:
            raise RuntimeError("Not connected")
        return self.protocol

    def get_device_info(self) -> DeviceInfo:
        """Get device information and remember it for capability checks."""
        info = self._require_protocol().get_device_info()
        self._device_info = info
        self._name = f"{info.manufacturer} {info.model}".strip() or self._name
        return info

    def open_session(self) -> None:
        self._require_protocol().open_session()

    def close_session(self) -> None:
        self._require_protocol().close_session()

    def get_storage_ids(self) -> list[int]:
        return self._require_protocol().get_storage_ids()

    def get_object_handles(self, storage_id: int) -> list[int]:
        return self._require_protocol().get_object_handles(storage_id)

    def get_object_info(self, handle: int) -> ObjectInfo:
        return self._require_protocol().get_object_info(handle)

    def get_object(self, handle: int) -> bytes:
        return self._require_protocol().get_object(handle)

    def get_partial_object(self, handle: int, offset: int, max_bytes: int) -> bytes:
        return self._require_protocol().get_partial_object(handle, offset, max_bytes)


def discover_cameras(vendor_id: int | None = None, product_id: int | None = None) -> list[Camera]:
    """Return a Camera for every attached PTP device."""
    return [Camera(device) for device in find_ptp_devices(vendor_id, product_id)]
