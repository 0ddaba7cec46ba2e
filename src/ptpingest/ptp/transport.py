"""USB transport layer for PTP communication."""

from __future__ import annotations

import logging
import struct
from typing import TYPE_CHECKING

import usb.core
import usb.util

from .constants import (
    USB_CLASS_STILL_IMAGE,
    USB_PROTOCOL_PTP,
    USB_SUBCLASS_STILL_IMAGE,
    PTPPacketType,
)

if TYPE_CHECKING:
    from usb.core import Device, Endpoint, Interface

logger = logging.getLogger(__name__)

HEADER = struct.Struct("<IHHI")


class USBTransportError(Exception):
    """USB transport layer error."""

    pass


def _is_still_image_interface(intf: Interface) -> bool:
    return (
        intf.bInterfaceClass == USB_CLASS_STILL_IMAGE
        and intf.bInterfaceSubClass == USB_SUBCLASS_STILL_IMAGE
        and intf.bInterfaceProtocol == USB_PROTOCOL_PTP
    )


class _FindPTPDevice:
    """pyusb custom_match accepting devices with a PTP still-image interface."""

    def __init__(self, vendor_id: int | None = None, product_id: int | None = None) -> None:
        self.vendor_id = vendor_id
        self.product_id = product_id

    def __call__(self, device: Device) -> bool:
        if self.vendor_id is not None and device.idVendor != self.vendor_id:
            return False
        if self.product_id is not None and device.idProduct != self.product_id:
            return False
        for cfg in device:
            if usb.util.find_descriptor(cfg, custom_match=_is_still_image_interface) is not None:
                return True
        return False


def find_ptp_devices(vendor_id: int | None = None, product_id: int | None = None) -> list[Device]:
    """Return every attached USB device exposing a PTP interface."""
    try:
        found = usb.core.find(find_all=True, custom_match=_FindPTPDevice(vendor_id, product_id))
        return list(found)
    except usb.core.NoBackendError as e:
        raise USBTransportError("No libusb backend available") from e
    except usb.core.USBError as e:
        raise USBTransportError(f"Failed to enumerate USB devices: {e}") from e


class USBTransport:
    """USB transport for PTP protocol communication with a single device."""

    TIMEOUT_MS = 5000  # 5 second timeout
    READ_BUFFER_SIZE = 65536
    # Upper bound for one bulk read while draining a large data phase
    MAX_READ_SIZE = 1024 * 1024

    def __init__(self, device: Device) -> None:
        self.device: Device | None = device
        self.interface_number: int | None = None
        self.in_ep: Endpoint | None = None
        self.out_ep: Endpoint | None = None
        self._transaction_id = 0
        self._max_packet_size = 512  # Will be updated from endpoint descriptor

    @property
    def description(self) -> str:
        """Short bus/address label for log messages."""
        if self.device is None:
            return "<disconnected>"
        return (
            f"bus {self.device.bus} addr {self.device.address} "
            f"(VID={self.device.idVendor:#06x}, PID={self.device.idProduct:#06x})"
        )

    def connect(self) -> None:
        """Claim the still-image interface and configure USB endpoints."""
        if self.device is None:
            raise USBTransportError("Device has been released")

        # Unconfigured devices raise here rather than returning None
        try:
            cfg = self.device.get_active_configuration()
        except usb.core.USBError:
            cfg = None

        if cfg is None:
            try:
                self.device.set_configuration()
                cfg = self.device.get_active_configuration()
            except usb.core.USBError as e:
                if "Resource busy" in str(e):
                    raise USBTransportError(
                        "Camera is busy. Close any other applications using the camera "
                        "(e.g., gphoto2, a desktop photo importer)."
                    ) from e
                raise USBTransportError(f"Failed to configure device: {e}") from e

        intf = usb.util.find_descriptor(cfg, custom_match=_is_still_image_interface)
        if intf is None:
            raise USBTransportError("No PTP interface on device")
        self.interface_number = intf.bInterfaceNumber

        # Detach kernel driver if active
        try:
            if self.device.is_kernel_driver_active(self.interface_number):
                self.device.detach_kernel_driver(self.interface_number)
        except (usb.core.USBError, NotImplementedError):
            # Some platforms don't support this
            pass

        try:
            usb.util.claim_interface(self.device, self.interface_number)
        except usb.core.USBError as e:
            raise USBTransportError(f"Failed to claim interface: {e}") from e

        self.out_ep = usb.util.find_descriptor(
            intf,
            custom_match=lambda e: (
                usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_OUT
                and usb.util.endpoint_type(e.bmAttributes) == usb.util.ENDPOINT_TYPE_BULK
            ),
        )

        self.in_ep = usb.util.find_descriptor(
            intf,
            custom_match=lambda e: (
                usb.util.endpoint_direction(e.bEndpointAddress) == usb.util.ENDPOINT_IN
                and usb.util.endpoint_type(e.bmAttributes) == usb.util.ENDPOINT_TYPE_BULK
            ),
        )

        if self.out_ep is None or self.in_ep is None:
            raise USBTransportError("Required USB endpoints not found")

        self._max_packet_size = self.in_ep.wMaxPacketSize

    def disconnect(self) -> None:
        """Release the interface and USB resources."""
        if self.device:
            usb.util.dispose_resources(self.device)
            self.device = None
            self.interface_number = None
            self.in_ep = None
            self.out_ep = None

    @property
    def transaction_id(self) -> int:
        """Get the current transaction ID and increment for next use."""
        tid = self._transaction_id
        self._transaction_id += 1
        return tid

    def reset_transaction_id(self) -> None:
        """Reset transaction ID to 0."""
        self._transaction_id = 0

    def _read_size(self, remaining: int) -> int:
        """Bulk read length for the rest of a data phase, in whole packets."""
        packets = -(-remaining // self._max_packet_size)
        return max(self.READ_BUFFER_SIZE, min(packets * self._max_packet_size, self.MAX_READ_SIZE))

    def send_command(
        self,
        operation_code: int,
        params: list[int] | None = None,
    ) -> tuple[int, bytes]:
        """
        Send a PTP command and receive response.

        Args:
            operation_code: PTP operation code
            params: Optional list of 32-bit parameter values

        Returns:
            Tuple of (response_code, response_data)
        """
        if self.out_ep is None or self.in_ep is None:
            raise USBTransportError("Not connected")

        if params is None:
            params = []

        tid = self.transaction_id

        # Format: length (4) + type (2) + code (2) + tid (4) + params
        param_data = b"".join(struct.pack("<I", p) for p in params)
        cmd_packet = HEADER.pack(
            HEADER.size + len(param_data),
            PTPPacketType.COMMAND,
            operation_code,
            tid,
        ) + param_data

        try:
            self.out_ep.write(cmd_packet, self.TIMEOUT_MS)
        except usb.core.USBError as e:
            raise USBTransportError(f"Failed to send command {operation_code:#06x}: {e}") from e

        # Read response (may include data phase first)
        response_data = bytearray()
        try:
            while True:
                raw_bytes = bytes(self.in_ep.read(self.READ_BUFFER_SIZE, self.TIMEOUT_MS))

                # Zero-length packet terminating a data phase
                if not raw_bytes:
                    continue

                if len(raw_bytes) < HEADER.size:
                    raise USBTransportError(
                        f"Invalid response packet: too short ({len(raw_bytes)} bytes)"
                    )

                pkt_len, pkt_type, pkt_code, pkt_tid = HEADER.unpack_from(raw_bytes)

                if pkt_type == PTPPacketType.DATA:
                    response_data = bytearray(raw_bytes[HEADER.size :])
                    expected = pkt_len - HEADER.size

                    while len(response_data) < expected:
                        more = self.in_ep.read(
                            self._read_size(expected - len(response_data)), self.TIMEOUT_MS
                        )
                        if len(more) == 0:
                            break
                        response_data += more

                    del response_data[expected:]
                    logger.debug(
                        "Data phase for %#06x (tid %d): %d bytes", operation_code, pkt_tid, expected
                    )

                elif pkt_type == PTPPacketType.RESPONSE:
                    return pkt_code, bytes(response_data)

                else:
                    raise USBTransportError(f"Unexpected packet type: {pkt_type}")

        except usb.core.USBError as e:
            raise USBTransportError(f"Failed to receive response: {e}") from e

