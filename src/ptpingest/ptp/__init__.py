"""PTP protocol implementation for USB still-image cameras."""

from .constants import PTPObjectFormat, PTPOperation, PTPResponse
from .protocol import DeviceInfo, ObjectInfo, PTPError, PTPProtocol
from .transport import USBTransport, USBTransportError, find_ptp_devices

__all__ = [
    "DeviceInfo",
    "ObjectInfo",
    "PTPError",
    "PTPObjectFormat",
    "PTPOperation",
    "PTPProtocol",
    "PTPResponse",
    "USBTransport",
    "USBTransportError",
    "find_ptp_devices",
]
