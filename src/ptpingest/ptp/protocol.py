"""PTP protocol layer implementation."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .constants import (
    ALL_FORMATS,
    ALL_OBJECTS,
    SESSION_ID,
    PTPOperation,
    PTPResponse,
)
from .transport import USBTransport

# ObjectInfo dataset up to (not including) the Filename string:
# StorageID, ObjectFormat, ProtectionStatus, ObjectCompressedSize, ThumbFormat,
# ThumbCompressedSize, ThumbPixWidth, ThumbPixHeight, ImagePixWidth,
# ImagePixHeight, ImageBitDepth, ParentObject, AssociationType,
# AssociationDesc, SequenceNumber
OBJECT_INFO_HEADER = struct.Struct("<IHHIHIIIIIIIHII")


class PTPError(RuntimeError):
    """A PTP operation answered with a non-OK response code."""

    def __init__(self, message: str, response_code: int | None = None) -> None:
        super().__init__(message)
        self.response_code = response_code


@dataclass
class DeviceInfo:
    """PTP device information (subset we care about)."""

    manufacturer: str
    model: str
    device_version: str
    serial_number: str = ""
    operations_supported: frozenset[int] = field(default_factory=frozenset)


@dataclass
class ObjectInfo:
    """PTP ObjectInfo dataset (subset we care about)."""

    storage_id: int
    object_format: int
    compressed_size: int
    parent_object: int
    filename: str
    capture_date: str
    modification_date: str


class PTPProtocol:
    """PTP protocol implementation."""

    def __init__(self, transport: USBTransport) -> None:
        self.transport = transport

    def _command(
        self, operation: int, params: list[int] | None = None, what: str = ""
    ) -> bytes:
        """Send a command and return its data phase, raising on a non-OK response."""
        response_code, data = self.transport.send_command(operation, params=params)
        if response_code != PTPResponse.OK:
            label = what or f"Operation {operation:#06x}"
            raise PTPError(f"{label} failed: {response_code:#06x}", response_code)
        return data

    def open_session(self) -> None:
        """Open a PTP session."""
        # OpenSession itself must carry transaction ID 0
        self.transport.reset_transaction_id()
        response_code, _ = self.transport.send_command(
            PTPOperation.OPEN_SESSION, params=[SESSION_ID]
        )
        if response_code not in (PTPResponse.OK, PTPResponse.SESSION_ALREADY_OPEN):
            raise PTPError(f"Failed to open session: {response_code:#06x}", response_code)

    def close_session(self) -> None:
        """Close the current PTP session."""
        self._command(PTPOperation.CLOSE_SESSION, what="Close session")

    def get_device_info(self) -> DeviceInfo:
        """Get device information."""
        data = self._command(PTPOperation.GET_DEVICE_INFO, what="Get device info")
        return self._parse_device_info(data)

    def get_storage_ids(self) -> list[int]:
        """List the storage ids of the device."""
        data = self._command(PTPOperation.GET_STORAGE_IDS, what="Get storage ids")
        ids, _ = self._read_uint32_array(data, 0)
        return ids

    def get_object_handles(self, storage_id: int) -> list[int]:
        """List every object handle (files and folders) of a storage."""
        data = self._command(
            PTPOperation.GET_OBJECT_HANDLES,
            params=[storage_id, ALL_FORMATS, ALL_OBJECTS],
            what=f"Get object handles for storage {storage_id:#010x}",
        )
        handles, _ = self._read_uint32_array(data, 0)
        return handles

    def get_object_info(self, handle: int) -> ObjectInfo:
        """Get the ObjectInfo dataset of an object."""
        data = self._command(
            PTPOperation.GET_OBJECT_INFO, params=[handle], what=f"Get object info {handle:#010x}"
        )
        return self._parse_object_info(data)

    def get_object(self, handle: int) -> bytes:
        """Retrieve the complete object in one transaction."""
        return self._command(
            PTPOperation.GET_OBJECT, params=[handle], what=f"Get object {handle:#010x}"
        )

    def get_partial_object(self, handle: int, offset: int, max_bytes: int) -> bytes:
        """Retrieve at most ``max_bytes`` of an object starting at ``offset``."""
        return self._command(
            PTPOperation.GET_PARTIAL_OBJECT,
            params=[handle, offset, max_bytes],
            what=f"Get partial object {handle:#010x} at {offset}",
        )

    def _parse_device_info(self, data: bytes) -> DeviceInfo:
        """Parse device info: operations supported, manufacturer, model, version, serial."""
        offset = 8  # Skip: standard_version(2) + vendor_ext_id(4) + vendor_ext_ver(2)
        _, offset = self._read_ptp_string(data, offset)  # vendor_extension_desc
        offset += 2  # functional_mode
        operations, offset = self._read_uint16_array(data, offset)
        for _ in range(4):  # Skip: events, props, capture_fmts, image_fmts
            offset = self._skip_uint16_array(data, offset)

        manufacturer, offset = self._read_ptp_string(data, offset)
        model, offset = self._read_ptp_string(data, offset)
        device_version, offset = self._read_ptp_string(data, offset)
        serial_number, offset = self._read_ptp_string(data, offset)

        return DeviceInfo(
            manufacturer=manufacturer,
            model=model,
            device_version=device_version,
            serial_number=serial_number,
            operations_supported=frozenset(operations),
        )

    def _parse_object_info(self, data: bytes) -> ObjectInfo:
        if len(data) < OBJECT_INFO_HEADER.size:
            raise PTPError(f"ObjectInfo dataset too short ({len(data)} bytes)")

        fields = OBJECT_INFO_HEADER.unpack_from(data, 0)
        storage_id, object_format, _, compressed_size = fields[:4]
        parent_object = fields[11]

        offset = OBJECT_INFO_HEADER.size
        filename, offset = self._read_ptp_string(data, offset)
        capture_date, offset = self._read_ptp_string(data, offset)
        modification_date, offset = self._read_ptp_string(data, offset)

        return ObjectInfo(
            storage_id=storage_id,
            object_format=object_format,
            compressed_size=compressed_size,
            parent_object=parent_object,
            filename=filename,
            capture_date=capture_date,
            modification_date=modification_date,
        )

    @staticmethod
    def _read_ptp_string(data: bytes, offset: int) -> tuple[str, int]:
        """Read a PTP string (length-prefixed UTF-16LE)."""
        if offset >= len(data):
            return "", offset

        num_chars = data[offset]
        offset += 1

        if num_chars == 0:
            return "", offset

        # Each char is 2 bytes (UTF-16LE), includes null terminator
        byte_len = num_chars * 2
        if offset + byte_len > len(data):
            return "", offset

        # Decode without null terminator
        try:
            string = data[offset : offset + byte_len - 2].decode("utf-16-le")
        except UnicodeDecodeError:
            string = ""

        offset += byte_len
        return string, offset

    @staticmethod
    def _read_uint16_array(data: bytes, offset: int) -> tuple[list[int], int]:
        """Read a PTP array of uint16 values."""
        if offset + 4 > len(data):
            return [], offset
        count = struct.unpack_from("<I", data, offset)[0]
        offset += 4
        if offset + count * 2 > len(data):
            return [], offset
        return list(struct.unpack_from(f"<{count}H", data, offset)), offset + count * 2

    @staticmethod
    def _read_uint32_array(data: bytes, offset: int) -> tuple[list[int], int]:
        """Read a PTP array of uint32 values."""
        if offset + 4 > len(data):
            return [], offset
        count = struct.unpack_from("<I", data, offset)[0]
        offset += 4
        if offset + count * 4 > len(data):
            raise PTPError(f"Truncated uint32 array: {count} entries declared")
        return list(struct.unpack_from(f"<{count}I", data, offset)), offset + count * 4

    @staticmethod
    def _skip_uint16_array(data: bytes, offset: int) -> int:
        """Skip a PTP array of uint16 values, return new offset."""
        if offset + 4 > len(data):
            return offset
        count = struct.unpack_from("<I", data, offset)[0]
        return offset + 4 + count * 2
