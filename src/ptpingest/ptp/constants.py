"""PTP protocol constants used for object enumeration and download."""

from enum import IntEnum


class PTPOperation(IntEnum):
    """Standard PTP operation codes."""

    GET_DEVICE_INFO = 0x1001
    OPEN_SESSION = 0x1002
    CLOSE_SESSION = 0x1003
    GET_STORAGE_IDS = 0x1004
    GET_OBJECT_HANDLES = 0x1007
    GET_OBJECT_INFO = 0x1008
    GET_OBJECT = 0x1009
    GET_PARTIAL_OBJECT = 0x101B


class PTPResponse(IntEnum):
    """PTP response codes."""

    OK = 0x2001
    GENERAL_ERROR = 0x2002
    INVALID_OBJECT_HANDLE = 0x2009
    SESSION_ALREADY_OPEN = 0x201E


class PTPObjectFormat(IntEnum):
    """Object format codes we need to tell apart."""

    ASSOCIATION = 0x3001  # folder
    EXIF_JPEG = 0x3801


class PTPPacketType(IntEnum):
    """PTP USB container types."""

    COMMAND = 1
    DATA = 2
    RESPONSE = 3


# USB Still Image class triple advertised by PTP cameras
USB_CLASS_STILL_IMAGE = 0x06
USB_SUBCLASS_STILL_IMAGE = 0x01
USB_PROTOCOL_PTP = 0x01

# GetObjectHandles parameters selecting every object of every format
ALL_FORMATS = 0x00000000
ALL_OBJECTS = 0x00000000

SESSION_ID = 1
