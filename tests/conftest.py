from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from ptpingest.ptp.constants import PTPObjectFormat, PTPOperation
from ptpingest.ptp.protocol import DeviceInfo, ObjectInfo, PTPError

STORAGE_SD1 = 0x00010001
STORAGE_SD2 = 0x00020001


def make_info(
    filename: str = "IMG_0001.JPG",
    size: int = 1024,
    capture_date: str = "20230615T101500",
    object_format: int = PTPObjectFormat.EXIF_JPEG,
    storage_id: int = STORAGE_SD1,
) -> ObjectInfo:
    return ObjectInfo(
        storage_id=storage_id,
        object_format=object_format,
        compressed_size=size,
        parent_object=0,
        filename=filename,
        capture_date=capture_date,
        modification_date=capture_date,
    )


def payload(size: int) -> bytes:
    return (bytes(range(251)) * (size // 251 + 1))[:size]


@dataclass
class FakeCamera:
    """In-memory camera recording every call made to it."""

    storages: dict[int, list[int]] = field(default_factory=dict)
    objects: dict[int, tuple[ObjectInfo, bytes]] = field(default_factory=dict)
    partial: bool = True
    fail: dict[str, Exception] = field(default_factory=dict)
    bad_storages: set[int] = field(default_factory=set)
    bad_handles: set[int] = field(default_factory=set)
    calls: list[tuple] = field(default_factory=list)

    @property
    def name(self) -> str:
        return "Fake Camera"

    @property
    def supports_partial_transfer(self) -> bool:
        return self.partial

    def add(self, handle: int, info: ObjectInfo, data: bytes | None = None, storage: int = STORAGE_SD1):
        if data is None:
            data = payload(info.compressed_size)
        self.storages.setdefault(storage, []).append(handle)
        self.objects[handle] = (info, data)

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.fail:
            raise self.fail[name]

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def connect(self) -> None:
        self._record("connect")

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))

    def get_device_info(self) -> DeviceInfo:
        self._record("get_device_info")
        ops = {PTPOperation.GET_OBJECT}
        if self.partial:
            ops.add(PTPOperation.GET_PARTIAL_OBJECT)
        return DeviceInfo("Fake", "Camera", "1.0", "0001", frozenset(ops))

    def open_session(self) -> None:
        self._record("open_session")

    def close_session(self) -> None:
        self._record("close_session")

    def get_storage_ids(self) -> list[int]:
        self._record("get_storage_ids")
        return list(self.storages)

    def get_object_handles(self, storage_id: int) -> list[int]:
        self._record("get_object_handles", storage_id)
        if storage_id in self.bad_storages:
            raise PTPError("Store not available", 0x2013)
        return list(self.storages[storage_id])

    def get_object_info(self, handle: int) -> ObjectInfo:
        self._record("get_object_info", handle)
        if handle in self.bad_handles:
            raise PTPError("Invalid object handle", 0x2009)
        return self.objects[handle][0]

    def get_object(self, handle: int) -> bytes:
        self._record("get_object", handle)
        return self.objects[handle][1]

    def get_partial_object(self, handle: int, offset: int, max_bytes: int) -> bytes:
        self._record("get_partial_object", handle, offset, max_bytes)
        return self.objects[handle][1][offset : offset + max_bytes]


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()
