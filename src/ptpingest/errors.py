"""Error taxonomy of the ingest pipeline.

The orchestrator decides how far an error reaches by its class: device and
volume errors skip the device or volume, object errors skip a single object,
and fatal errors stop the run.
"""


class IngestError(Exception):
    """Base class for ingest errors."""

    pass


class DeviceError(IngestError):
    """A camera could not be identified or its session opened."""

    pass


class VolumeError(IngestError):
    """A storage volume could not be enumerated."""

    pass


class ObjectError(IngestError):
    """A single object could not be ingested."""

    def __init__(self, message: str, handle: int | None = None) -> None:
        super().__init__(message)
        self.handle = handle


class MetadataError(ObjectError):
    pass


class DateParseError(ObjectError):
    pass


class DestinationError(ObjectError):
    pass


class TransferError(ObjectError):
    pass


class SizeMismatchError(TransferError):
    """The assembled buffer does not have the advertised length."""

    def __init__(self, handle: int, expected: int, actual: int) -> None:
        super().__init__(
            f"Object {handle:#010x}: expected {expected} bytes, received {actual}", handle
        )
        self.expected = expected
        self.actual = actual


class CommitError(ObjectError):
    pass


class FatalError(IngestError):
    """An error that must stop the run."""

    pass


class SessionCloseError(FatalError):
    """A camera session could not be closed; the device state is unknown."""

    pass
