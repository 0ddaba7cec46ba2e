import struct
from types import SimpleNamespace

import pytest
import usb.core

from ptpingest.ptp.constants import PTPOperation, PTPPacketType, PTPResponse
from ptpingest.ptp.transport import USBTransport, USBTransportError


def container(packet_type, code, tid, payload=b""):
    return struct.pack("<IHHI", 12 + len(payload), packet_type, code, tid) + payload


class FakeOutEndpoint:
    def __init__(self):
        self.written = []

    def write(self, data, timeout):
        self.written.append(bytes(data))


class FakeInEndpoint:
    wMaxPacketSize = 512

    def __init__(self, reads):
        self.reads = list(reads)
        self.sizes = []

    def read(self, size, timeout):
        self.sizes.append(size)
        item = self.reads.pop(0)
        if isinstance(item, Exception):
            raise item
        return bytearray(item)


def make_transport(reads):
    transport = USBTransport(SimpleNamespace(bus=1, address=4, idVendor=0x04A9, idProduct=0x32F7))
    transport.out_ep = FakeOutEndpoint()
    transport.in_ep = FakeInEndpoint(reads)
    return transport


def test_command_packet_layout():
    transport = make_transport([container(PTPPacketType.RESPONSE, PTPResponse.OK, 0)])
    code, data = transport.send_command(PTPOperation.GET_PARTIAL_OBJECT, params=[7, 1024, 512])
    assert code == PTPResponse.OK
    assert data == b""
    assert transport.out_ep.written == [
        struct.pack("<IHHIIII", 24, PTPPacketType.COMMAND, PTPOperation.GET_PARTIAL_OBJECT, 0, 7, 1024, 512)
    ]


def test_multi_packet_data_phase_with_zero_length_packet():
    payload = bytes(range(256)) * 400  # 102400 bytes
    first = container(PTPPacketType.DATA, PTPOperation.GET_OBJECT, 0, payload)[:65536]
    rest = payload[65536 - 12 :]
    transport = make_transport(
        [first, rest, b"", container(PTPPacketType.RESPONSE, PTPResponse.OK, 0)]
    )
    code, data = transport.send_command(PTPOperation.GET_OBJECT, params=[1])
    assert code == PTPResponse.OK
    assert data == payload
    # remaining data is requested in whole packets
    assert transport.in_ep.sizes[1] % FakeInEndpoint.wMaxPacketSize == 0


def test_transaction_ids_increase():
    transport = make_transport(
        [container(PTPPacketType.RESPONSE, PTPResponse.OK, i) for i in range(2)]
    )
    transport.send_command(PTPOperation.GET_STORAGE_IDS)
    transport.send_command(PTPOperation.GET_STORAGE_IDS)
    tids = [struct.unpack_from("<I", packet, 8)[0] for packet in transport.out_ep.written]
    assert tids == [0, 1]


def test_short_packet_is_an_error():
    transport = make_transport([b"\x01\x02\x03"])
    with pytest.raises(USBTransportError):
        transport.send_command(PTPOperation.GET_DEVICE_INFO)


def test_usb_error_is_wrapped():
    transport = make_transport([usb.core.USBError("Operation timed out")])
    with pytest.raises(USBTransportError):
        transport.send_command(PTPOperation.GET_DEVICE_INFO)


def test_not_connected():
    transport = USBTransport(SimpleNamespace(bus=1, address=4, idVendor=0x04A9, idProduct=0x32F7))
    with pytest.raises(USBTransportError):
        transport.send_command(PTPOperation.GET_DEVICE_INFO)
