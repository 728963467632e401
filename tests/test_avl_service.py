from avl_stack.l0_core.events import Codec, Transport
from avl_stack.l1_drivers.serial_port import SerialPort
from avl_stack.l2_avl.avl_service import AvlService

from avl_vectors import C8_STREAM_1, C8_STREAM_2, C16_STREAM


class FakePort(SerialPort):
    """In-memory port: records lifecycle calls, never reads."""

    def __init__(self) -> None:
        self.opened = False
        self.reader = None

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.opened = False

    def is_open(self) -> bool:
        return self.opened

    def set_reader(self, on_bytes) -> None:
        self.reader = on_bytes


def test_process_decodes_and_delivers():
    got = []
    svc = AvlService(FakePort(), "8", on_packet=got.append)
    packets = svc.process(C8_STREAM_1 + C8_STREAM_2[:10])
    packets += svc.process(C8_STREAM_2[10:])
    assert got == packets
    assert len(packets) == 2
    assert packets[0].codec is Codec.C8
    assert packets[0].transport is Transport.STREAM
    assert packets[0].result.records[0].timestamp == 1560161086000
    assert packets[1].result.records[0].elements == {1: 1, 21: 3, 66: 24080}
    assert svc.decoded == 2 and svc.rejected == 0


def test_process_counts_rejected_frames_and_continues():
    svc = AvlService(FakePort(), Codec.C8)
    # C16 frame under a C8 service fails with CodecMismatch
    packets = svc.process(C16_STREAM + C8_STREAM_1)
    assert len(packets) == 1
    assert svc.rejected == 1 and svc.decoded == 1


def test_callback_errors_do_not_stop_processing():
    def boom(packet):
        raise RuntimeError("consumer failed")

    svc = AvlService(FakePort(), Codec.C8, on_packet=boom)
    assert len(svc.process(C8_STREAM_1)) == 1
    assert len(svc.process(C8_STREAM_2)) == 1


def test_open_registers_reader_and_close_unregisters():
    port = FakePort()
    svc = AvlService(port, Codec.C8)
    svc.open()
    assert port.opened and port.reader is not None
    svc.close()
    assert not port.opened and port.reader is None
