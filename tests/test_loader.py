import threading
import unittest

from firemap.loader import DeviceDirectoryLoader
from firemap.models import Device, DeviceKind
from firemap.registry import RegistryError


class _FakeRegistry:
    def __init__(self, kind, ids=(), error=None, barrier=None):
        self.kind = kind
        self.ids = list(ids)
        self.error = error
        self.barrier = barrier
        self.calls = []

    def get_list(self, market_name):
        self.calls.append(market_name)
        if self.barrier is not None:
            self.barrier.wait()
        if self.error is not None:
            raise self.error
        return [Device(self.kind, i, market_name=market_name) for i in self.ids]


class LoaderTests(unittest.TestCase):
    def test_collects_every_kind(self):
        regs = {
            DeviceKind.RECEIVER: _FakeRegistry(DeviceKind.RECEIVER, [1]),
            DeviceKind.REPEATER: _FakeRegistry(DeviceKind.REPEATER, [2, 3]),
            DeviceKind.DETECTOR: _FakeRegistry(DeviceKind.DETECTOR, [4, 5, 6]),
        }
        loader = DeviceDirectoryLoader(regs)
        directory = loader.load("A")
        self.assertEqual([d.id for d in directory.receivers], [1])
        self.assertEqual([d.id for d in directory.repeaters], [2, 3])
        self.assertEqual([d.id for d in directory.detectors], [4, 5, 6])
        self.assertEqual(directory.failed, ())
        for reg in regs.values():
            self.assertEqual(reg.calls, ["A"])

    def test_one_failure_does_not_block_others(self):
        regs = {
            DeviceKind.RECEIVER: _FakeRegistry(DeviceKind.RECEIVER, [1]),
            DeviceKind.REPEATER: _FakeRegistry(DeviceKind.REPEATER, error=RegistryError("timeout")),
            DeviceKind.DETECTOR: _FakeRegistry(DeviceKind.DETECTOR, [4]),
        }
        with self.assertLogs("firemap.loader", level="WARNING"):
            directory = DeviceDirectoryLoader(regs).load("A")
        self.assertEqual(directory.repeaters, [])
        self.assertEqual(directory.failed, (DeviceKind.REPEATER,))
        self.assertEqual([d.id for d in directory.receivers], [1])
        self.assertEqual([d.id for d in directory.detectors], [4])

    def test_requests_run_concurrently(self):
        # каждый запрос ждёт остальные два; последовательный загрузчик упал бы по таймауту
        barrier = threading.Barrier(3, timeout=5)
        regs = {k: _FakeRegistry(k, [1], barrier=barrier) for k in DeviceKind.ALL}
        directory = DeviceDirectoryLoader(regs).load("A")
        self.assertEqual(directory.failed, ())


if __name__ == "__main__":
    unittest.main()
