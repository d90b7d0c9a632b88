import unittest

from firemap.models import Device, DeviceDirectory, DeviceKind, DeviceStatus, DragContext, Mode
from firemap.session import ConsoleSession, SessionClosedError
from firemap.utils import Rect

PLAN = Rect(left=0.0, top=0.0, width=400.0, height=300.0)


def _session(mode=Mode.MONITORING):
    s = ConsoleSession()
    s.open(mode)
    s.state.replace(DeviceDirectory(
        receivers=[Device(DeviceKind.RECEIVER, 1, position=(10.0, 10.0))],
        detectors=[
            Device(DeviceKind.DETECTOR, 7, status=DeviceStatus.FIRE, position=(40.0, 60.0)),
            Device(DeviceKind.DETECTOR, 8),
        ],
    ))
    return s


class ModeTests(unittest.TestCase):
    def test_open_sets_initial_mode(self):
        self.assertEqual(_session(Mode.EDIT).mode, Mode.EDIT)
        self.assertEqual(_session().mode, Mode.MONITORING)

    def test_open_rejects_unknown_mode(self):
        with self.assertRaises(ValueError):
            ConsoleSession().open("view")

    def test_listeners_called_only_on_change(self):
        s = _session()
        seen = []
        s.on_mode_changed(seen.append)
        s.set_mode(Mode.MONITORING)
        s.toggle_mode()
        s.toggle_mode()
        self.assertEqual(seen, [Mode.EDIT, Mode.MONITORING])

    def test_mode_switch_cancels_drag(self):
        s = _session(Mode.EDIT)
        s.drag_start(DeviceKind.DETECTOR, 8)
        s.set_mode(Mode.MONITORING)
        self.assertIsNone(s.drag)


class EditGatingTests(unittest.TestCase):
    def test_drag_refused_in_monitoring(self):
        s = _session()
        self.assertFalse(s.drag_start(DeviceKind.DETECTOR, 8))
        self.assertIsNone(s.drag)

    def test_drop_in_monitoring_changes_nothing(self):
        s = _session()
        s.drag = DragContext(DeviceKind.DETECTOR, 8)
        self.assertIsNone(s.drop(100.0, 100.0, PLAN))
        self.assertIsNone(s.state.get(DeviceKind.DETECTOR, 8).position)

    def test_click_in_edit_mode_opens_nothing(self):
        s = _session(Mode.EDIT)
        self.assertIsNone(s.click_marker(DeviceKind.DETECTOR, 7))
        self.assertIsNone(s.dialog_device)

    def test_entering_edit_closes_dialog(self):
        s = _session()
        s.click_marker(DeviceKind.DETECTOR, 7)
        s.set_mode(Mode.EDIT)
        self.assertIsNone(s.dialog_device)


class DragDropTests(unittest.TestCase):
    def test_single_drag_context(self):
        s = _session(Mode.EDIT)
        s.drag_start(DeviceKind.DETECTOR, 8)
        s.drag_start(DeviceKind.RECEIVER, 1)
        self.assertEqual(s.drag, DragContext(DeviceKind.RECEIVER, 1))

    def test_drop_records_percent_position(self):
        s = _session(Mode.EDIT)
        s.drag_start(DeviceKind.DETECTOR, 8)
        ticket = s.drop(100.0, 150.0, PLAN)
        self.assertEqual(ticket.position, (25.0, 50.0))
        self.assertEqual(s.state.get(DeviceKind.DETECTOR, 8).position, (25.0, 50.0))
        self.assertIsNone(s.drag)

    def test_drop_outside_plan_is_clamped(self):
        s = _session(Mode.EDIT)
        s.drag_start(DeviceKind.DETECTOR, 8)
        ticket = s.drop(-20.0, 450.0, PLAN)
        self.assertEqual(ticket.position, (0.0, 100.0))

    def test_drop_without_drag_is_ignored(self):
        s = _session(Mode.EDIT)
        self.assertIsNone(s.drop(10.0, 10.0, PLAN))

    def test_drag_end_without_drop_changes_nothing(self):
        s = _session(Mode.EDIT)
        s.drag_start(DeviceKind.DETECTOR, 8)
        s.drag_end()
        self.assertIsNone(s.drop(10.0, 10.0, PLAN))
        self.assertIsNone(s.state.get(DeviceKind.DETECTOR, 8).position)


class DialogTests(unittest.TestCase):
    def test_click_in_monitoring_opens_dialog(self):
        s = _session()
        dev = s.click_marker(DeviceKind.DETECTOR, 7)
        self.assertEqual(dev.id, 7)
        self.assertIs(s.dialog_device, dev)
        s.close_dialog()
        self.assertIsNone(s.dialog_device)


class LifecycleTests(unittest.TestCase):
    def test_close_discards_state_and_rejects_operations(self):
        s = _session(Mode.EDIT)
        s.close()
        self.assertFalse(s.is_open)
        self.assertEqual(s.state.devices(DeviceKind.DETECTOR), [])
        with self.assertRaises(SessionClosedError):
            s.set_mode(Mode.MONITORING)
        with self.assertRaises(SessionClosedError):
            s.drag_start(DeviceKind.DETECTOR, 8)
        with self.assertRaises(SessionClosedError):
            s.drop(1.0, 1.0, PLAN)

    def test_reopen_starts_clean(self):
        s = _session(Mode.EDIT)
        s.drag_start(DeviceKind.DETECTOR, 8)
        s.close()
        s.open(Mode.MONITORING)
        self.assertIsNone(s.drag)
        self.assertEqual(s.mode, Mode.MONITORING)


if __name__ == "__main__":
    unittest.main()
