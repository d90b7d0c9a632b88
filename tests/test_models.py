import unittest

from firemap.models import (Device, DeviceKind, DeviceStatus, DragContext, Market,
                            DeviceDirectory, parse_status)


class ParseStatusTests(unittest.TestCase):
    def test_korean_and_english_aliases(self):
        self.assertEqual(parse_status("화재"), DeviceStatus.FIRE)
        self.assertEqual(parse_status("Fire"), DeviceStatus.FIRE)
        self.assertEqual(parse_status("고장"), DeviceStatus.FAULT)
        self.assertEqual(parse_status("Fault"), DeviceStatus.FAULT)
        self.assertEqual(parse_status("에러"), DeviceStatus.COMM_ERROR)
        self.assertEqual(parse_status("Error"), DeviceStatus.COMM_ERROR)
        self.assertEqual(parse_status("통신이상"), DeviceStatus.COMM_ERROR)
        self.assertEqual(parse_status("CommunicationError"), DeviceStatus.COMM_ERROR)

    def test_unknown_and_missing_are_normal(self):
        self.assertEqual(parse_status("정상"), DeviceStatus.NORMAL)
        self.assertEqual(parse_status("Normal"), DeviceStatus.NORMAL)
        self.assertEqual(parse_status(None), DeviceStatus.NORMAL)


class DeviceFromRowTests(unittest.TestCase):
    def test_detector_row(self):
        d = Device.from_row(DeviceKind.DETECTOR, {
            "id": "7", "market_name": "부평자유시장", "detector_id": "03",
            "repeater_id": "02", "receiver_mac": "AA:BB", "status": "화재",
            "x_pos": 40, "y_pos": "60.5", "memo": "2층", "store_name": "진라도김치",
        })
        self.assertEqual(d.id, 7)
        self.assertEqual(d.status, DeviceStatus.FIRE)
        self.assertEqual(d.position, (40.0, 60.5))
        self.assertEqual(d.label, "03")
        self.assertEqual(d.sidebar_label, "AA:BB-02-03")
        self.assertEqual(d.store_name, "진라도김치")
        self.assertTrue(d.is_placed)

    def test_missing_coordinate_means_unplaced(self):
        d = Device.from_row(DeviceKind.REPEATER, {"id": 1, "repeater_id": "15", "x_pos": 10})
        self.assertIsNone(d.position)
        self.assertFalse(d.is_placed)
        self.assertEqual(d.label, "15")
        self.assertEqual(d.sidebar_label, "ID: 15")

    def test_zero_coordinates_are_placed(self):
        d = Device.from_row(DeviceKind.DETECTOR, {"id": 1, "x_pos": 0, "y_pos": 0})
        self.assertEqual(d.position, (0.0, 0.0))
        self.assertTrue(d.is_placed)

    def test_receiver_label_and_store_from_nested_list(self):
        d = Device.from_row(DeviceKind.RECEIVER, {
            "id": 2, "mac_address": "00:11:22", "stores": [{"name": "약초마을"}],
        })
        self.assertEqual(d.label, "M")
        self.assertEqual(d.sidebar_label, "MAC: 00:11:22")
        self.assertEqual(d.store_name, "약초마을")
        self.assertIn("수신기", d.tooltip)

    def test_moved_to_returns_copy(self):
        d = Device(DeviceKind.DETECTOR, 1)
        moved = d.moved_to((1.0, 2.0))
        self.assertIsNone(d.position)
        self.assertEqual(moved.position, (1.0, 2.0))


class DragContextTests(unittest.TestCase):
    def test_payload_round_trip(self):
        ctx = DragContext(DeviceKind.REPEATER, 42)
        self.assertEqual(DragContext.decode(ctx.encode()), ctx)

    def test_bad_payload_rejected(self):
        with self.assertRaises(ValueError):
            DragContext.decode(b"furniture:1")
        with self.assertRaises(ValueError):
            DragContext.decode(b"detector:")


class MarketAndDirectoryTests(unittest.TestCase):
    def test_market_plan_flag(self):
        self.assertFalse(Market("A").has_plan)
        self.assertTrue(Market.from_row({"name": "B", "map_image": "https://x/plan.png"}).has_plan)
        self.assertFalse(Market.from_row({"name": "C", "map_image": ""}).has_plan)

    def test_directory_of_kind(self):
        det = Device(DeviceKind.DETECTOR, 1)
        directory = DeviceDirectory(detectors=[det])
        self.assertEqual(directory.of(DeviceKind.DETECTOR), [det])
        self.assertEqual(directory.of(DeviceKind.RECEIVER), [])


if __name__ == "__main__":
    unittest.main()
