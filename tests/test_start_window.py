import os
import unittest
from unittest import mock

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6.QtWidgets import QApplication, QMessageBox

from firemap.models import DeviceKind, Market, Mode
from firemap.registry import RegistryError, RemediationAPI
from start_window import StartWindow

app = QApplication.instance() or QApplication([])


class _FakeMarkets:
    def __init__(self, markets=(), error=None):
        self.markets = list(markets)
        self.error = error

    def get_list(self):
        if self.error is not None:
            raise self.error
        return list(self.markets)


class _EmptyRegistry:
    def get_list(self, market_name):
        return []

    def save_coordinates(self, device_id, x, y):
        pass


class StartWindowTests(unittest.TestCase):
    def setUp(self):
        # QSettings пользователя не трогаем
        for name, value in (("_recent", ["B"]), ("_push_recent", None)):
            patcher = mock.patch.object(StartWindow, name, return_value=value)
            patcher.start()
            self.addCleanup(patcher.stop)

    def _window(self, api):
        w = StartWindow(market_api=api)
        self.addCleanup(w.close)
        return w

    def test_recent_markets_listed_first(self):
        w = self._window(_FakeMarkets([Market("A"), Market("B", map_image="https://x/b.png")]))
        self.assertEqual(w.selected_market().name, "B")
        self.assertEqual(w.list_markets.count(), 2)
        self.assertIn("(도면 없음)", w.list_markets.item(1).text())

    def test_load_failure_shows_error(self):
        with mock.patch.object(QMessageBox, "critical") as critical:
            w = self._window(_FakeMarkets(error=RegistryError("HTTP 401")))
        critical.assert_called_once()
        self.assertIsNone(w.selected_market())

    def test_console_reloads_after_remediation(self):
        w = self._window(_FakeMarkets([Market("A")]))
        console = w.open_console(Market("A"), Mode.MONITORING,
                                 registries={k: _EmptyRegistry() for k in DeviceKind.ALL},
                                 remediation=mock.Mock(spec=RemediationAPI),
                                 autoload=False)
        self.addCleanup(console.close)
        with mock.patch.object(console, "reload") as reload:
            console.remediated.emit(DeviceKind.DETECTOR, 2, RemediationAPI.RECOVERED)
        reload.assert_called_once_with()

    def test_closing_console_returns_to_picker(self):
        w = self._window(_FakeMarkets([Market("A")]))
        console = w.open_console(Market("A"), Mode.EDIT,
                                 registries={k: _EmptyRegistry() for k in DeviceKind.ALL},
                                 remediation=mock.Mock(spec=RemediationAPI),
                                 autoload=False)
        self.addCleanup(console.close)
        self.assertTrue(w.isHidden())
        console.close()
        self.assertIsNone(w.console)
        self.assertFalse(w.isHidden())


if __name__ == "__main__":
    unittest.main()
