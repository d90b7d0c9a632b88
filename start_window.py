# start_window.py
from __future__ import annotations
import logging
from typing import List, Optional
from PySide6.QtCore import Qt, QSettings
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QFrame, QPushButton, QListWidget,
    QListWidgetItem, QMessageBox, QLabel
)

from firemap.models import Market, Mode
from firemap.registry import SupabaseClient, MarketAPI, RegistryError
from map_console import ConsoleWindow

logger = logging.getLogger(__name__)

# ========= THEME (dark) =========
ACCENT           = "#22D3EE"
ACCENT_HOVER     = "#1CC3DB"
PANEL_BG         = "rgba(11, 18, 32, 0.80)"
PANEL_STROKE     = "rgba(120, 162, 255, 0.35)"
PANEL_RADIUS     = 14
BTN_RADIUS       = 10
FONT_FAMILY      = "Segoe UI, Malgun Gothic, Roboto, sans-serif"
TEXT_MAIN        = "#E6E7EA"
# ================================

RECENT_LIMIT = 12


class StartWindow(QWidget):
    """Выбор рынка: консоль открывается в режиме 관제 или 편집."""

    def __init__(self, market_api: Optional[MarketAPI] = None, autoload: bool = True):
        super().__init__()
        self.setObjectName("StartRoot")
        self.setWindowTitle("통합 관제 · 시장 선택")
        self.resize(900, 640)
        self.market_api = market_api if market_api is not None else MarketAPI(SupabaseClient())
        self.console: Optional[ConsoleWindow] = None
        self._markets: List[Market] = []

        root = QVBoxLayout(self); root.setContentsMargins(28, 28, 28, 28); root.setSpacing(16)
        title = QLabel("Fire Map Console"); title.setObjectName("Brand")
        root.addWidget(title)

        card = QFrame(self); card.setObjectName("MarketsCard")
        vc = QVBoxLayout(card); vc.setContentsMargins(24, 20, 24, 20); vc.setSpacing(10)
        cap = QLabel("시장 목록"); cap.setObjectName("CardTitle"); vc.addWidget(cap)
        self.list_markets = QListWidget(); self.list_markets.setObjectName("MarketList")
        vc.addWidget(self.list_markets, 1)

        row = QHBoxLayout(); row.setSpacing(10)
        self.btn_monitor = QPushButton("관제 모드로 열기")
        self.btn_edit = QPushButton("편집 모드로 열기")
        self.btn_reload = QPushButton("새로고침")
        for b in (self.btn_monitor, self.btn_edit, self.btn_reload):
            b.setProperty("class", "Action")
            b.setCursor(Qt.PointingHandCursor)
            b.setMinimumHeight(36)
            row.addWidget(b)
        vc.addLayout(row)
        root.addWidget(card, 1)

        self.btn_monitor.clicked.connect(lambda: self._open_selected(Mode.MONITORING))
        self.btn_edit.clicked.connect(lambda: self._open_selected(Mode.EDIT))
        self.btn_reload.clicked.connect(self.load_markets)
        self.list_markets.itemDoubleClicked.connect(lambda _it: self._open_selected(Mode.MONITORING))

        self._apply_qss()
        if autoload:
            self.load_markets()

    def _apply_qss(self):
        self.setStyleSheet(f"""
        QWidget#StartRoot {{
            background: #0B1220;
            color: {TEXT_MAIN};
            font-family: {FONT_FAMILY};
        }}
        #Brand {{ font-size: 18px; font-weight: 700; color: #E2E8F0; }}
        #MarketsCard {{
            background: {PANEL_BG};
            border: 1px solid {PANEL_STROKE};
            border-radius: {PANEL_RADIUS}px;
        }}
        #CardTitle {{ color: {TEXT_MAIN}; font-weight: 700; }}
        QPushButton[class="Action"] {{
            background: {ACCENT}; color: #06202A;
            border: none; border-radius: {BTN_RADIUS}px;
            padding: 8px 14px; font-weight: 700;
        }}
        QPushButton[class="Action"]:hover {{ background: {ACCENT_HOVER}; }}
        #MarketList {{
            background: rgba(255,255,255,0.06);
            color: {TEXT_MAIN};
            border: 1px solid {PANEL_STROKE};
            border-radius: 10px; padding: 6px;
        }}
        #MarketList::item {{ padding: 7px 10px; }}
        #MarketList::item:selected {{ background: rgba(34, 211, 238, 0.20); border-radius: 6px; }}
        """)

    # ---------- DATA ----------
    def load_markets(self):
        try:
            markets = self.market_api.get_list()
        except RegistryError as e:
            logger.warning("Failed to load markets: %s", e)
            QMessageBox.critical(self, "오류", f"시장 목록을 불러오지 못했습니다.\n{e}")
            markets = []
        self.set_markets(markets)

    def set_markets(self, markets: List[Market]):
        self._markets = list(markets)
        # недавно открытые сверху
        recent = self._recent()
        self._markets.sort(key=lambda m: recent.index(m.name) if m.name in recent else len(recent))
        self.list_markets.clear()
        for m in self._markets:
            text = m.name if m.has_plan else f"{m.name}  (도면 없음)"
            li = QListWidgetItem(text)
            li.setData(Qt.UserRole, m.name)
            self.list_markets.addItem(li)
        if self._markets:
            self.list_markets.setCurrentRow(0)

    def selected_market(self) -> Optional[Market]:
        row = self.list_markets.currentRow()
        if row < 0 or row >= len(self._markets):
            return None
        return self._markets[row]

    def _recent(self) -> List[str]:
        st = QSettings("FireMap", "Console")
        return list(st.value("recent", [], list) or [])

    def _push_recent(self, name: str):
        st = QSettings("FireMap", "Console")
        names = self._recent()
        if name in names: names.remove(name)
        names.insert(0, name)
        st.setValue("recent", names[:RECENT_LIMIT])

    # ---------- ACTIONS ----------
    def _open_selected(self, mode: str):
        market = self.selected_market()
        if market is None:
            QMessageBox.information(self, "시장 선택", "먼저 시장을 선택해주세요.")
            return
        self.open_console(market, mode)

    def open_console(self, market: Market, mode: str, **kwargs) -> ConsoleWindow:
        self._push_recent(market.name)
        console = ConsoleWindow(market, mode, on_close=self._on_console_closed, **kwargs)
        # статусы после 오탐/복구 меняются только в реестре: перечитать
        console.remediated.connect(lambda *_: console.reload())
        self.console = console
        self.console.show()
        self.hide()
        return self.console

    def _on_console_closed(self):
        self.console = None
        self.show()
