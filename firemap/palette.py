from __future__ import annotations
from typing import Dict, List, Optional
from PySide6.QtCore import Qt, QRectF, QPoint, QSize
from PySide6.QtGui import QPainter, QPen, QColor
from PySide6.QtWidgets import QWidget, QHBoxLayout, QVBoxLayout, QApplication, QScrollArea, QLabel

from .models import Device, DeviceKind
from .items import marker_style, start_device_drag, SHAPE_CIRCLE, SHAPE_ROUNDED

GROUP_TITLES = {
    DeviceKind.RECEIVER: "수신기 (Square)",
    DeviceKind.REPEATER: "중계기 (Rounded)",
    DeviceKind.DETECTOR: "감지기 (Circle)",
}
ALL_PLACED_TEXT = "모두 배치됨"


class DeviceTile(QWidget):
    ICON = 12

    def __init__(self, device: Device, session, parent: QWidget | None = None):
        super().__init__(parent)
        self.device = device
        self.session = session
        self._press_pos: Optional[QPoint] = None
        self.setObjectName("DeviceTile")
        self.setCursor(Qt.SizeAllCursor)
        self.setToolTip(device.tooltip)
        self.setMinimumHeight(32)

    def sizeHint(self) -> QSize:
        return QSize(200, 32)

    def paintEvent(self, ev):
        p = QPainter(self); p.setRenderHint(QPainter.Antialiasing)
        r = self.rect().adjusted(0, 2, -1, -3)
        p.setPen(QPen(QColor("#475569"), 1))
        p.setBrush(QColor("#334155"))
        p.drawRoundedRect(r, 4, 4)

        st = marker_style(self.device.kind, self.device.status)
        icon = QRectF(10, (self.height() - self.ICON) / 2, self.ICON, self.ICON)
        p.setPen(Qt.NoPen)
        p.setBrush(QColor(st.fill))
        if st.shape == SHAPE_CIRCLE:
            p.drawEllipse(icon)
        elif st.shape == SHAPE_ROUNDED:
            p.drawRoundedRect(icon, 3, 3)
        else:
            p.drawRoundedRect(icon, 1, 1)

        p.setPen(QColor("#E2E8F0"))
        text_r = QRectF(icon.right() + 8, 0, self.width() - icon.right() - 14, self.height())
        text = p.fontMetrics().elidedText(self.device.sidebar_label, Qt.ElideRight, int(text_r.width()))
        p.drawText(text_r, Qt.AlignVCenter | Qt.AlignLeft, text)

    def mousePressEvent(self, ev):
        self._press_pos = ev.pos() if ev.button() == Qt.LeftButton else None
        super().mousePressEvent(ev)

    def mouseMoveEvent(self, ev):
        if self._press_pos is None:
            return
        if (ev.pos() - self._press_pos).manhattanLength() < QApplication.startDragDistance():
            return
        self._press_pos = None
        start_device_drag(self, self.session, self.device)

    def mouseReleaseEvent(self, ev):
        self._press_pos = None
        super().mouseReleaseEvent(ev)


class UnplacedPanel(QWidget):
    """Боковая панель режима редактирования: неразмещённые приборы по видам."""

    def __init__(self, session, parent=None):
        super().__init__(parent)
        self.session = session
        self._tiles: Dict[str, List[DeviceTile]] = {k: [] for k in DeviceKind.ALL}
        self._build_ui()

    def _build_ui(self):
        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        head = QWidget(self)
        head.setStyleSheet("background:#1E293B; border-bottom:1px solid #334155;")
        hl = QHBoxLayout(head)
        hl.setContentsMargins(12, 10, 12, 10)
        title = QLabel("미배치 기기 목록")
        title.setStyleSheet("color:#FFFFFF; font-weight:700;")
        tag = QLabel("Drag & Drop")
        tag.setStyleSheet("color:#94A3B8; background:#0F172A; padding:1px 6px; border-radius:4px; font-size:11px;")
        hl.addWidget(title); hl.addStretch(1); hl.addWidget(tag)
        root.addWidget(head)

        self.scroll = QScrollArea(self)
        self.scroll.setWidgetResizable(True)
        self.scroll.setStyleSheet("QScrollArea{background:#1E293B; border:none;}")
        root.addWidget(self.scroll, 1)

        self.content = QWidget()
        self.content.setObjectName("UnplacedContent")
        self.content.setStyleSheet("QWidget#UnplacedContent{background:#1E293B;}")
        self.scroll.setWidget(self.content)
        self.content_layout = QVBoxLayout(self.content)
        self.content_layout.setContentsMargins(10, 10, 10, 10)
        self.content_layout.setSpacing(4)

    def _clear_content(self):
        while self.content_layout.count():
            item = self.content_layout.takeAt(0)
            w = item.widget()
            if w:
                # плитка может быть источником идущего QDrag: не deleteLater
                w.hide()
                w.setParent(None)
        for k in self._tiles:
            self._tiles[k] = []

    def tiles(self, kind: str) -> List[DeviceTile]:
        return list(self._tiles[kind])

    def refresh(self):
        self._clear_content()
        for kind in DeviceKind.ALL:
            cap = QLabel(GROUP_TITLES[kind])
            cap.setStyleSheet("color:#94A3B8; font-size:11px; font-weight:700; margin-top:8px;")
            self.content_layout.addWidget(cap)
            unplaced = self.session.state.list_unplaced(kind)
            if not unplaced:
                empty = QLabel(ALL_PLACED_TEXT)
                empty.setStyleSheet("color:#475569; font-size:11px; padding-left:8px;")
                self.content_layout.addWidget(empty)
                continue
            for dev in unplaced:
                tile = DeviceTile(dev, self.session)
                self._tiles[kind].append(tile)
                self.content_layout.addWidget(tile)
        self.content_layout.addStretch(1)
