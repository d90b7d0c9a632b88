from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from PySide6.QtCore import Qt, QPoint, QMimeData, QByteArray, QVariantAnimation, QEasingCurve
from PySide6.QtGui import QBrush, QColor, QPainter, QPen, QFont, QDrag
from PySide6.QtWidgets import QGraphicsRectItem, QGraphicsEllipseItem, QGraphicsItem, QApplication

from .models import Device, DeviceKind, DeviceStatus, DragContext
from .utils import (MARKER_SIZE, HALO_SIZE, PULSE_MS, MIME_DEVICE,
                    NORMAL_FILL, NORMAL_BORDER, FIRE_FILL, FIRE_BORDER, FIRE_HALO,
                    FAULT_FILL, FAULT_BORDER)

SHAPE_CIRCLE = "circle"
SHAPE_ROUNDED = "rounded"
SHAPE_SQUARE = "square"

_SHAPES = {
    DeviceKind.DETECTOR: SHAPE_CIRCLE,
    DeviceKind.REPEATER: SHAPE_ROUNDED,
    DeviceKind.RECEIVER: SHAPE_SQUARE,
}


@dataclass(frozen=True)
class MarkerStyle:
    shape: str
    fill: str
    border: str
    pulse: bool = False
    halo: bool = False


def marker_style(kind: str, status: str) -> MarkerStyle:
    shape = _SHAPES[kind]
    if status == DeviceStatus.FIRE:
        return MarkerStyle(shape, FIRE_FILL, FIRE_BORDER, pulse=True, halo=True)
    if status in (DeviceStatus.FAULT, DeviceStatus.COMM_ERROR):
        return MarkerStyle(shape, FAULT_FILL, FAULT_BORDER)
    return MarkerStyle(shape, NORMAL_FILL, NORMAL_BORDER)


def start_device_drag(source, session, device: Device) -> bool:
    """QDrag для прибора; контекст перетаскивания живёт только до конца exec()."""
    if not session.drag_start(device.kind, device.id):
        return False
    try:
        drag = QDrag(source)
        mime = QMimeData()
        mime.setData(MIME_DEVICE, QByteArray(DragContext(device.kind, device.id).encode()))
        drag.setMimeData(mime)
        drag.exec(Qt.MoveAction)
    finally:
        session.drag_end()
    return True


class HaloItem(QGraphicsEllipseItem):
    """Красный «пинг» вокруг маркера при пожаре."""

    def __init__(self, parent: QGraphicsItem):
        s = HALO_SIZE
        super().__init__(-s / 2, -s / 2, s, s, parent)
        self.setPen(Qt.NoPen)
        self.setBrush(QBrush(QColor(FIRE_HALO)))
        self.setOpacity(0.75)
        self.setFlag(QGraphicsItem.ItemStacksBehindParent, True)
        self.setAcceptedMouseButtons(Qt.NoButton)

    def set_phase(self, t: float):
        self.setScale(1.0 + t)
        self.setOpacity(0.75 * (1.0 - t))


class DeviceMarker(QGraphicsRectItem):
    def __init__(self, device: Device):
        s = MARKER_SIZE
        super().__init__(-s / 2, -s / 2, s, s)
        self.device = device
        self.style = marker_style(device.kind, device.status)
        self._editable = False
        self._press_pos: Optional[QPoint] = None
        self._dragged = False
        self.setAcceptHoverEvents(True)
        self.setZValue(10)
        self.setToolTip(device.tooltip)
        self.setPen(QPen(QColor(self.style.border), 2))
        self.setBrush(QBrush(QColor(self.style.fill)))

        self.halo: Optional[HaloItem] = HaloItem(self) if self.style.halo else None
        self._anim: Optional[QVariantAnimation] = None
        if self.style.pulse:
            self._anim = QVariantAnimation()
            self._anim.setStartValue(0.0)
            self._anim.setEndValue(1.0)
            self._anim.setDuration(PULSE_MS)
            self._anim.setLoopCount(-1)
            self._anim.setEasingCurve(QEasingCurve.OutCubic)
            self._anim.valueChanged.connect(self._on_pulse)
            self._anim.start()

    @property
    def kind(self) -> str:
        return self.device.kind

    @property
    def pulsing(self) -> bool:
        return self._anim is not None

    def _on_pulse(self, value):
        t = float(value)
        if self.halo is not None:
            self.halo.set_phase(t)
        # сам маркер «дышит» прозрачностью
        self.setOpacity(1.0 - 0.35 * (1.0 - abs(1.0 - 2.0 * t)))

    def stop(self):
        if self._anim is not None:
            self._anim.stop()
            self._anim = None

    def set_editable(self, editable: bool):
        self._editable = editable
        self.setCursor(Qt.SizeAllCursor if editable else Qt.PointingHandCursor)

    @property
    def editable(self) -> bool:
        return self._editable

    def paint(self, painter: QPainter, option, widget=None):
        painter.setRenderHint(QPainter.Antialiasing, True)
        r = self.rect()
        painter.setPen(self.pen())
        painter.setBrush(self.brush())
        if self.style.shape == SHAPE_CIRCLE:
            painter.drawEllipse(r)
        elif self.style.shape == SHAPE_ROUNDED:
            painter.drawRoundedRect(r, 6, 6)
        else:
            painter.drawRoundedRect(r, 2, 2)
        painter.setPen(QColor(255, 255, 255))
        painter.setFont(QFont("", 8, QFont.Bold))
        painter.drawText(r, Qt.AlignCenter, self.device.label)

    def hoverEnterEvent(self, e):
        self.setScale(1.25)
        super().hoverEnterEvent(e)

    def hoverLeaveEvent(self, e):
        self.setScale(1.0)
        super().hoverLeaveEvent(e)

    def mousePressEvent(self, e):
        if e.button() == Qt.LeftButton:
            self._press_pos = e.screenPos()
            self._dragged = False
            e.accept()
            return
        super().mousePressEvent(e)

    def mouseMoveEvent(self, e):
        if not self._editable or self._press_pos is None or self._dragged:
            return
        if (e.screenPos() - self._press_pos).manhattanLength() < QApplication.startDragDistance():
            return
        self._dragged = True
        scene = self.scene()
        if scene is not None:
            start_device_drag(e.widget(), scene.session, self.device)

    def mouseReleaseEvent(self, e):
        was_drag = self._dragged
        self._press_pos = None
        self._dragged = False
        if e.button() != Qt.LeftButton or was_drag:
            return
        scene = self.scene()
        if scene is not None and hasattr(scene, "marker_clicked"):
            scene.marker_clicked(self.kind, self.device.id)
