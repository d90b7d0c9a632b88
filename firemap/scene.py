from __future__ import annotations
import logging
from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import Qt, QRectF, QPointF, Signal
from PySide6.QtGui import QPainter, QColor, QPixmap, QFont
from PySide6.QtWidgets import (
    QGraphicsScene, QGraphicsView, QGraphicsPixmapItem, QGraphicsTextItem
)

from .models import DeviceKind, DragContext, Mode
from .session import ConsoleSession
from .items import DeviceMarker
from .hud import ModeHUD
from .utils import (BG_COLOR, EMPTY_TEXT, HINT_TEXT, MIME_DEVICE,
                    Rect, fit_rect, percent_to_point)

logger = logging.getLogger(__name__)

NO_PLAN_TEXT = "등록된 도면 이미지가 없습니다."
NO_PLAN_HINT = "현장 관리에서 이미지를 등록해주세요."
LOADING_TEXT = "불러오는 중…"


class PlanScene(QGraphicsScene):
    deviceClicked = Signal(str, int)
    deviceDropped = Signal(object)      # PendingWrite

    def __init__(self, session: ConsoleSession, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.session = session
        self.setItemIndexMethod(QGraphicsScene.NoIndex)
        self.setSceneRect(0, 0, 800, 600)
        self._source: Optional[QPixmap] = None
        self._plan_item: Optional[QGraphicsPixmapItem] = None
        self._empty_item: Optional[QGraphicsTextItem] = None
        self._hint_item: Optional[QGraphicsTextItem] = None
        self._markers: Dict[Tuple[str, int], DeviceMarker] = {}
        self.loading = False
        session.on_mode_changed(lambda _mode: self.apply_mode())

    # ---------- plan ----------
    @property
    def has_plan(self) -> bool:
        return self._source is not None and not self._source.isNull()

    def set_plan(self, pixmap: Optional[QPixmap]):
        self._source = pixmap if pixmap is not None and not pixmap.isNull() else None
        self.relayout()

    def set_loading(self, loading: bool):
        self.loading = loading
        self._update_empty_state()

    def set_viewport_size(self, w: float, h: float):
        if w <= 0 or h <= 0:
            return
        self.setSceneRect(0, 0, w, h)
        self.relayout()

    def plan_rect(self) -> Optional[Rect]:
        """Прямоугольник изображения плана в координатах сцены; меряется заново при каждом вызове."""
        if self._plan_item is None:
            return None
        r = self._plan_item.sceneBoundingRect()
        return Rect(r.left(), r.top(), r.width(), r.height())

    def relayout(self):
        if self._plan_item is not None:
            self.removeItem(self._plan_item)
            self._plan_item = None
        if self.has_plan:
            sr = self.sceneRect()
            fr = fit_rect(self._source.width(), self._source.height(), sr.width(), sr.height())
            scaled = self._source.scaled(max(1, int(fr.width)), max(1, int(fr.height)),
                                         Qt.IgnoreAspectRatio, Qt.SmoothTransformation)
            self._plan_item = QGraphicsPixmapItem(scaled)
            self._plan_item.setPos(QPointF(fr.left, fr.top))
            self._plan_item.setZValue(0)
            self._plan_item.setAcceptedMouseButtons(Qt.NoButton)
            self.addItem(self._plan_item)
        self._update_empty_state()
        self.refresh_markers()

    def _update_empty_state(self):
        for it in (self._empty_item, self._hint_item):
            if it is not None:
                self.removeItem(it)
        self._empty_item = self._hint_item = None
        if self.has_plan and not self.loading:
            return
        sr = self.sceneRect()
        text = LOADING_TEXT if self.loading else NO_PLAN_TEXT
        self._empty_item = self._centered_text(text, EMPTY_TEXT, 12, sr.center().y())
        if not self.loading and self.session.editing:
            self._hint_item = self._centered_text(NO_PLAN_HINT, HINT_TEXT, 10, sr.center().y() + 28)

    def _centered_text(self, text: str, color: str, size: int, cy: float) -> QGraphicsTextItem:
        it = QGraphicsTextItem(text)
        it.setDefaultTextColor(QColor(color))
        it.setFont(QFont("", size))
        br = it.boundingRect()
        it.setPos(self.sceneRect().center().x() - br.width() / 2, cy - br.height() / 2)
        self.addItem(it)
        return it

    # ---------- markers ----------
    def markers(self) -> List[DeviceMarker]:
        return list(self._markers.values())

    def marker_for(self, kind: str, device_id: int) -> Optional[DeviceMarker]:
        return self._markers.get((kind, device_id))

    def refresh_markers(self):
        for m in self._markers.values():
            m.stop()
            self.removeItem(m)
        self._markers.clear()
        rect = self.plan_rect()
        if rect is None:
            return
        for kind in DeviceKind.ALL:
            for dev in self.session.state.list_placed(kind):
                m = DeviceMarker(dev)
                x, y = percent_to_point(dev.position[0], dev.position[1], rect)
                m.setPos(QPointF(x, y))
                self.addItem(m)
                self._markers[(kind, dev.id)] = m
        self.apply_mode()

    def apply_mode(self):
        """EDIT = маркеры перетаскиваются; MONITORING = клик открывает диалог."""
        editable = self.session.editing
        for m in self._markers.values():
            m.set_editable(editable)
        self._update_empty_state()

    def marker_clicked(self, kind: str, device_id: int):
        if self.session.mode != Mode.MONITORING:
            return
        if self.session.click_marker(kind, device_id) is not None:
            self.deviceClicked.emit(kind, device_id)

    def drawBackground(self, painter: QPainter, rect: QRectF):
        painter.fillRect(rect, QColor(BG_COLOR))

    # ---- DnD ----
    def _accepts(self, event) -> bool:
        return (self.session.is_open and self.session.editing and self.has_plan
                and event.mimeData().hasFormat(MIME_DEVICE))

    def dragEnterEvent(self, event):
        if self._accepts(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragMoveEvent(self, event):
        if self._accepts(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dragLeaveEvent(self, event):
        event.accept()

    def dropEvent(self, event):
        if not self._accepts(event):
            event.ignore(); return
        try:
            ctx = DragContext.decode(bytes(event.mimeData().data(MIME_DEVICE).data()))
        except ValueError as e:
            logger.warning("Ignoring drop: %s", e)
            event.ignore(); return
        if self.session.drag != ctx:
            # чужой или устаревший контекст перетаскивания
            event.ignore(); return
        pos = event.scenePos()
        if self.drop_at(pos.x(), pos.y()) is None:
            event.ignore(); return
        event.acceptProposedAction()

    def drop_at(self, px: float, py: float):
        rect = self.plan_rect()
        if rect is None:
            self.session.drag_end()
            return None
        try:
            ticket = self.session.drop(px, py, rect)
        except KeyError:
            logger.warning("Dropped device is no longer in the directory")
            return None
        if ticket is None:
            return None
        self.refresh_markers()
        self.deviceDropped.emit(ticket)
        return ticket


class PlanView(QGraphicsView):
    def __init__(self, scene: PlanScene):
        super().__init__(scene)
        self.setRenderHint(QPainter.Antialiasing, True)
        self.setRenderHint(QPainter.SmoothPixmapTransform, True)
        self.setViewportUpdateMode(QGraphicsView.BoundingRectViewportUpdate)
        self.setHorizontalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setVerticalScrollBarPolicy(Qt.ScrollBarAlwaysOff)
        self.setAlignment(Qt.AlignLeft | Qt.AlignTop)
        self.setAcceptDrops(True)
        self.setFrameShape(QGraphicsView.NoFrame)

        # переключатель режима + легенда
        self.hud = ModeHUD(self, scene.session)
        self.hud.adjustSize()
        self.hud.show()
        self.hud.raise_()
        self.hud.reposition()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        vp = self.viewport()
        scene = self.scene()
        if isinstance(scene, PlanScene):
            scene.set_viewport_size(vp.width(), vp.height())
        if hasattr(self, "hud") and self.hud:
            self.hud.reposition()
