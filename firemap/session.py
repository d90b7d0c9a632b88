from __future__ import annotations
import logging
from typing import Callable, List, Optional

from .models import Device, DragContext, Mode
from .state import PendingWrite, PlacementState
from .utils import Rect, clamp_percent, drop_to_percent

logger = logging.getLogger(__name__)


class SessionClosedError(RuntimeError):
    pass


class ConsoleSession:
    """
    Состояние открытой консоли: режим, текущее перетаскивание, открытый диалог.

        [Closed] --open(mode)--> [Open]
        [Open] --set_mode/toggle_mode--> [Open: другой режим]
        [Open] --drag_start--> [Open, dragging]
        [Open, dragging] --drop--> [Open]      (позиция обновлена, запись отправлена)
        [Open, dragging] --drag_end--> [Open]  (без изменений)
        [Open] --click (только MONITORING)--> [Open, dialog]
        [Open, dialog] --close_dialog--> [Open]
        [Open] --close--> [Closed]
    """

    def __init__(self, state: Optional[PlacementState] = None):
        self.state = state if state is not None else PlacementState()
        self.mode: str = Mode.MONITORING
        self.is_open = False
        self.drag: Optional[DragContext] = None
        self.dialog_device: Optional[Device] = None
        self._mode_listeners: List[Callable[[str], None]] = []

    def on_mode_changed(self, cb: Callable[[str], None]):
        self._mode_listeners.append(cb)

    # ---------- lifecycle ----------
    def open(self, initial_mode: str = Mode.MONITORING):
        if initial_mode not in (Mode.MONITORING, Mode.EDIT):
            raise ValueError(f"unknown mode: {initial_mode}")
        self.mode = initial_mode
        self.drag = None
        self.dialog_device = None
        self.is_open = True

    def close(self):
        self.is_open = False
        self.drag = None
        self.dialog_device = None
        self.state.clear()
        self._mode_listeners.clear()

    def _require_open(self):
        if not self.is_open:
            raise SessionClosedError("console session is closed")

    # ---------- mode ----------
    @property
    def editing(self) -> bool:
        return self.mode == Mode.EDIT

    def set_mode(self, mode: str):
        self._require_open()
        if mode not in (Mode.MONITORING, Mode.EDIT):
            raise ValueError(f"unknown mode: {mode}")
        if mode == self.mode:
            return
        self.mode = mode
        self.drag = None
        if mode == Mode.EDIT:
            self.dialog_device = None
        logger.info("Console mode -> %s", mode)
        for cb in list(self._mode_listeners):
            cb(mode)

    def toggle_mode(self):
        self.set_mode(Mode.MONITORING if self.editing else Mode.EDIT)

    # ---------- drag & drop ----------
    def drag_start(self, kind: str, device_id: int) -> bool:
        self._require_open()
        if not self.editing:
            return False
        self.drag = DragContext(kind, device_id)
        return True

    def drag_end(self):
        self.drag = None

    def drop(self, px: float, py: float, rect: Rect) -> Optional[PendingWrite]:
        """Бросок на план: None, если режим не EDIT или перетаскивания нет."""
        self._require_open()
        ctx, self.drag = self.drag, None
        if not self.editing or ctx is None:
            return None
        x, y = clamp_percent(*drop_to_percent(px, py, rect))
        return self.state.record_drop(ctx.kind, ctx.device_id, x, y)

    # ---------- dialog ----------
    def click_marker(self, kind: str, device_id: int) -> Optional[Device]:
        self._require_open()
        if self.editing:
            return None
        self.dialog_device = self.state.get(kind, device_id)
        return self.dialog_device

    def close_dialog(self):
        self.dialog_device = None
