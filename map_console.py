#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from __future__ import annotations
import sys
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Optional

from PySide6.QtCore import Qt, QObject, Signal
from PySide6.QtGui import QAction, QKeySequence, QPixmap
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QToolBar, QStatusBar, QMessageBox, QDockWidget, QStyle, QLabel, QWidgetAction
)
from shiboken6 import isValid

from firemap import config
from firemap.models import Device, Market, Mode, DeviceDirectory, DeviceKind, KIND_TEXT
from firemap.session import ConsoleSession
from firemap.state import PendingWrite
from firemap.loader import DeviceDirectoryLoader
from firemap.registry import (SupabaseClient, RemediationAPI, RegistryError,
                              make_registries, fetch_plan_image)
from firemap.scene import PlanScene, PlanView
from firemap.palette import UnplacedPanel
from firemap.dialog import ActionDialog

logger = logging.getLogger(__name__)


class _Bridge(QObject):
    """Результаты из рабочих потоков возвращаются в GUI-поток через сигналы."""
    loaded = Signal(int, object, object)    # generation, DeviceDirectory, bytes | None
    saved = Signal(object, object)          # PendingWrite, Exception | None
    reported = Signal(str, int, str, object)  # kind, id, action, Exception | None


class ConsoleWindow(QMainWindow):
    closed = Signal()
    saveFailed = Signal(str, int, str)      # kind, id, message
    remediated = Signal(str, int, str)      # kind, id, action

    def __init__(self, market: Market, initial_mode: str = Mode.MONITORING,
                 on_close: Optional[Callable[[], None]] = None,
                 registries: Optional[Dict] = None,
                 remediation: Optional[RemediationAPI] = None,
                 autoload: bool = True):
        super().__init__()
        self.market = market
        self.on_close = on_close
        self.setWindowTitle(f"{market.name} 통합 관제 맵")
        self.resize(1280, 860)

        client = SupabaseClient() if registries is None or remediation is None else None
        self.registries = registries if registries is not None else make_registries(client)
        self.remediation = remediation if remediation is not None else RemediationAPI(client)
        self.loader = DeviceDirectoryLoader(self.registries)

        # 1) Сессия/сцена/вью
        self.session = ConsoleSession()
        self.session.open(initial_mode)
        self.scene = PlanScene(self.session)
        self.view = PlanView(self.scene)
        self.setCentralWidget(self.view)

        # 2) Неразмещённые приборы (только в режиме редактирования)
        self.sidebar = UnplacedPanel(self.session, self)
        self.sidebar_dock = QDockWidget("미배치 기기", self)
        self.sidebar_dock.setWidget(self.sidebar)
        self.sidebar_dock.setAllowedAreas(Qt.RightDockWidgetArea | Qt.LeftDockWidgetArea)
        self.sidebar_dock.setFeatures(QDockWidget.NoDockWidgetFeatures)
        self.sidebar_dock.setMinimumWidth(280)
        self.addDockWidget(Qt.RightDockWidgetArea, self.sidebar_dock)

        # 3) Потоки: загрузка и все записи в реестр
        self._pool = ThreadPoolExecutor(max_workers=max(1, config.SAVE_WORKERS) + 1,
                                        thread_name_prefix="firemap")
        self._bridge = _Bridge(self)
        self._bridge.loaded.connect(self._on_loaded)
        self._bridge.saved.connect(self.handle_save_result)
        self._bridge.reported.connect(self._on_reported)
        self._dialog: Optional[ActionDialog] = None
        self._load_gen = 0

        # 4) Подписки
        self.scene.deviceDropped.connect(self._persist)
        self.scene.deviceClicked.connect(self._open_dialog)
        self.session.on_mode_changed(self._on_mode_changed)

        # 5) Тулбар/статус
        self._build_toolbar()
        self.setStatusBar(QStatusBar(self))
        self._on_mode_changed(self.session.mode)

        if autoload:
            self.reload()

    def _build_toolbar(self):
        tb = QToolBar("Панель", self)
        tb.setMovable(False)
        tb.setToolButtonStyle(Qt.ToolButtonTextBesideIcon)
        self.addToolBar(Qt.TopToolBarArea, tb)
        style = self.style()

        title = QLabel(f"  {self.market.name}  ")
        title.setStyleSheet("font-weight:700;")
        wa = QWidgetAction(self)
        wa.setDefaultWidget(title)
        tb.addAction(wa)
        tb.addSeparator()

        self.act_toggle = QAction(style.standardIcon(QStyle.SP_DesktopIcon), "모드 전환", self)
        self.act_toggle.setShortcut(QKeySequence("Ctrl+M"))
        self.act_toggle.triggered.connect(self.session.toggle_mode)

        self.act_reload = QAction(style.standardIcon(QStyle.SP_BrowserReload), "새로고침", self)
        self.act_reload.setShortcut(QKeySequence("F5"))
        self.act_reload.triggered.connect(self.reload)

        self.act_close = QAction(style.standardIcon(QStyle.SP_DialogCloseButton), "닫기", self)
        self.act_close.setShortcut(QKeySequence("Esc"))
        self.act_close.triggered.connect(self.close)

        for act in (self.act_toggle, self.act_reload, self.act_close):
            tb.addAction(act)

    # ---------- загрузка ----------
    def reload(self):
        """Свежая загрузка приборов и плана; кэша между открытиями нет."""
        if not self.session.is_open:
            return
        self._load_gen += 1
        gen = self._load_gen
        self.scene.set_loading(True)
        self._status("불러오는 중…")
        fut = self._pool.submit(self._load_job, self.market)
        fut.add_done_callback(lambda f, g=gen: self._emit_loaded(g, f))

    def _load_job(self, market: Market):
        directory = self.loader.load(market.name)
        image = None
        if market.map_image:
            try:
                image = fetch_plan_image(market.map_image)
            except RegistryError as e:
                logger.warning("Plan image for %r unavailable: %s", market.name, e)
        return directory, image

    def _emit_loaded(self, gen: int, fut):
        if fut.cancelled() or not isValid(self._bridge):
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("Loading market %r failed: %s", self.market.name, exc)
            self._bridge.loaded.emit(gen, DeviceDirectory(), None)
            return
        directory, image = fut.result()
        self._bridge.loaded.emit(gen, directory, image)

    def _on_loaded(self, gen: int, directory: DeviceDirectory, image: Optional[bytes]):
        if gen != self._load_gen:
            return
        self.apply_directory(directory, image)

    def apply_directory(self, directory: DeviceDirectory, image: Optional[bytes] = None):
        if not self.session.is_open:
            return
        self.session.state.replace(directory)
        pix = None
        if image:
            pix = QPixmap()
            if not pix.loadFromData(image):
                logger.warning("Plan image for %r could not be decoded", self.market.name)
                pix = None
        self.scene.loading = False
        self.scene.set_plan(pix)
        self.sidebar.refresh()
        self._update_status()

    # ---------- сохранение координат ----------
    def _persist(self, ticket: PendingWrite):
        self.sidebar.refresh()
        self._status("저장 중…")
        registry = self.registries[ticket.kind]
        x, y = ticket.position
        fut = self._pool.submit(registry.save_coordinates, ticket.device_id, x, y)
        fut.add_done_callback(lambda f, t=ticket: self._emit_saved(t, f))

    def _emit_saved(self, ticket: PendingWrite, fut):
        if fut.cancelled() or not isValid(self._bridge):
            return
        self._bridge.saved.emit(ticket, fut.exception())

    def handle_save_result(self, ticket: PendingWrite, error: Optional[BaseException]):
        if not self.session.is_open:
            return
        state = self.session.state
        try:
            before = state.get(ticket.kind, ticket.device_id).position
        except KeyError:
            return
        if error is None:
            state.confirm(ticket)
            self._status("좌표가 저장되었습니다.")
        else:
            state.rollback(ticket)
            self._status("저장 실패: 위치를 되돌렸습니다.")
            logger.warning("Saving %s #%s failed, position reverted: %s",
                           ticket.kind, ticket.device_id, error)
        if state.get(ticket.kind, ticket.device_id).position != before:
            self.scene.refresh_markers()
            self.sidebar.refresh()
        if error is not None:
            msg = f"{KIND_TEXT[ticket.kind]} 위치 저장에 실패했습니다.\n{error}"
            self.saveFailed.emit(ticket.kind, ticket.device_id, str(error))
            QMessageBox.warning(self, "저장 실패", msg)

    # ---------- диалог ----------
    def make_dialog(self, device: Device) -> ActionDialog:
        dlg = ActionDialog(device, parent=self)
        dlg.on_action = lambda action: self._report(device.kind, device.id, action)
        self._dialog = dlg
        return dlg

    def _open_dialog(self, kind: str, device_id: int):
        device = self.session.dialog_device
        if device is None:
            return
        dlg = self.make_dialog(device)
        dlg.exec()
        self._dialog = None
        self.session.close_dialog()

    def _report(self, kind: str, device_id: int, action: str):
        self._status("처리 중…")
        fut = self._pool.submit(self.remediation.report, kind, device_id, action, self.market.name)
        fut.add_done_callback(lambda f: self._emit_reported(kind, device_id, action, f))

    def _emit_reported(self, kind: str, device_id: int, action: str, fut):
        if fut.cancelled() or not isValid(self._bridge):
            return
        self._bridge.reported.emit(kind, device_id, action, fut.exception())

    def _on_reported(self, kind: str, device_id: int, action: str, error: Optional[BaseException]):
        if not self.session.is_open:
            return
        dlg = self._dialog
        if dlg is not None and isValid(dlg):
            dev = dlg.model.device
            if (dev.kind, dev.id) == (kind, device_id):
                dlg.finish_action(action, error)
        elif error is not None:
            logger.warning("Remediation %s failed for %s #%s: %s", action, kind, device_id, error)
        if error is None:
            self.remediated.emit(kind, device_id, action)

    # ---------- режим/статус ----------
    def _on_mode_changed(self, mode: str):
        self.sidebar_dock.setVisible(mode == Mode.EDIT)
        if mode == Mode.EDIT:
            self.sidebar.refresh()
        self._update_status()

    def _status(self, text: str):
        self.statusBar().showMessage(text, 3000)

    def _update_status(self):
        state = self.session.state
        placed = sum(len(state.list_placed(k)) for k in DeviceKind.ALL)
        total = sum(len(state.devices(k)) for k in DeviceKind.ALL)
        self.statusBar().showMessage(
            f"모드: {'편집' if self.session.editing else '관제'} | "
            f"배치: {placed}/{total} | "
            f"도면: {'있음' if self.scene.has_plan else '없음'}"
        )

    def closeEvent(self, event):
        if self.session.is_open:
            for m in self.scene.markers():
                m.stop()
            self.session.close()
            self._pool.shutdown(wait=False, cancel_futures=True)
            self.closed.emit()
            if self.on_close is not None:
                self.on_close()
        super().closeEvent(event)


def main():
    logging.basicConfig(
        level=config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not config.supabase_enabled():
        logger.warning("SUPABASE_URL / SUPABASE_KEY are not set; registry calls will fail")
    app = QApplication(sys.argv)
    from start_window import StartWindow
    win = StartWindow()
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
