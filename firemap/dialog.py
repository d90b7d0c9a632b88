from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout, QLabel, QPushButton, QMessageBox, QFrame
)

from .models import Device, DeviceKind, DeviceStatus, KIND_TEXT, STATUS_TEXT
from .registry import RemediationAPI
from .items import marker_style

logger = logging.getLogger(__name__)

NORMAL_STATE_TEXT = "정상 상태"
NO_STORE_TEXT = "위치 미지정"
NO_MEMO_TEXT = "비고 없음"

ACTION_LABELS = {
    RemediationAPI.FALSE_ALARM: "오탐",
    RemediationAPI.RECOVERED: "복구",
}


@dataclass(frozen=True)
class ActionDialogModel:
    """Что показывает диалог для снимка прибора; без Qt, чтобы проверять отдельно."""
    device: Device

    @property
    def kind_text(self) -> str:
        return KIND_TEXT[self.device.kind]

    @property
    def status_text(self) -> str:
        return STATUS_TEXT.get(self.device.status, self.device.status)

    @property
    def store_text(self) -> str:
        return self.device.store_name or NO_STORE_TEXT

    @property
    def memo_text(self) -> str:
        return self.device.memo or NO_MEMO_TEXT

    @property
    def can_remediate(self) -> bool:
        return self.device.status in (DeviceStatus.FIRE, DeviceStatus.FAULT)

    def details(self) -> List[Tuple[str, str]]:
        d = self.device
        mac = d.mac_address if d.kind == DeviceKind.RECEIVER else d.receiver_mac
        rows = [("MAC:", mac)]
        if d.repeater_id:
            rows.append(("중계기 ID:", d.repeater_id))
        if d.detector_id:
            rows.append(("감지기 ID:", d.detector_id))
        return rows

    def actions(self) -> List[Tuple[str, str]]:
        """(action, button text) для доступных действий; пусто для нормального статуса."""
        if not self.can_remediate:
            return []
        return [
            (RemediationAPI.FALSE_ALARM, "오탐 처리"),
            (RemediationAPI.RECOVERED, "상태 복구"),
        ]


class ActionDialog(QDialog):
    def __init__(self, device: Device, on_action: Optional[Callable[[str], None]] = None, parent=None):
        super().__init__(parent)
        self.model = ActionDialogModel(device)
        self.on_action = on_action
        self.completed_action: Optional[str] = None
        self.pending_action: Optional[str] = None
        self.action_buttons: List[QPushButton] = []
        self.setWindowTitle("기기 상세 및 제어")
        self.setMinimumWidth(380)

        root = QVBoxLayout(self)
        root.setContentsMargins(14, 14, 14, 14)
        root.setSpacing(12)

        # ------- Заголовок -------
        head = QFrame(self)
        head.setStyleSheet("QFrame{background:#0F172A; border:1px solid #334155; border-radius:6px;}")
        hl = QHBoxLayout(head)
        badge = QLabel(device.label)
        badge.setAlignment(Qt.AlignCenter)
        badge.setFixedSize(48, 48)
        badge.setStyleSheet(f"background:{marker_style(device.kind, device.status).fill};"
                            "color:white; font-weight:700; border-radius:24px;")
        hl.addWidget(badge)
        self.lbl_store = QLabel(self.model.store_text)
        self.lbl_store.setStyleSheet("font-weight:700; font-size:15px;")
        self.lbl_kind = QLabel(f"{self.model.kind_text}  |  상태: {self.model.status_text}")
        col = QVBoxLayout(); col.addWidget(self.lbl_store); col.addWidget(self.lbl_kind)
        hl.addLayout(col, 1)
        root.addWidget(head)

        # ------- Подробности -------
        body = QFrame(self)
        fd = QFormLayout(body)
        fd.setLabelAlignment(Qt.AlignRight)
        for label, value in self.model.details():
            fd.addRow(label, QLabel(value))
        self.lbl_memo = QLabel(self.model.memo_text)
        self.lbl_memo.setWordWrap(True)
        self.lbl_memo.setStyleSheet("color:#64748B; font-size:11px;")
        fd.addRow(self.lbl_memo)
        root.addWidget(body)

        # ------- Кнопки -------
        buttons = QHBoxLayout()
        buttons.addStretch(1)
        actions = self.model.actions()
        if actions:
            for action, text in actions:
                btn = QPushButton(text)
                btn.clicked.connect(lambda _=False, A=action: self._run_action(A))
                self.action_buttons.append(btn)
                buttons.addWidget(btn)
            self.btn_normal = None
        else:
            self.btn_normal = QPushButton(NORMAL_STATE_TEXT)
            self.btn_normal.setEnabled(False)
            buttons.addWidget(self.btn_normal)
        self.btn_close = QPushButton("닫기")
        self.btn_close.clicked.connect(self.reject)
        buttons.addWidget(self.btn_close)
        root.addLayout(buttons)

    def _set_busy(self, busy: bool):
        for btn in self.action_buttons:
            btn.setEnabled(not busy)

    def _run_action(self, action: str):
        """Запуск действия; результат приходит в finish_action (сразу, если on_action не задан)."""
        if self.pending_action is not None:
            return
        if self.on_action is None:
            self.finish_action(action, None)
            return
        self.pending_action = action
        self._set_busy(True)
        self.on_action(action)

    def finish_action(self, action: str, error: Optional[BaseException] = None):
        self.pending_action = None
        self._set_busy(False)
        if error is not None:
            logger.warning("Remediation %s failed for %s #%s: %s",
                           action, self.model.device.kind, self.model.device.id, error)
            QMessageBox.critical(self, "처리 실패", str(error))
            return
        self.completed_action = action
        QMessageBox.information(self, "처리 완료", f"{ACTION_LABELS[action]} 처리가 완료되었습니다.")
        self.accept()
