from __future__ import annotations
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QWidget, QHBoxLayout, QToolButton, QLabel, QFrame

from .models import Mode
from .utils import NORMAL_FILL, FIRE_FILL, FAULT_FILL


class ModeHUD(QWidget):
    """Плашка поверх плана: 관제모드 / 편집모드 и легенда статусов."""

    def __init__(self, view, session):
        super().__init__(view.viewport())
        self.view = view
        self.session = session
        self.setObjectName("ModeHUD")
        self.setAttribute(Qt.WA_StyledBackground, True)
        self.setStyleSheet("""
            QWidget#ModeHUD { background: rgba(30,41,59,0.95); border:1px solid #334155; border-radius:10px; }
            QToolButton.mode { border:none; padding:6px 12px; border-radius:6px; color:#CBD5E1; }
            QToolButton.mode:hover { color:#FFFFFF; }
            QToolButton#btn_monitoring:checked { background:#2563EB; color:#FFFFFF; }
            QToolButton#btn_edit:checked { background:#EA580C; color:#FFFFFF; }
            QLabel.legend { color:#CBD5E1; font-size:11px; }
        """)

        lay = QHBoxLayout(self)
        lay.setContentsMargins(6, 6, 10, 6)
        lay.setSpacing(6)

        self.btn_monitoring = QToolButton(self)
        self.btn_edit = QToolButton(self)
        for btn, mode, text, name in (
            (self.btn_monitoring, Mode.MONITORING, "관제모드", "btn_monitoring"),
            (self.btn_edit, Mode.EDIT, "편집모드", "btn_edit"),
        ):
            btn.setObjectName(name)
            btn.setProperty("class", "mode")
            btn.setText(text)
            btn.setCheckable(True)
            btn.setAutoExclusive(True)
            btn.clicked.connect(lambda _=False, M=mode: self._set_mode(M))
            lay.addWidget(btn)

        sep = QFrame(self); sep.setFrameShape(QFrame.VLine); sep.setStyleSheet("color:#475569;")
        lay.addWidget(sep)
        for color, text in ((NORMAL_FILL, "정상"), (FIRE_FILL, "화재"), (FAULT_FILL, "고장")):
            dot = QLabel(self)
            dot.setFixedSize(10, 10)
            dot.setStyleSheet(f"background:{color}; border-radius:5px;")
            lay.addWidget(dot)
            lbl = QLabel(text, self)
            lbl.setProperty("class", "legend")
            lay.addWidget(lbl)

        self.set_checked(session.mode)
        session.on_mode_changed(self.set_checked)
        self.resize(self.sizeHint())

    def set_checked(self, mode: str):
        self.btn_monitoring.setChecked(mode == Mode.MONITORING)
        self.btn_edit.setChecked(mode == Mode.EDIT)

    def _set_mode(self, mode: str):
        self.set_checked(mode)
        if self.session.is_open:
            self.session.set_mode(mode)

    def reposition(self):
        margin = 12
        self.move(margin, margin)
