from __future__ import annotations
import logging
from typing import NamedTuple, Tuple

logger = logging.getLogger(__name__)

# ===== Markers =====
MARKER_SIZE = 32.0
HALO_SIZE = 32.0
PULSE_MS = 900

# ===== Colors (fill, border) =====
NORMAL_FILL = "#16A34A"
NORMAL_BORDER = "#4ADE80"
FIRE_FILL = "#DC2626"
FIRE_BORDER = "#F87171"
FIRE_HALO = "#EF4444"
FAULT_FILL = "#F97316"
FAULT_BORDER = "#FDBA74"

# ===== Plan visuals =====
BG_COLOR = "#1A1A1A"
EMPTY_TEXT = "#64748B"
HINT_TEXT = "#60A5FA"

MIME_DEVICE = "application/x-firemap-device"


class Rect(NamedTuple):
    left: float
    top: float
    width: float
    height: float


def drop_to_percent(px: float, py: float, rect: Rect) -> Tuple[float, float]:
    """Позиция курсора -> проценты от левого верхнего угла плана (без ограничения)."""
    if rect.width <= 0 or rect.height <= 0:
        raise ValueError(f"degenerate plan rect: {rect}")
    x = (px - rect.left) / rect.width * 100.0
    y = (py - rect.top) / rect.height * 100.0
    return x, y


def clamp_percent(x: float, y: float) -> Tuple[float, float]:
    cx = min(max(x, 0.0), 100.0)
    cy = min(max(y, 0.0), 100.0)
    if (cx, cy) != (x, y):
        logger.debug("Drop outside plan (%.2f, %.2f) clamped to (%.2f, %.2f)", x, y, cx, cy)
    return cx, cy


def percent_to_point(x: float, y: float, rect: Rect) -> Tuple[float, float]:
    return rect.left + x / 100.0 * rect.width, rect.top + y / 100.0 * rect.height


def fit_rect(img_w: float, img_h: float, area_w: float, area_h: float) -> Rect:
    """Вписать изображение в область с сохранением пропорций (по центру)."""
    if img_w <= 0 or img_h <= 0 or area_w <= 0 or area_h <= 0:
        return Rect(0.0, 0.0, max(area_w, 0.0), max(area_h, 0.0))
    k = min(area_w / img_w, area_h / img_h)
    w, h = img_w * k, img_h * k
    return Rect((area_w - w) / 2.0, (area_h - h) / 2.0, w, h)
