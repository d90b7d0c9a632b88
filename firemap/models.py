from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple


class Mode:
    MONITORING = "monitoring"
    EDIT = "edit"


class DeviceKind:
    RECEIVER = "receiver"
    REPEATER = "repeater"
    DETECTOR = "detector"

    # порядок отрисовки и порядок групп в боковой панели
    ALL = (RECEIVER, REPEATER, DETECTOR)


class DeviceStatus:
    NORMAL = "normal"
    FIRE = "fire"
    FAULT = "fault"
    COMM_ERROR = "comm_error"


# строки статусов из реестра -> DeviceStatus
_STATUS_ALIASES: Dict[str, str] = {
    "화재": DeviceStatus.FIRE, "fire": DeviceStatus.FIRE,
    "고장": DeviceStatus.FAULT, "fault": DeviceStatus.FAULT,
    "에러": DeviceStatus.COMM_ERROR, "error": DeviceStatus.COMM_ERROR,
    "통신이상": DeviceStatus.COMM_ERROR, "communicationerror": DeviceStatus.COMM_ERROR,
    "comm_error": DeviceStatus.COMM_ERROR,
}

STATUS_TEXT = {
    DeviceStatus.NORMAL: "정상",
    DeviceStatus.FIRE: "화재",
    DeviceStatus.FAULT: "고장",
    DeviceStatus.COMM_ERROR: "통신이상",
}

KIND_TEXT = {
    DeviceKind.DETECTOR: "화재감지기",
    DeviceKind.REPEATER: "중계기",
    DeviceKind.RECEIVER: "수신기",
}


def parse_status(raw) -> str:
    if raw is None:
        return DeviceStatus.NORMAL
    key = str(raw).strip().replace(" ", "")
    return _STATUS_ALIASES.get(key, _STATUS_ALIASES.get(key.lower(), DeviceStatus.NORMAL))


def _opt_float(v) -> Optional[float]:
    if v is None or v == "":
        return None
    return float(v)


@dataclass
class Device:
    """Запись прибора одного из трёх видов; вид задаётся тегом ``kind``."""
    kind: str
    id: int
    market_name: str = ""
    detector_id: str = ""
    repeater_id: str = ""
    mac_address: str = ""
    receiver_mac: str = ""
    status: str = DeviceStatus.NORMAL
    position: Optional[Tuple[float, float]] = None
    memo: str = ""
    store_name: Optional[str] = None

    @property
    def is_placed(self) -> bool:
        return self.position is not None

    @property
    def label(self) -> str:
        if self.kind == DeviceKind.RECEIVER:
            return "M"
        if self.kind == DeviceKind.REPEATER:
            return self.repeater_id or "R"
        return self.detector_id or self.repeater_id or "R"

    @property
    def sidebar_label(self) -> str:
        if self.kind == DeviceKind.RECEIVER:
            return f"MAC: {self.mac_address}"
        if self.kind == DeviceKind.REPEATER:
            return f"ID: {self.repeater_id}"
        return f"{self.receiver_mac}-{self.repeater_id}-{self.detector_id}"

    @property
    def tooltip(self) -> str:
        if self.kind == DeviceKind.DETECTOR:
            head = f"감지기 {self.detector_id}"
        elif self.kind == DeviceKind.REPEATER:
            head = f"중계기 {self.repeater_id}"
        else:
            head = "수신기"
        return f"{head}\n{STATUS_TEXT.get(self.status, self.status)}"

    def moved_to(self, position: Optional[Tuple[float, float]]) -> "Device":
        return replace(self, position=position)

    @classmethod
    def from_row(cls, kind: str, row: Dict) -> "Device":
        x = _opt_float(row.get("x_pos"))
        y = _opt_float(row.get("y_pos"))
        store = row.get("store_name")
        stores = row.get("stores")
        if not store and isinstance(stores, list) and stores:
            store = (stores[0] or {}).get("name")
        return cls(
            kind=kind,
            id=int(row["id"]),
            market_name=str(row.get("market_name") or ""),
            detector_id=str(row.get("detector_id") or ""),
            repeater_id=str(row.get("repeater_id") or ""),
            mac_address=str(row.get("mac_address") or ""),
            receiver_mac=str(row.get("receiver_mac") or ""),
            status=parse_status(row.get("status")),
            position=(x, y) if x is not None and y is not None else None,
            memo=str(row.get("memo") or ""),
            store_name=store or None,
        )


@dataclass
class Market:
    name: str
    id: Optional[int] = None
    map_image: Optional[str] = None
    address: str = ""

    @property
    def has_plan(self) -> bool:
        return bool(self.map_image)

    @classmethod
    def from_row(cls, row: Dict) -> "Market":
        return cls(
            name=str(row.get("name") or ""),
            id=row.get("id"),
            map_image=row.get("map_image") or None,
            address=str(row.get("address") or ""),
        )


@dataclass(frozen=True)
class DragContext:
    kind: str
    device_id: int

    def encode(self) -> bytes:
        return f"{self.kind}:{self.device_id}".encode("utf-8")

    @classmethod
    def decode(cls, data: bytes) -> "DragContext":
        kind, _, raw_id = bytes(data).decode("utf-8").partition(":")
        if kind not in DeviceKind.ALL or not raw_id:
            raise ValueError(f"bad drag payload: {data!r}")
        return cls(kind, int(raw_id))


@dataclass
class DeviceDirectory:
    receivers: list = field(default_factory=list)
    repeaters: list = field(default_factory=list)
    detectors: list = field(default_factory=list)
    failed: Tuple[str, ...] = ()

    def of(self, kind: str) -> list:
        return {
            DeviceKind.RECEIVER: self.receivers,
            DeviceKind.REPEATER: self.repeaters,
            DeviceKind.DETECTOR: self.detectors,
        }[kind]
