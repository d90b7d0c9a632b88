from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import Device, DeviceDirectory, DeviceKind

Position = Optional[Tuple[float, float]]


@dataclass(frozen=True)
class PendingWrite:
    kind: str
    device_id: int
    position: Tuple[float, float]
    seq: int


class PlacementState:
    """
    Три коллекции приборов открытой консоли.

    Перемещение применяется сразу (оптимистично) и ждёт подтверждения.
    Для каждого прибора хранится последнее подтверждённое положение и номер
    записи, которая сейчас видна на плане. Откат возвращает подтверждённое
    положение только если откатываемая запись всё ещё видна; запись,
    перекрытая более поздним перемещением, ничего не меняет.
    """

    def __init__(self, directory: Optional[DeviceDirectory] = None):
        self._devices: Dict[str, Dict[int, Device]] = {k: {} for k in DeviceKind.ALL}
        self._confirmed: Dict[Tuple[str, int], Tuple[Position, int]] = {}
        self._visible_seq: Dict[Tuple[str, int], int] = {}
        self._pending: Dict[Tuple[str, int], int] = {}
        self._seq = 0
        if directory is not None:
            self.replace(directory)

    def replace(self, directory: DeviceDirectory):
        self._confirmed.clear()
        self._visible_seq.clear()
        self._pending.clear()
        for kind in DeviceKind.ALL:
            self._devices[kind] = {d.id: d for d in directory.of(kind)}

    def clear(self):
        self.replace(DeviceDirectory())

    # ---------- queries ----------
    def devices(self, kind: str) -> List[Device]:
        return list(self._devices[kind].values())

    def get(self, kind: str, device_id: int) -> Device:
        return self._devices[kind][device_id]

    def list_placed(self, kind: str) -> List[Device]:
        return [d for d in self._devices[kind].values() if d.is_placed]

    def list_unplaced(self, kind: str) -> List[Device]:
        return [d for d in self._devices[kind].values() if not d.is_placed]

    def is_pending(self, kind: str, device_id: int) -> bool:
        return self._pending.get((kind, device_id), 0) > 0

    def confirmed_position(self, kind: str, device_id: int) -> Position:
        key = (kind, device_id)
        if key in self._confirmed:
            return self._confirmed[key][0]
        return self._devices[kind][device_id].position

    # ---------- mutations ----------
    def record_drop(self, kind: str, device_id: int, x: float, y: float) -> PendingWrite:
        key = (kind, device_id)
        dev = self._devices[kind][device_id]      # KeyError для неизвестного прибора
        if key not in self._confirmed:
            self._confirmed[key] = (dev.position, 0)
        self._seq += 1
        pos = (float(x), float(y))
        self._visible_seq[key] = self._seq
        self._pending[key] = self._pending.get(key, 0) + 1
        self._devices[kind][device_id] = dev.moved_to(pos)
        return PendingWrite(kind, device_id, pos, self._seq)

    def confirm(self, ticket: PendingWrite):
        key = (ticket.kind, ticket.device_id)
        self._settle(key)
        _, confirmed_seq = self._confirmed.get(key, (None, 0))
        if ticket.seq <= confirmed_seq:
            return
        self._confirmed[key] = (ticket.position, ticket.seq)
        # план показывал подтверждённое положение (после отката) -> показать новое
        if self._visible_seq.get(key, 0) <= confirmed_seq:
            self._show(key, ticket.position, ticket.seq)

    def rollback(self, ticket: PendingWrite) -> bool:
        key = (ticket.kind, ticket.device_id)
        self._settle(key)
        if self._visible_seq.get(key) != ticket.seq:
            return False
        pos, seq = self._confirmed.get(key, (None, 0))
        return self._show(key, pos, seq)

    def _show(self, key, pos: Position, seq: int) -> bool:
        kind, device_id = key
        dev = self._devices[kind].get(device_id)
        if dev is None:
            return False
        self._devices[kind][device_id] = dev.moved_to(pos)
        self._visible_seq[key] = seq
        return True

    def _settle(self, key):
        left = self._pending.get(key, 0) - 1
        if left > 0:
            self._pending[key] = left
        else:
            self._pending.pop(key, None)
