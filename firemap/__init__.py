from .models import Mode, DeviceKind, DeviceStatus, Device, Market, DragContext, DeviceDirectory
from .utils import Rect, drop_to_percent, clamp_percent
from .state import PlacementState, PendingWrite
from .session import ConsoleSession, SessionClosedError
from .registry import (RegistryError, SupabaseClient, DeviceRegistry, MarketAPI,
                       RemediationAPI, make_registries)
from .loader import DeviceDirectoryLoader

__all__ = [
    "Mode", "DeviceKind", "DeviceStatus", "Device", "Market", "DragContext", "DeviceDirectory",
    "Rect", "drop_to_percent", "clamp_percent",
    "PlacementState", "PendingWrite", "ConsoleSession", "SessionClosedError",
    "RegistryError", "SupabaseClient", "DeviceRegistry", "MarketAPI", "RemediationAPI",
    "make_registries", "DeviceDirectoryLoader",
]
