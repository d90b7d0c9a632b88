"""
registry.py -- доступ к реестру приборов через Supabase (PostgREST).

В отличие от фоновой очереди записи, здесь каждая ошибка поднимается как
RegistryError: консоль должна знать о провале сохранения, чтобы откатить
оптимистичное перемещение.
"""
from __future__ import annotations
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Dict, List, Optional

from . import config
from .models import Device, DeviceKind, Market

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Ошибка обращения к внешнему реестру (HTTP, сеть, разбор ответа)."""


class SupabaseClient:
    def __init__(self, url: Optional[str] = None, key: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.url = (url if url is not None else config.SUPABASE_URL).rstrip("/")
        self.key = key if key is not None else config.SUPABASE_KEY
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.key)

    def request(self, method: str, table: str, body=None, params: Optional[Dict] = None):
        """
        Make a PostgREST request and return the parsed JSON body.

        Args:
            method: GET, POST or PATCH
            table:  table name, mapped to /rest/v1/<table>
            body:   JSON body for POST/PATCH
            params: query params (PostgREST filters such as {"id": "eq.3"})

        Raises:
            RegistryError on missing configuration, HTTP errors,
            network failures and unparsable responses.
        """
        path = f"/rest/v1/{table}"
        if not self.enabled:
            raise RegistryError("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")

        url = self.url + path
        if params:
            url += "?" + urllib.parse.urlencode(params, doseq=True)

        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation" if method == "GET" else "return=minimal",
            "User-Agent": "FireMapConsole/1.0",
        }
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(url, data=data, headers=headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            err_body = e.read().decode("utf-8", errors="replace")[:200]
            raise RegistryError(f"{method} {path} HTTP {e.code}: {err_body}") from e
        except (urllib.error.URLError, OSError) as e:
            raise RegistryError(f"{method} {path} failed: {e}") from e

        if not raw:
            return {}
        try:
            return json.loads(raw)
        except ValueError as e:
            raise RegistryError(f"{method} {path}: bad JSON response") from e


_TABLES = {
    DeviceKind.DETECTOR: lambda: config.DETECTOR_TABLE,
    DeviceKind.REPEATER: lambda: config.REPEATER_TABLE,
    DeviceKind.RECEIVER: lambda: config.RECEIVER_TABLE,
}


class DeviceRegistry:
    """getList / saveCoordinates для одного вида приборов."""

    def __init__(self, kind: str, client: SupabaseClient):
        if kind not in _TABLES:
            raise ValueError(f"unknown device kind: {kind}")
        self.kind = kind
        self.client = client

    @property
    def table(self) -> str:
        return _TABLES[self.kind]()

    def get_list(self, market_name: str) -> List[Device]:
        rows = self.client.request("GET", self.table, params={
            "select": "*",
            "market_name": f"eq.{market_name}",
            "order": "id",
        })
        if not isinstance(rows, list):
            raise RegistryError(f"GET {self.table}: expected a list, got {type(rows).__name__}")
        return [Device.from_row(self.kind, r) for r in rows]

    def save_coordinates(self, device_id: int, x: float, y: float) -> None:
        self.client.request("PATCH", self.table,
                            body={"x_pos": x, "y_pos": y},
                            params={"id": f"eq.{device_id}"})
        logger.info("Saved %s #%s at (%.2f, %.2f)", self.kind, device_id, x, y)


class MarketAPI:
    def __init__(self, client: SupabaseClient):
        self.client = client

    def get_list(self) -> List[Market]:
        rows = self.client.request("GET", config.MARKET_TABLE,
                                   params={"select": "*", "order": "name"})
        if not isinstance(rows, list):
            raise RegistryError(f"GET {config.MARKET_TABLE}: expected a list")
        return [Market.from_row(r) for r in rows]


class RemediationAPI:
    FALSE_ALARM = "false_alarm"
    RECOVERED = "recovered"

    def __init__(self, client: SupabaseClient):
        self.client = client

    def report(self, kind: str, device_id: int, action: str, market_name: str = "") -> None:
        if action not in (self.FALSE_ALARM, self.RECOVERED):
            raise ValueError(f"unknown remediation action: {action}")
        self.client.request("POST", config.REMEDIATION_TABLE, body={
            "device_type": kind,
            "device_id": device_id,
            "action": action,
            "market_name": market_name,
        })
        logger.info("Remediation %s reported for %s #%s", action, kind, device_id)


def fetch_plan_image(ref: str, timeout: Optional[float] = None) -> bytes:
    """Байты изображения плана: URL (storage) или локальный путь."""
    timeout = timeout if timeout is not None else config.HTTP_TIMEOUT
    if ref.startswith(("http://", "https://")):
        try:
            with urllib.request.urlopen(ref, timeout=timeout) as resp:
                return resp.read()
        except (urllib.error.URLError, OSError) as e:
            raise RegistryError(f"plan image {ref}: {e}") from e
    try:
        with open(ref, "rb") as f:
            return f.read()
    except OSError as e:
        raise RegistryError(f"plan image {ref}: {e}") from e


def make_registries(client: SupabaseClient) -> Dict[str, DeviceRegistry]:
    return {kind: DeviceRegistry(kind, client) for kind in DeviceKind.ALL}
