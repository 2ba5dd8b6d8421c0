"""
Device Relay Client
===================

HTTP client for the edge controller's local API (the Raspberry Pi in front
of the Arduino). Every call is a single JSON ``POST`` with the shared
``X-API-Key`` header and a hard deadline; nothing is retried.

Endpoints on the device:

* ``POST /api/thresholds/bulk`` with the changed threshold fields
* ``POST /api/manual`` with ``{actuator, state, pwm?}``
* ``POST /api/auto`` with ``{}``

``requests`` timeouts bound individual socket operations, not the whole
exchange, so the call itself runs on a worker thread and the caller waits
at most ``timeout`` seconds for it. A response arriving after that is
logged and discarded; it is never applied.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, Mapping

import requests

from app.domain.exceptions import RelayTimeout, RelayUnavailable

logger = logging.getLogger(__name__)


class DeviceRelayClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 5.0,
        session: requests.Session | None = None,
        max_workers: int = 4,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="relay")

    def push_thresholds(self, changed: Mapping[str, Any]) -> Dict[str, Any]:
        return self._call("/api/thresholds/bulk", dict(changed))

    def send_command(self, command: Mapping[str, Any]) -> Dict[str, Any]:
        return self._call("/api/manual", dict(command))

    def resume_auto(self) -> Dict[str, Any]:
        return self._call("/api/auto", {})

    def _call(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        future = self._executor.submit(self._post, url, body)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            future.add_done_callback(lambda f, u=url: self._discard_late(u, f))
            logger.warning("Relay to %s timed out after %.1fs", url, self.timeout)
            raise RelayTimeout("Greenhouse controller did not respond in time", detail={"url": url}) from None
        except requests.exceptions.Timeout as exc:
            logger.warning("Relay to %s timed out: %s", url, exc)
            raise RelayTimeout("Greenhouse controller did not respond in time", detail={"url": url}) from exc
        except requests.exceptions.RequestException as exc:
            logger.warning("Relay to %s failed: %s", url, exc)
            raise RelayUnavailable("Failed to communicate with greenhouse controller", detail={"url": url}) from exc

    def _post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self._session.post(
            url,
            json=body,
            headers={"X-API-Key": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {"raw": response.text}
        return data if isinstance(data, dict) else {"result": data}

    @staticmethod
    def _discard_late(url: str, future) -> None:
        if future.cancelled():
            return
        logger.info("Discarding late relay outcome from %s (%s)", url, "error" if future.exception() else "ok")

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._session.close()
