"""Notification channels — ntfy push delivery."""

from __future__ import annotations

import abc

import aiohttp
import structlog

from alerting.core.config import NtfyConfig
from alerting.notify.exceptions import DeliveryFailedError
from alerting.notify.types import AlertMessage

logger = structlog.get_logger(__name__)


class NotificationChannel(abc.ABC):
    """Base class for alert delivery channels."""

    @abc.abstractmethod
    async def send(self, msg: AlertMessage) -> None:
        """Deliver *msg*; raise ``DeliveryFailedError`` if it was not accepted."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class NtfyChannel(NotificationChannel):
    """Publishes alerts to an ntfy topic (title, priority and tags as headers)."""

    def __init__(self, config: NtfyConfig) -> None:
        if not config.topic:
            raise ValueError("ntfy topic is not configured")
        self._url = f"{config.base_url.rstrip('/')}/{config.topic}"
        self._token = config.token.get_secret_value()
        self._timeout = aiohttp.ClientTimeout(total=config.timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    @property
    def url(self) -> str:
        return self._url

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def _headers(self, msg: AlertMessage) -> dict[str, str]:
        headers = {
            "Title": msg.title,
            "Priority": msg.priority,
            "Tags": ",".join(msg.tags),
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def send(self, msg: AlertMessage) -> None:
        try:
            session = self._get_session()
            async with session.post(
                self._url,
                data=msg.body.encode("utf-8"),
                headers=self._headers(msg),
            ) as resp:
                if 200 <= resp.status < 300:
                    return
                body = await resp.text()
                logger.warning("ntfy_send_failed", status=resp.status, body=body[:200])
                raise DeliveryFailedError(f"ntfy returned {resp.status}")
        except aiohttp.ClientError as exc:
            raise DeliveryFailedError(f"ntfy request failed: {exc}") from exc
        except TimeoutError as exc:
            raise DeliveryFailedError("ntfy request timed out") from exc

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
