"""Fire-and-forget notification sinks for metadata, version and conflict events."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from common.constants import DEFAULT_NOTIFY_TIMEOUT_SECONDS
from common.logging_config import get_logger
from metastore.utils import to_iso, utc_now

logger = get_logger(__name__)


class NotificationSink(ABC):
    @abstractmethod
    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        pass

    def close(self) -> None:
        pass


class NullNotificationSink(NotificationSink):
    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        pass


class LoggingNotificationSink(NotificationSink):
    """Writes every event to the log. Used when no monitoring endpoint is configured."""

    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        logger.info(f"Event {event_kind}: {payload}")


class HttpNotificationSink(NotificationSink):
    """
    Posts events as JSON to a monitoring service.

    Each event goes to ``{base_url}/api/events/{event_kind}`` with the API key
    in the ``X-API-Key`` header. Delivery failures are logged and dropped.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_NOTIFY_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key

        self.base_url = base_url.rstrip('/')
        self.session = client or httpx.Client(timeout=timeout)
        self._headers = headers
        logger.info(f"Initialized HttpNotificationSink [base_url={self.base_url}]")

    def notify(self, event_kind: str, payload: Dict[str, Any]) -> None:
        body = {
            "event": event_kind,
            "timestamp": to_iso(utc_now()),
            "payload": payload,
        }
        try:
            response = self.session.post(
                f"{self.base_url}/api/events/{event_kind}",
                json=body,
                headers=self._headers,
            )
            response.raise_for_status()
            logger.debug(f"Delivered event {event_kind} status={response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to deliver event {event_kind}: {e}")

    def close(self) -> None:
        self.session.close()


def notify_safely(sink: Optional[NotificationSink], event_kind: str, payload: Dict[str, Any]) -> None:
    """
    Send an event without letting any sink failure reach the caller.
    """
    if sink is None:
        return
    try:
        sink.notify(event_kind, payload)
    except Exception as e:
        logger.warning(f"Notification sink failed for {event_kind}: {e}", exc_info=True)
