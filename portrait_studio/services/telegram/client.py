"""
Telegram alert sender using httpx sync client.
Alerts are best effort: disabled when token or chat is not configured, errors are logged.
"""
import time
import logging

import httpx

from portrait_studio.core.config import settings
from portrait_studio.utils.metrics import telegram_requests_total


logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


class TelegramClient:
    def __init__(self, token: str | None = None, chat_id: str | None = None, timeout: float | None = None) -> None:
        self._token = settings.telegram_bot_token if token is None else token
        self._chat_id = settings.telegram_alert_chat_id if chat_id is None else chat_id
        self._timeout = settings.http_client_timeout if timeout is None else timeout
        self._base_url = f"{TELEGRAM_API_BASE}/bot{self._token}"

    @property
    def enabled(self) -> bool:
        return bool(self._token and self._chat_id)

    def send_alert(self, text: str) -> bool:
        """Send a Markdown message to the alert chat. Returns True when Telegram accepted it."""
        if not self.enabled:
            logger.debug("telegram_alert_skipped")
            return False
        start = time.time()
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(
                    f"{self._base_url}/sendMessage",
                    json={"chat_id": self._chat_id, "text": text, "parse_mode": "Markdown"},
                )
            ok = resp.status_code == 200 and resp.json().get("ok") is True
        except (httpx.HTTPError, ValueError) as e:
            telegram_requests_total.labels(method="sendMessage", status="error").inc()
            logger.warning("telegram_alert_failed", extra={"error": str(e), "latency_ms": int((time.time() - start) * 1000)})
            return False
        telegram_requests_total.labels(method="sendMessage", status="success" if ok else "error").inc()
        if not ok:
            logger.warning("telegram_alert_rejected", extra={"status_code": resp.status_code})
        return ok
