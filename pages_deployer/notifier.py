# notifier.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from .errors import NotificationError, response_details
from .models import NotificationPayload
from .settings import Settings

logger = logging.getLogger("pages_deployer.notifier")


class ResultNotifier:
    """
    Delivers the deployment result to the evaluation callback.

    One attempt per entry of the backoff schedule. Before attempt n+1 the
    notifier sleeps ``backoff[n-1]`` seconds; nothing is slept after the last
    attempt. Only an HTTP 200 counts as delivered.
    """

    def __init__(
        self,
        settings: Settings,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        backoff: Optional[Sequence[float]] = None,
    ):
        self.evaluation_url = settings.EVALUATION_URL
        self.timeout = settings.NOTIFY_TIMEOUT_SECONDS
        self.backoff = list(backoff if backoff is not None else settings.NOTIFY_BACKOFF_SECONDS)
        self.sleep = sleep

    @property
    def max_attempts(self) -> int:
        return len(self.backoff)

    async def notify(self, payload: NotificationPayload) -> int:
        """POST the payload until a 200 comes back; return the number of attempts used."""
        if not self.evaluation_url:
            raise NotificationError("EVALUATION_URL is not configured")

        body = payload.model_dump()
        last_error = None
        logger.info(f"[NOTIFY] Notifying evaluation server at {self.evaluation_url}")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_attempts + 1):
                logger.info(f"[NOTIFY] Attempt {attempt}/{self.max_attempts}")
                try:
                    resp = await client.post(self.evaluation_url, json=body, headers={"Content-Type": "application/json"})
                    if resp.status_code == 200:
                        logger.info(f"[NOTIFY] Notification succeeded on attempt {attempt}")
                        return attempt
                    last_error = {"status_code": resp.status_code, "body": response_details(resp)}
                    logger.warning(f"[NOTIFY] Attempt {attempt} got HTTP {resp.status_code}")
                except httpx.RequestError as e:
                    last_error = {"error": repr(e)}
                    logger.warning(f"[NOTIFY] Request error attempt {attempt}: {e!r}")

                if attempt < self.max_attempts:
                    delay = self.backoff[attempt - 1]
                    logger.info(f"[NOTIFY] Waiting {delay}s before retry...")
                    await self.sleep(delay)

        logger.error("[NOTIFY] Failed to notify evaluation server after retries.")
        raise NotificationError(
            f"Failed to report to evaluation URL after {self.max_attempts} attempts",
            details=last_error,
        )
