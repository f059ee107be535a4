"""
Google Pub/Sub sink.

Publishes log events through the Pub/Sub REST ``topics.publish`` method.
Works against the local emulator when ``PUBSUB_EMULATOR_HOST`` is set.
"""

import asyncio
import base64
import time
from typing import Any, Dict, Optional

import aiohttp
import structlog
from aiofiles import open as aio_open

from ..config import PubSubSettings
from ..models.log_event import LogEvent
from .base import EventSink, PublishResult

logger = structlog.get_logger(__name__)


class PubSubSink(EventSink):
    """
    Async Pub/Sub publisher.

    Handles:
    - Session lifecycle
    - Message encoding (base64 wire JSON)
    - Mapping HTTP outcomes to PublishResult
    """

    def __init__(self, settings: PubSubSettings):
        self.settings = settings
        self.session: Optional[aiohttp.ClientSession] = None
        self._closed = False

        logger.info(
            "Pub/Sub sink initialized",
            publish_url=settings.publish_url,
            emulator=bool(settings.emulator_host),
        )

    def _get_session(self) -> aiohttp.ClientSession:
        """Open the HTTP session on first use, on the running loop."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
            )
            logger.info("Pub/Sub session opened")
        return self.session

    async def close(self) -> bool:
        """Close the HTTP session; later publishes fail."""
        self._closed = True

        if self.session is not None:
            try:
                await self.session.close()
            except (aiohttp.ClientError, OSError) as e:
                logger.error("Failed to close Pub/Sub session", error=str(e))
                return False
            finally:
                self.session = None

        logger.info("Pub/Sub sink closed")
        return True

    def _build_payload(self, event: LogEvent) -> Dict[str, Any]:
        data = base64.b64encode(event.to_wire()).decode("ascii")
        return {"messages": [{"data": data}]}

    async def _read_access_token(self) -> Optional[str]:
        """
        Current bearer token.

        A token file is re-read on every publish so an external refresher
        (e.g. a metadata-server sidecar) can rotate short-lived tokens.
        """
        if self.settings.access_token_file:
            async with aio_open(self.settings.access_token_file, "r") as f:
                return (await f.read()).strip() or None
        return self.settings.access_token

    def _build_headers(self, access_token: Optional[str]) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "apilogger-pubsub/1.0",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def publish(self, event: LogEvent) -> PublishResult:
        """
        Publish one event.

        Returns:
            PublishResult carrying the server message ID on success or the
            failure reason otherwise
        """
        if self._closed:
            return PublishResult(success=False, error_message="Pub/Sub sink closed")

        try:
            access_token = await self._read_access_token()
        except OSError as e:
            return PublishResult(
                success=False,
                error_message=f"Cannot read access token file: {e}",
            )

        start = time.perf_counter()
        try:
            async with self._get_session().post(
                self.settings.publish_url,
                json=self._build_payload(event),
                headers=self._build_headers(access_token),
            ) as response:
                if 200 <= response.status < 300:
                    body = await response.json(content_type=None)
                    message_ids = (body or {}).get("messageIds") or []
                    message_id = message_ids[0] if message_ids else None

                    logger.debug(
                        "Published API log event",
                        message_id=message_id,
                        request_id=event.request_id,
                        duration_ms=round((time.perf_counter() - start) * 1000, 2),
                    )
                    return PublishResult(success=True, message_id=message_id)

                error_text = await response.text()
                return PublishResult(
                    success=False,
                    error_message=f"Pub/Sub returned {response.status}: {error_text[:200]}",
                )

        except asyncio.TimeoutError:
            return PublishResult(
                success=False,
                error_message=f"Publish timed out after {self.settings.timeout_seconds}s",
            )
        except (aiohttp.ClientError, ValueError) as e:
            return PublishResult(success=False, error_message=f"{type(e).__name__}: {e}")
