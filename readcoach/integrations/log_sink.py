#!/usr/bin/env python3
"""
Fire-and-forget client for the participant log endpoint.
Write failures are logged and never reach the learner.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set, Union

import httpx

logger = logging.getLogger(__name__)


class LogSink:
    """Posts `{participantId, type, data}` entries to the log service"""

    def __init__(
        self,
        url: str,
        participant_id: str,
        timeout: float = 10.0,
        transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None,
    ):
        self.url = url
        self.participant_id = participant_id
        self.timeout = timeout
        self._transport = transport
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.participant_id)

    def payload(self, log_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return {'participantId': self.participant_id, 'type': log_type, 'data': data}

    def write(self, log_type: str, data: Dict[str, Any]):
        """Schedule a write on the running loop, or post synchronously without one"""
        if not self.enabled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            self._post_sync(log_type, data)
            return

        task = loop.create_task(self.awrite(log_type, data))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def awrite(self, log_type: str, data: Dict[str, Any]) -> bool:
        if not self.enabled:
            return False
        try:
            transport = self._transport if isinstance(self._transport, httpx.AsyncBaseTransport) else None
            async with httpx.AsyncClient(timeout=self.timeout, transport=transport) as client:
                response = await client.post(self.url, json=self.payload(log_type, data))
                response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning("Participant log write failed (%s): %s", log_type, e)
            return False

    async def drain(self):
        """Wait for scheduled writes to settle"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _post_sync(self, log_type: str, data: Dict[str, Any]):
        try:
            transport = self._transport if isinstance(self._transport, httpx.BaseTransport) else None
            with httpx.Client(timeout=self.timeout, transport=transport) as client:
                client.post(self.url, json=self.payload(log_type, data)).raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Participant log write failed (%s): %s", log_type, e)
