#!/usr/bin/env python3
"""
Tests for the fire-and-forget participant log client.
"""

import json

import httpx
import pytest

from readcoach.integrations import LogSink


URL = 'http://tutor.test/api/log'


class TestLogSink:

    @pytest.mark.asyncio
    async def test_write_posts_payload(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={'success': True})

        sink = LogSink(URL, 'P1', transport=httpx.MockTransport(handler))
        sink.write('learn', {'score': 3})
        await sink.drain()

        assert bodies == [{'participantId': 'P1', 'type': 'learn', 'data': {'score': 3}}]

    @pytest.mark.asyncio
    async def test_failures_are_not_raised(self):
        def handler(request):
            return httpx.Response(500, json={'error': 'Internal Server Error'})

        sink = LogSink(URL, 'P1', transport=httpx.MockTransport(handler))
        assert await sink.awrite('learn', {}) is False

        sink.write('learn', {})
        await sink.drain()

    @pytest.mark.asyncio
    async def test_unreachable_service(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        sink = LogSink(URL, 'P1', transport=httpx.MockTransport(handler))
        assert await sink.awrite('test', {'score': 1}) is False

    @pytest.mark.asyncio
    async def test_disabled_without_participant(self):
        calls = []
        sink = LogSink(URL, '', transport=httpx.MockTransport(lambda r: calls.append(r)))

        sink.write('learn', {})
        await sink.drain()

        assert not sink.enabled
        assert calls == []

    def test_write_without_loop_posts_synchronously(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={'success': True})

        sink = LogSink(URL, 'P1', transport=httpx.MockTransport(handler))
        sink.write('test', {'score': 4})

        assert bodies == [{'participantId': 'P1', 'type': 'test', 'data': {'score': 4}}]

    def test_sync_failure_is_not_raised(self):
        sink = LogSink(URL, 'P1', transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        sink.write('test', {'score': 4})
