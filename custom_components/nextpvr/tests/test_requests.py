"""
Tests for requests.py: parameter encoding, result classification, retry loop.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp

from custom_components.nextpvr.errors import BackendOperationError, TransportError
from custom_components.nextpvr.requests import (
    ApiResult,
    ResultKind,
    _process_response,
    call_service,
    classify,
    encode_params,
    make_request,
    service_url,
    unwrap,
)

from .test_common import BASE_URL, FakeBackend


def _failing_session(exc: BaseException) -> MagicMock:
    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(side_effect=exc)
    session_cm.__aexit__ = AsyncMock(return_value=False)
    return session_cm


class TestEncoding(unittest.TestCase):

    def test_service_url(self):
        self.assertEqual(service_url(BASE_URL), f"{BASE_URL}/service")
        self.assertEqual(service_url(BASE_URL + "/"), f"{BASE_URL}/service")

    def test_encode_params_drops_none_and_renders_bools(self):
        encoded = encode_params({"a": None, "b": True, "c": False, "d": 5})
        self.assertEqual(encoded, {"b": "true", "c": "false", "d": "5"})


class TestClassify(unittest.TestCase):

    def test_ok_stat(self):
        result = classify({"stat": "ok", "x": 1})
        self.assertTrue(result.ok)
        self.assertEqual(result.payload["x"], 1)

    def test_missing_stat_is_ok_for_reads(self):
        self.assertIs(classify({"channels": []}).kind, ResultKind.OK)

    def test_missing_stat_fails_when_strict(self):
        result = classify({}, strict=True)
        self.assertIs(result.kind, ResultKind.BACKEND_ERROR)
        self.assertEqual(result.reason, "missing status flag")

    def test_fail_stat_carries_message(self):
        result = classify({"stat": "fail", "message": "no such recording"})
        self.assertIs(result.kind, ResultKind.BACKEND_ERROR)
        self.assertEqual(result.reason, "no such recording")

    def test_nested_error_message(self):
        result = classify({"stat": "fail", "error": {"msg": "bad sid"}})
        self.assertEqual(result.reason, "bad sid")

    def test_non_object_body_is_backend_error(self):
        self.assertIs(classify(["unexpected"]).kind, ResultKind.BACKEND_ERROR)


class TestUnwrap(unittest.TestCase):

    def test_success_returns_payload(self):
        self.assertEqual(unwrap(ApiResult.success({"a": 1}), "do it"), {"a": 1})

    def test_transport_error_reraised(self):
        cause = TransportError("down")
        with self.assertRaises(TransportError) as ctx:
            unwrap(ApiResult.transport_error(cause), "do it")
        self.assertIs(ctx.exception, cause)

    def test_backend_error_names_identifier(self):
        with self.assertRaises(BackendOperationError) as ctx:
            unwrap(ApiResult.backend_error({}, "nope"), "delete the recording", identifier="12")
        self.assertIn("Failed to delete the recording for id 12", str(ctx.exception))
        self.assertEqual(ctx.exception.identifier, "12")
        self.assertEqual(ctx.exception.reason, "nope")


class TestCallService(unittest.IsolatedAsyncioTestCase):

    async def test_builds_query_with_sid(self):
        backend = FakeBackend({"channel.list": {"channels": []}})
        with backend.patch():
            result = await call_service(BASE_URL, "channel.list", {"x": True}, sid="s1")

        self.assertTrue(result.ok)
        self.assertEqual(backend.calls[0], {"method": "channel.list", "x": "true", "sid": "s1"})

    async def test_transport_error_becomes_tagged_result(self):
        backend = FakeBackend({"channel.list": TransportError("refused")})
        with backend.patch():
            result = await call_service(BASE_URL, "channel.list")

        self.assertIs(result.kind, ResultKind.TRANSPORT_ERROR)
        self.assertIsInstance(result.cause, TransportError)


class TestMakeRequest(unittest.IsolatedAsyncioTestCase):

    async def test_timeout_retried_with_growing_timeout(self):
        with patch("custom_components.nextpvr.requests.aiohttp.ClientSession") as mock_session:
            mock_session.return_value = _failing_session(asyncio.TimeoutError())
            with self.assertRaises(TransportError):
                await make_request(f"{BASE_URL}/service", timeout=10, max_attempts=3)

        self.assertEqual(mock_session.call_count, 3)
        totals = [c.kwargs["timeout"].total for c in mock_session.call_args_list]
        self.assertEqual(totals, [10, 20, 30])

    async def test_client_error_is_transport_error(self):
        with patch("custom_components.nextpvr.requests.aiohttp.ClientSession") as mock_session:
            mock_session.return_value = _failing_session(aiohttp.ClientConnectionError("refused"))
            with self.assertRaises(TransportError):
                await make_request(f"{BASE_URL}/service")

        self.assertEqual(mock_session.call_count, 1)


class TestProcessResponse(unittest.IsolatedAsyncioTestCase):

    async def test_non_200_is_transport_error(self):
        response = MagicMock(status=500)
        response.text = AsyncMock(return_value="server error")
        with self.assertRaises(TransportError):
            await _process_response(response, BASE_URL)

    async def test_unlabelled_json_is_decoded(self):
        response = MagicMock(status=200)
        response.json = AsyncMock(return_value={"stat": "ok"})
        self.assertEqual(await _process_response(response, BASE_URL), {"stat": "ok"})
        response.json.assert_awaited_once_with(content_type=None)

    async def test_garbage_body_is_transport_error(self):
        response = MagicMock(status=200, headers={"Content-Type": "text/html"})
        response.json = AsyncMock(side_effect=ValueError("not json"))
        with self.assertRaises(TransportError):
            await _process_response(response, BASE_URL)
