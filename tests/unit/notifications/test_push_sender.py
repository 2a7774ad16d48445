"""
Unit tests for the Expo push sender.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from aioresponses import aioresponses
from yarl import URL

from order_pipeline.ledger.push_tokens import PushTokenStore
from order_pipeline.notifications.exceptions import PushError
from order_pipeline.notifications.models import PushMessage, PushResult
from order_pipeline.notifications.push_sender import (
    EXPO_PUSH_URL, PUSH_CHUNK_SIZE, ExpoPushSender, is_expo_push_token
)


TOKEN_A = "ExponentPushToken[aaaaaaaaaaaaaaaaaaaaaa]"
TOKEN_B = "ExpoPushToken[bbbbbbbbbbbbbbbbbbbbbb]"


@pytest.fixture
def token_store():
    store = Mock(spec=PushTokenStore)
    store.get_tokens = AsyncMock(return_value=[TOKEN_A, TOKEN_B])
    return store


@pytest.fixture
def message():
    return PushMessage(title="Pedido listo", body="Tu pedido ya está listo", data={'orderId': '501'})


def posted_bodies(mocked):
    return [call.kwargs['json'] for call in mocked.requests[('POST', URL(EXPO_PUSH_URL))]]


class TestIsExpoPushToken:
    """Test Expo token recognition."""

    @pytest.mark.parametrize("token", [TOKEN_A, TOKEN_B])
    def test_valid_tokens(self, token):
        assert is_expo_push_token(token)

    @pytest.mark.parametrize("token", ["", "fcm-token-123", "ExponentPushToken[]", "ExponentPushToken"])
    def test_invalid_tokens(self, token):
        assert not is_expo_push_token(token)


class TestExpoPushSender:
    """Test Expo push delivery."""

    @pytest.mark.asyncio
    async def test_sends_one_message_per_token(self, token_store, message):
        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=200, payload={
                'data': [{'status': 'ok', 'id': 't1'}, {'status': 'ok', 'id': 't2'}]
            })

            async with ExpoPushSender(token_store) as sender:
                result = await sender.send_to_customer(9, message)

            bodies = posted_bodies(mocked)

        assert result == PushResult(sent=2, failed=0)
        token_store.get_tokens.assert_awaited_once_with(9)
        assert bodies == [[
            {'to': TOKEN_A, 'title': message.title, 'body': message.body, 'data': {'orderId': '501'}},
            {'to': TOKEN_B, 'title': message.title, 'body': message.body, 'data': {'orderId': '501'}},
        ]]

    @pytest.mark.asyncio
    async def test_counts_ticket_errors_as_failed(self, token_store, message):
        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=200, payload={
                'data': [
                    {'status': 'ok', 'id': 't1'},
                    {'status': 'error', 'message': 'not registered',
                     'details': {'error': 'DeviceNotRegistered'}},
                ]
            })

            async with ExpoPushSender(token_store) as sender:
                result = await sender.send_to_customer(9, message)

        assert result == PushResult(sent=1, failed=1)
        assert result.is_success

    @pytest.mark.asyncio
    async def test_no_tokens_makes_no_request(self, token_store, message):
        token_store.get_tokens.return_value = []

        with aioresponses() as mocked:
            async with ExpoPushSender(token_store) as sender:
                result = await sender.send_to_customer(9, message)

            assert not mocked.requests

        assert result == PushResult(sent=0, failed=0)
        assert not result.is_success

    @pytest.mark.asyncio
    async def test_non_expo_tokens_are_skipped(self, token_store, message):
        token_store.get_tokens.return_value = ["fcm-legacy-token", TOKEN_A]

        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=200, payload={'data': [{'status': 'ok'}]})

            async with ExpoPushSender(token_store) as sender:
                result = await sender.send_to_customer(9, message)

            bodies = posted_bodies(mocked)

        assert result.sent == 1
        assert [m['to'] for m in bodies[0]] == [TOKEN_A]

    @pytest.mark.asyncio
    async def test_messages_are_chunked(self, token_store):
        messages = [{'to': TOKEN_A, 'title': 't', 'body': str(i)} for i in range(PUSH_CHUNK_SIZE + 5)]

        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=200, payload={'data': [{'status': 'ok'}] * PUSH_CHUNK_SIZE})
            mocked.post(EXPO_PUSH_URL, status=200, payload={'data': [{'status': 'ok'}] * 5})

            async with ExpoPushSender(token_store) as sender:
                tickets = await sender.send_messages(messages)

            bodies = posted_bodies(mocked)

        assert len(tickets) == PUSH_CHUNK_SIZE + 5
        assert [len(body) for body in bodies] == [PUSH_CHUNK_SIZE, 5]

    @pytest.mark.asyncio
    async def test_http_error_raises_push_error(self, token_store, message):
        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=500, payload={'errors': [{'message': 'boom'}]})

            async with ExpoPushSender(token_store) as sender:
                with pytest.raises(PushError) as exc_info:
                    await sender.send_to_customer(9, message)

        assert exc_info.value.status_code == 500
        assert exc_info.value.channel == "push"
        assert "boom" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_html_error_page_raises_push_error(self, token_store, message):
        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=502, body="<html><body>Bad Gateway</body></html>",
                        content_type="text/html")

            async with ExpoPushSender(token_store) as sender:
                with pytest.raises(PushError) as exc_info:
                    await sender.send_to_customer(9, message)

        assert exc_info.value.status_code == 502
        assert "Bad Gateway" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_success_body_raises_push_error(self, token_store, message):
        with aioresponses() as mocked:
            mocked.post(EXPO_PUSH_URL, status=200, body="OK", content_type="text/plain")

            async with ExpoPushSender(token_store) as sender:
                with pytest.raises(PushError, match="Invalid JSON response"):
                    await sender.send_to_customer(9, message)

    @pytest.mark.asyncio
    async def test_access_token_header(self, token_store):
        sender = ExpoPushSender(token_store, access_token="expo-secret")

        await sender._ensure_session()
        try:
            assert sender._session.headers['Authorization'] == "Bearer expo-secret"
        finally:
            await sender.close()

        assert sender._session is None
