"""
Push notification sender using the Expo push service.

Resolves the device tokens registered for a customer and submits one
message per token to the Expo push API in chunks.
"""

import json
import re
import logging
from typing import List, Optional, Dict, Any

import aiohttp

from order_pipeline.ledger.push_tokens import PushTokenStore
from order_pipeline.notifications.exceptions import PushError
from order_pipeline.notifications.models import PushMessage, PushResult
from order_pipeline.notifications.ports import PushSender


logger = logging.getLogger(__name__)


EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

# Expo accepts at most 100 messages per request
PUSH_CHUNK_SIZE = 100

_EXPO_TOKEN_PATTERN = re.compile(r'^(ExponentPushToken|ExpoPushToken)\[.+\]$')


def is_expo_push_token(token: str) -> bool:
    """Check whether a token looks like an Expo push token."""
    return bool(token) and bool(_EXPO_TOKEN_PATTERN.match(token))


class ExpoPushSender(PushSender):
    """
    Push sender for Expo-registered devices.

    Handles token lookup, chunking and ticket accounting. Tokens that are not
    Expo push tokens are skipped.
    """

    def __init__(
        self,
        token_store: PushTokenStore,
        push_url: str = EXPO_PUSH_URL,
        access_token: Optional[str] = None,
        timeout: float = 15.0
    ):
        """
        Initialize Expo push sender.

        Args:
            token_store: Source of registered device tokens
            push_url: Expo push endpoint
            access_token: Optional Expo access token for enhanced security
            timeout: Request timeout in seconds
        """
        self.token_store = token_store
        self.push_url = push_url
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout)

        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self):
        """Ensure HTTP session is created."""
        if self._session is None or self._session.closed:
            headers = {
                'Accept': 'application/json',
                'Accept-Encoding': 'gzip, deflate',
                'Content-Type': 'application/json'
            }
            if self.access_token:
                headers['Authorization'] = f"Bearer {self.access_token}"

            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=headers)

    async def close(self):
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def send_to_customer(self, customer_id: int, message: PushMessage) -> PushResult:
        tokens = [t for t in await self.token_store.get_tokens(customer_id) if is_expo_push_token(t)]

        if not tokens:
            logger.debug(f"No push tokens registered for customer {customer_id}")
            return PushResult(sent=0, failed=0)

        messages = [self._build_message(token, message) for token in tokens]
        tickets = await self.send_messages(messages)

        sent = sum(1 for ticket in tickets if ticket.get('status') == 'ok')
        result = PushResult(sent=sent, failed=len(tickets) - sent)

        logger.info(f"Push to customer {customer_id}: {result.sent} sent, {result.failed} failed")
        return result

    async def send_messages(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Submit push messages and return the push tickets.

        Raises:
            PushError: If the Expo API rejects a request
        """
        if not messages:
            return []

        await self._ensure_session()

        tickets: List[Dict[str, Any]] = []
        for start in range(0, len(messages), PUSH_CHUNK_SIZE):
            chunk = messages[start:start + PUSH_CHUNK_SIZE]
            tickets.extend(await self._post_chunk(chunk))

        return tickets

    async def _post_chunk(self, chunk: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            async with self._session.post(self.push_url, json=chunk) as response:
                response_text = await response.text()
                status = response.status
                reason = response.reason
        except aiohttp.ClientError as e:
            raise PushError(f"Expo push transport error: {e}")

        try:
            payload = json.loads(response_text)
        except ValueError:
            # Gateways in front of Expo may answer with HTML or plain text
            payload = None

        if status != 200:
            errors = payload.get('errors') if isinstance(payload, dict) else None
            detail = errors or response_text[:200] or reason
            raise PushError(f"Expo push request failed: {detail}", status_code=status)

        if not isinstance(payload, dict):
            raise PushError(f"Invalid JSON response: {response_text[:200]}", status_code=status)

        data = payload.get('data', [])
        for ticket in data:
            if ticket.get('status') != 'ok':
                logger.warning(f"Push ticket error: {ticket.get('message')}",
                               extra={"details": ticket.get('details')})
        return data

    @staticmethod
    def _build_message(token: str, message: PushMessage) -> Dict[str, Any]:
        payload = {
            'to': token,
            'title': message.title,
            'body': message.body,
        }
        if message.data:
            payload['data'] = message.data
        return payload
