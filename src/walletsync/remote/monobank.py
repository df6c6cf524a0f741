"""httpx client for the Monobank personal API."""

import logging
import math
from decimal import Decimal
from typing import Any, Optional

import httpx

from walletsync.config import DEFAULT_POLICY, SyncPolicy, api_base_url
from walletsync.credentials import SecretProvider
from walletsync.domain.errors import (
    ConfigurationError,
    ValidationError,
    statement_window_too_long,
    token_not_configured,
)
from walletsync.remote.base import BankClient
from walletsync.remote.errors import (
    RemoteAuthorizationError,
    RemoteDecodeError,
    RemoteRateLimitError,
    RemoteServerError,
    RemoteTransportError,
)
from walletsync.remote.models import ClientInfo, CurrencyRate, StatementItem

logger = logging.getLogger(__name__)

RESPONSE_BODY_MAX_LENGTH = 200


class MonobankClient(BankClient):
    """Async client for the three endpoints the sync core uses.

    Authenticated endpoints send the token in the ``X-Token`` header;
    ``/bank/currency`` is public. The client does no throttling of its own,
    the coordinator spaces calls out.

    Args:
        secrets: Where the API token comes from
        base_url: API root (defaults to WALLETSYNC_API_URL or the public API)
        policy: Timeouts and the statement window limit
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``)
    """

    def __init__(
        self,
        secrets: SecretProvider,
        base_url: Optional[str] = None,
        policy: SyncPolicy = DEFAULT_POLICY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secrets = secrets
        self.base_url = api_base_url(base_url).rstrip("/")
        self.policy = policy
        self._transport = transport
        self._timeout = httpx.Timeout(policy.read_timeout, connect=policy.connect_timeout)

    async def get_client_info(self) -> ClientInfo:
        payload = await self._get_json("/personal/client-info", "client_info")
        if not isinstance(payload, dict):
            raise RemoteDecodeError("Expected an object from client-info")
        try:
            return ClientInfo.from_payload(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteDecodeError(f"Malformed client-info payload: {e}") from e

    async def get_statement(
        self, account_id: str, from_time: int, to_time: int
    ) -> list[StatementItem]:
        """Fetch one account's statement.

        Raises:
            ValidationError: If the window is inverted or longer than the
                bank accepts (31 days + 1 hour)
        """
        if to_time < from_time:
            raise ValidationError("Statement window ends before it starts")
        if to_time - from_time > self.policy.max_statement_span.total_seconds():
            days = -(-(to_time - from_time) // 86400)
            raise ValidationError(statement_window_too_long(days))

        payload = await self._get_json(
            f"/personal/statement/{account_id}/{from_time}/{to_time}", "statement"
        )
        return self._parse_list(payload, StatementItem, "statement")

    async def get_currency_rates(self) -> list[CurrencyRate]:
        payload = await self._get_json("/bank/currency", "currency", requires_auth=False)
        return self._parse_list(payload, CurrencyRate, "currency")

    def _headers(self, requires_auth: bool) -> dict[str, str]:
        if not requires_auth:
            return {}
        token = self.secrets.get_token()
        if token is None or not token.strip():
            raise ConfigurationError(token_not_configured())
        return {"X-Token": token}

    async def _get_json(self, path: str, operation: str, requires_auth: bool = True) -> Any:
        headers = self._headers(requires_auth)
        url = f"{self.base_url}{path}"

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Monobank %s request timed out: %s", operation, e)
            raise RemoteTransportError(f"Monobank API request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.warning("Monobank %s connection error: %s", operation, e)
            raise RemoteTransportError(f"Failed to connect to Monobank API: {e}") from e

        self._check_status(response, operation)

        try:
            return response.json(parse_float=Decimal)
        except ValueError as e:
            logger.warning("Monobank %s returned invalid JSON", operation)
            raise RemoteDecodeError(f"Invalid JSON response from Monobank: {e}") from e

    def _check_status(self, response: httpx.Response, operation: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        if status in (401, 403):
            logger.warning("Monobank %s rejected the token (HTTP %d)", operation, status)
            raise RemoteAuthorizationError("Unauthorized. Please check your Monobank token")

        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            logger.warning("Monobank %s rate limited (retry after %s)", operation, retry_after)
            raise RemoteRateLimitError(
                "Rate limit exceeded. Please wait before making another request",
                retry_after=retry_after,
            )

        body = response.text[:RESPONSE_BODY_MAX_LENGTH]
        logger.warning("Monobank %s failed with HTTP %d: %s", operation, status, body)
        raise RemoteServerError(f"Server error ({status}): {body or 'Unknown error'}", status)

    @staticmethod
    def _parse_list(payload: Any, item_type, operation: str) -> list:
        if not isinstance(payload, list):
            raise RemoteDecodeError(f"Expected a list from {operation}")
        try:
            return [item_type.from_payload(item) for item in payload]
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteDecodeError(f"Malformed {operation} payload: {e}") from e


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds
