"""
Async client for the JTL-Wawi REST API.

Every create/lookup response is decoded once into ``JtlEntityRef``; a
response without a usable integer ``Id`` is an error, never a default.
Transport failures, non-2xx responses and undecodable bodies all raise
``JtlAPIException`` with distinct flags.
"""

import asyncio
import json
import logging
import time
from enum import IntEnum
from typing import Any, Dict, Optional, Sequence

import aiohttp
from aiohttp import ClientTimeout
from pydantic import ValidationError

from app.core.config import get_settings
from app.core.logging_config import log_api_call
from app.domain.models import JtlCustomer, JtlEntityRef, JtlOrder, JtlOrderItem
from app.domain.models.jtl import JtlListResponse
from app.utils.error_handler import JtlAPIException

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}
CUSTOMER_PAGE_SIZE = 100


class WorkflowEvent(IntEnum):
    """JTL workflow events triggered on sales orders."""

    PAID = 15
    ON_HOLD = 16


class JtlApiClient:
    """
    Client for JTL-Wawi sales orders and customers.

    Only read requests are retried. Writes are sent once so a timeout can
    never create the same customer or order twice within a run.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        app_id: Optional[str] = None,
        app_version: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.settings = get_settings()
        self.base_url = (base_url or self.settings.JTL_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else self.settings.JTL_API_KEY
        self.app_id = app_id or self.settings.JTL_APP_ID
        self.app_version = app_version or self.settings.JTL_APP_VERSION
        self.timeout = timeout or self.settings.JTL_REQUEST_TIMEOUT
        self.max_retries = max(1, max_retries or self.settings.JTL_MAX_RETRIES)
        self.session = session
        self._owns_session = session is None

        logger.info(f"Initialized JTL API client for {self.base_url}")

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Wawi {self.api_key}",
            "X-AppId": self.app_id,
            "X-AppVersion": self.app_version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def initialize(self) -> None:
        """Create the HTTP session if it does not exist yet."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            timeout=ClientTimeout(total=self.timeout, connect=10),
            connector=aiohttp.TCPConnector(limit=20),
        )
        self._owns_session = True
        logger.info("✅ JTL API client session created")

    async def close(self) -> None:
        """Close the HTTP session and clean up resources."""
        if self.session is not None and self._owns_session:
            await self.session.close()
            logger.info("JTL API client closed")
        self.session = None

    async def __aenter__(self) -> "JtlApiClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # === TRANSPORTE ===

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        retry: bool = False,
    ) -> Any:
        """
        Send a request and return the decoded JSON body (None when empty).

        Raises:
            JtlAPIException: On transport failure, non-2xx status or invalid JSON
        """
        await self.initialize()

        url = f"{self.base_url}{path}"
        attempts = self.max_retries if retry else 1
        query = {key: str(value) for key, value in (params or {}).items()}

        for attempt in range(attempts):
            start_time = time.time()
            try:
                async with self.session.request(
                    method, url, params=query or None, json=json_body, headers=self.headers
                ) as response:
                    status = response.status
                    body = await response.text()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt < attempts - 1:
                    wait_time = min(2**attempt, 10)
                    logger.warning(f"Network error on {method} {path}, retrying in {wait_time}s (attempt {attempt + 1})")
                    await asyncio.sleep(wait_time)
                    continue
                raise JtlAPIException(
                    f"Request to JTL failed: {type(e).__name__}: {e}",
                    endpoint=path,
                    transport_error=True,
                ) from e

            log_api_call(method, path, status, time.time() - start_time)

            if status in RETRYABLE_STATUS and attempt < attempts - 1:
                wait_time = min(2**attempt, 10)
                logger.warning(f"JTL returned {status} on {method} {path}, retrying in {wait_time}s")
                await asyncio.sleep(wait_time)
                continue

            if not 200 <= status < 300:
                raise JtlAPIException(
                    f"HTTP error {status}: {body}",
                    api_response_code=status,
                    response_body=body,
                    endpoint=path,
                )

            return self._parse_json(body, path)

        raise JtlAPIException(f"Request to JTL failed after {attempts} attempts", endpoint=path)

    @staticmethod
    def _parse_json(body: str, endpoint: str) -> Any:
        if not body or not body.strip():
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise JtlAPIException(
                f"Invalid JSON response from {endpoint}: {e}",
                response_body=body,
                endpoint=endpoint,
                decode_error=True,
            ) from e

    @staticmethod
    def _decode_ref(data: Any, endpoint: str) -> JtlEntityRef:
        try:
            return JtlEntityRef.model_validate(data)
        except ValidationError as e:
            raise JtlAPIException(
                f"Response from {endpoint} has no valid Id: {data!r}",
                response_body=json.dumps(data, default=str) if data is not None else None,
                endpoint=endpoint,
                decode_error=True,
            ) from e

    @staticmethod
    def _decode_list(data: Any, endpoint: str) -> JtlListResponse:
        try:
            return JtlListResponse.model_validate(data or {})
        except ValidationError as e:
            raise JtlAPIException(
                f"Unexpected list response from {endpoint}: {data!r}",
                endpoint=endpoint,
                decode_error=True,
            ) from e

    # === CLIENTES ===

    async def find_customer(self, customer_number: str) -> Optional[JtlEntityRef]:
        """
        Look up a customer by its external number.

        JTL's keyword search also matches longer numbers (``VM1`` finds
        ``VM10``..``VM19``), so result pages are walked until an item whose
        ``Number`` equals ``customer_number`` shows up or the results run out.
        Results without any ``Number`` field fall back to the first hit.
        """
        endpoint = "/customers"
        page = 1
        seen = 0

        while True:
            params = {"searchKeyWord": customer_number, "pageNumber": page, "pageSize": CUSTOMER_PAGE_SIZE}
            data = await self._request("GET", endpoint, params=params, retry=True)
            listing = self._decode_list(data, endpoint)

            if listing.TotalItems <= 0 or not listing.Items:
                return None

            numbered = [item for item in listing.Items if "Number" in item]
            if not numbered and page == 1:
                return self._decode_ref(listing.Items[0], endpoint)

            for item in numbered:
                if str(item.get("Number")) == customer_number:
                    return self._decode_ref(item, endpoint)

            seen += len(listing.Items)
            if seen >= listing.TotalItems:
                return None

            logger.debug(f"Customer {customer_number} not on page {page} ({seen}/{listing.TotalItems}), fetching next")
            page += 1

    async def create_customer(self, customer: JtlCustomer) -> JtlEntityRef:
        endpoint = "/customers"
        data = await self._request("POST", endpoint, json_body=customer.model_dump())
        return self._decode_ref(data, endpoint)

    # === PEDIDOS ===

    async def order_exists(self, order_number: str, customer_id: int) -> bool:
        endpoint = "/salesOrders"
        data = await self._request(
            "GET",
            endpoint,
            params={"externalOrderNumber": order_number, "customerId": customer_id},
            retry=True,
        )
        return self._decode_list(data, endpoint).TotalItems > 0

    async def create_order(self, order: JtlOrder, lines: Sequence[JtlOrderItem]) -> JtlEntityRef:
        """
        Create the sales order header, then attach its line items.

        Both steps must succeed; a failure attaching the lines is raised as
        a failure of the whole call.
        """
        endpoint = "/salesOrders"
        data = await self._request("POST", endpoint, json_body=order.model_dump())
        ref = self._decode_ref(data, endpoint)

        lines_endpoint = f"/salesOrders/{ref.Id}/lineitems"
        try:
            await self._request("POST", lines_endpoint, json_body=[line.model_dump() for line in lines])
        except JtlAPIException as e:
            raise JtlAPIException(
                f"Sales order {ref.Id} created but line items could not be attached: {e.message}",
                api_response_code=e.api_response_code,
                response_body=e.response_body,
                endpoint=lines_endpoint,
                transport_error=e.transport_error,
                decode_error=e.decode_error,
                details={"sales_order_id": ref.Id},
            ) from e

        return ref

    async def trigger_workflow_event(self, order_id: int, event: WorkflowEvent) -> None:
        await self._request("POST", f"/salesOrders/{order_id}/workflowEvents", json_body={"Id": int(event)})

    async def mark_paid(self, order_id: int) -> None:
        await self.trigger_workflow_event(order_id, WorkflowEvent.PAID)

    async def put_on_hold(self, order_id: int) -> None:
        await self.trigger_workflow_event(order_id, WorkflowEvent.ON_HOLD)

    async def test_connection(self) -> bool:
        """
        Check that the API answers and accepts the API key.

        Raises:
            JtlAPIException: If the request fails
        """
        await self._request("GET", "/customers", params={"pageNumber": 1, "pageSize": 1})
        logger.info(f"✅ Connected to JTL-Wawi API at {self.base_url}")
        return True
