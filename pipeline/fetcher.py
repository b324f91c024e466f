"""
Page fetcher for the CKAN ``datastore_search`` contracts endpoint.

Pulls one page of raw records at a given offset with:
- A shared httpx.AsyncClient (injectable for tests)
- Bounded retry with linear backoff on transport errors, non-2xx
  responses and undecodable bodies
- End-of-stream detection (``success=false`` or an empty page)
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from core.config import settings, BATCH_SIZE
from core.exceptions import PageFetchError, RetryExhaustedError
from pipeline.retry import RetryPolicy
from schemas.contracts import Contract, ContractPage

logger = logging.getLogger(__name__)


class ContractPageFetcher:
    """
    Fetch pages of contract records from the paginated source.

    Attributes:
        api_url: datastore_search endpoint
        resource_id: CKAN resource holding the contracts table
        retry_policy: Retry/backoff policy around each request
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        api_url: Optional[str] = None,
        resource_id: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: Optional[float] = None
    ):
        self.api_url = api_url or settings.SOURCE_API_URL
        self.resource_id = resource_id or settings.SOURCE_RESOURCE_ID
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def __aenter__(self) -> "ContractPageFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Single attempt: GET the page and decode the JSON body."""
        response = await self._client.get(self.api_url, params=params)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return data

    async def fetch(self, offset: int, page_size: int = BATCH_SIZE) -> ContractPage:
        """
        Fetch the page starting at ``offset``.

        Args:
            offset: Zero-based record offset into the dataset
            page_size: Number of records requested (``limit``)

        Returns:
            ContractPage; ``has_more`` is False at end of stream

        Raises:
            PageFetchError: When every attempt failed
        """
        params = {
            "resource_id": self.resource_id,
            "limit": page_size,
            "offset": offset,
        }

        logger.debug(f"Fetching {page_size} records at offset {offset} from {self.api_url}")

        try:
            data = await self.retry_policy.run(
                lambda: self._request_page(params),
                description=f"contracts fetch at offset {offset}"
            )
        except RetryExhaustedError as e:
            raise PageFetchError(
                f"Failed to fetch contracts page after {self.retry_policy.max_retries} retries",
                context={
                    "api_url": self.api_url,
                    "offset": offset,
                    "limit": page_size,
                    "retry_count": self.retry_policy.max_retries,
                },
                original_exception=e.original_exception
            )

        return self._parse_page(data, offset)

    def _parse_page(self, data: Dict[str, Any], offset: int) -> ContractPage:
        success = bool(data.get("success", False))
        result = data.get("result") or {}
        if not isinstance(result, dict):
            result = {}

        raw_records = result.get("records") or []
        if not success or not isinstance(raw_records, list):
            return ContractPage(offset=offset, success=success, records=[])

        records: List[Contract] = []
        for raw in raw_records:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping non-object record at offset {offset}")
                continue
            try:
                records.append(Contract.from_record(raw))
            except ValidationError as e:
                logger.warning(
                    f"Skipping record without usable procurement_id at offset {offset}: "
                    f"{e.error_count()} validation error(s)"
                )

        links = result.get("_links") or {}
        total = result.get("total")

        return ContractPage(
            offset=offset,
            success=success,
            records=records,
            total=total if isinstance(total, int) else None,
            next_link=links.get("next") if isinstance(links, dict) else None,
            raw_count=len(raw_records),
        )
