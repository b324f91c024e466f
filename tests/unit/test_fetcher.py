"""
Unit tests for the contracts page fetcher
"""

import httpx
import pytest

from core.exceptions import PageFetchError
from pipeline.fetcher import ContractPageFetcher
from tests.conftest import (
    TEST_API_URL,
    TEST_RESOURCE_ID,
    make_record,
    page_response,
    paginated_transport,
)


def _fetcher(transport, retry_policy):
    client = httpx.AsyncClient(transport=transport)
    return ContractPageFetcher(
        client=client,
        api_url=TEST_API_URL,
        resource_id=TEST_RESOURCE_ID,
        retry_policy=retry_policy,
    )


def _scripted_transport(responses, calls):
    """Replay responses/exceptions in order, one per request"""
    script = list(responses)

    def handler(request):
        calls.append(request)
        step = script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step

    return httpx.MockTransport(handler)


class TestContractPageFetcher:
    """Test page fetching, retry and end-of-stream handling"""

    @pytest.mark.asyncio
    async def test_fetch_page_success(self, retry_policy):
        calls = []
        records = [make_record(f"PO-{i}", "$60,000.00") for i in range(3)]
        fetcher = _fetcher(paginated_transport(records, calls), retry_policy)

        page = await fetcher.fetch(0, 100)

        assert page.success is True
        assert page.has_more is True
        assert page.total == 3
        assert [c.identifier for c in page.records] == ["PO-0", "PO-1", "PO-2"]
        assert page.records[0].payload["vendor_name"] == "Vendor PO-0"
        assert page.next_link is not None

        params = calls[0].url.params
        assert params["resource_id"] == TEST_RESOURCE_ID
        assert params["limit"] == "100"
        assert params["offset"] == "0"

    @pytest.mark.asyncio
    async def test_two_failures_then_success(self, retry_policy, recording_sleep):
        calls = []
        transport = _scripted_transport(
            [
                httpx.ConnectError("connection refused"),
                httpx.Response(503, text="unavailable"),
                httpx.Response(200, json=page_response([make_record("PO-1")])),
            ],
            calls,
        )
        fetcher = _fetcher(transport, retry_policy)

        page = await fetcher.fetch(200, 100)

        assert len(calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]
        assert [c.identifier for c in page.records] == ["PO-1"]

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self, retry_policy, recording_sleep):
        calls = []
        transport = _scripted_transport([httpx.Response(500)] * 4, calls)
        fetcher = _fetcher(transport, retry_policy)

        with pytest.raises(PageFetchError) as exc_info:
            await fetcher.fetch(300, 100)

        assert len(calls) == 4
        assert recording_sleep.delays == [1.0, 2.0, 3.0]
        assert exc_info.value.context["offset"] == 300
        assert exc_info.value.context["retry_count"] == 3
        assert isinstance(exc_info.value.original_exception, httpx.HTTPStatusError)

    @pytest.mark.asyncio
    async def test_invalid_json_is_retried(self, retry_policy, recording_sleep):
        calls = []
        transport = _scripted_transport(
            [
                httpx.Response(200, text="<html>maintenance</html>"),
                httpx.Response(200, json=page_response([make_record("PO-1")])),
            ],
            calls,
        )
        fetcher = _fetcher(transport, retry_policy)

        page = await fetcher.fetch(0)

        assert len(calls) == 2
        assert recording_sleep.delays == [1.0]
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_empty_page_is_end_of_stream(self, retry_policy):
        fetcher = _fetcher(paginated_transport([]), retry_policy)

        page = await fetcher.fetch(0)

        assert page.success is True
        assert page.records == []
        assert page.is_end_of_stream

    @pytest.mark.asyncio
    async def test_success_false_is_end_of_stream(self, retry_policy):
        body = page_response([make_record("PO-1")], success=False)
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=body))
        fetcher = _fetcher(transport, retry_policy)

        page = await fetcher.fetch(0)

        assert page.is_end_of_stream
        assert page.records == []

    @pytest.mark.asyncio
    async def test_missing_result_is_end_of_stream(self, retry_policy):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"success": True}))
        fetcher = _fetcher(transport, retry_policy)

        page = await fetcher.fetch(0)

        assert page.is_end_of_stream

    @pytest.mark.asyncio
    async def test_records_without_id_are_skipped(self, retry_policy):
        records = [
            make_record("PO-1"),
            make_record(None),
            make_record("   "),
            "not a record",
        ]
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=page_response(records))
        )
        fetcher = _fetcher(transport, retry_policy)

        page = await fetcher.fetch(0)

        assert [c.identifier for c in page.records] == ["PO-1"]
        assert page.fetched == 4
        assert page.has_more is True

    @pytest.mark.asyncio
    async def test_numeric_ids_become_strings(self, retry_policy):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json=page_response([make_record(12345)]))
        )
        fetcher = _fetcher(transport, retry_policy)

        page = await fetcher.fetch(0)

        assert page.records[0].identifier == "12345"

    @pytest.mark.asyncio
    async def test_context_manager_closes_owned_client(self):
        fetcher = ContractPageFetcher(api_url=TEST_API_URL)

        async with fetcher:
            pass

        assert fetcher._client.is_closed
