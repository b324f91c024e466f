"""
Pytest configuration and fixtures
"""

import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pipeline.fetcher import ContractPageFetcher
from pipeline.retry import RetryPolicy
from pipeline.runner import ScreeningRunner
from schemas.contracts import Contract, FlaggedContract

TEST_API_URL = "https://datastore.example.test/api/3/action/datastore_search"
TEST_RESOURCE_ID = "test-resource"


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_record(procurement_id: str, contract_value: Any = "$10,000.00", **fields) -> Dict[str, Any]:
    """Build one raw contracts-dataset record"""
    record = {
        "_id": abs(hash(procurement_id)) % 100000,
        "procurement_id": procurement_id,
        "vendor_name": f"Vendor {procurement_id}",
        "description_en": "Professional services",
        "contract_value": contract_value,
        "original_value": contract_value,
        "amendment_value": "$0.00",
        "number_of_bids": "1",
        "contract_period_start": "2024-01-01",
        "delivery_date": "2024-12-31",
    }
    record.update(fields)
    return record


def make_flagged(contract_id: str, risk_level: str = "high", **fields) -> Dict[str, Any]:
    """Build one classifier entry / result log line"""
    entry = {
        "contract_id": contract_id,
        "vendor_name": f"Vendor {contract_id}",
        "value": "$75,000.00",
        "description": "Consulting services",
        "original_value": "$75,000.00",
        "amendment_value": "$0.00",
        "start_date": "2024-01-01",
        "end_date": "2024-12-31",
        "number_of_bids": "1",
        "procurement_type": "Professional services",
        "reason_for_flag": "Sole-source award",
        "risk_level": risk_level,
        "risk_factors": {
            "procurement_issues": ["Single bid"],
            "financial_issues": [],
            "conflict_of_interest": [],
            "timeline_issues": [],
            "public_interest_factors": ["Consulting spend"],
        },
    }
    entry.update(fields)
    return entry


def page_response(records: List[Dict[str, Any]], success: bool = True, total: Optional[int] = None) -> Dict[str, Any]:
    """CKAN datastore_search response body"""
    return {
        "success": success,
        "result": {
            "records": records,
            "total": total if total is not None else len(records),
            "_links": {"next": "/api/3/action/datastore_search?offset=next"},
        },
    }


def paginated_transport(records: List[Dict[str, Any]], calls: Optional[List[httpx.Request]] = None) -> httpx.MockTransport:
    """MockTransport serving ``records`` by limit/offset"""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        offset = int(request.url.params["offset"])
        limit = int(request.url.params["limit"])
        body = page_response(records[offset:offset + limit], total=len(records))
        return httpx.Response(200, json=body)

    return httpx.MockTransport(handler)


def chat_response(content: Optional[str]) -> SimpleNamespace:
    """Minimal chat.completions.create return value"""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def mock_openai_client(**create_kwargs) -> MagicMock:
    """AsyncOpenAI lookalike whose chat.completions.create is an AsyncMock"""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    client.close = AsyncMock()
    return client


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def retry_policy(recording_sleep):
    """Default policy (3 retries, 1s unit) that never actually sleeps"""
    return RetryPolicy(sleep=recording_sleep)


@pytest.fixture
def output_file(tmp_path):
    return tmp_path / "flagged_contracts.ndjson"


@pytest.fixture
def write_log(output_file):
    """Write raw lines to the result log"""

    def _write(lines: List[Any]) -> None:
        text = "".join(
            (line if isinstance(line, str) else json.dumps(line)) + "\n"
            for line in lines
        )
        output_file.write_text(text, encoding="utf-8")

    return _write


class FakeClassifier:
    """Flags a fixed set of contracts and records every batch it sees"""

    def __init__(self, flags: Dict[str, str]):
        self.flags = flags
        self.batches: List[List[str]] = []

    async def classify(self, candidates: Sequence[Contract]) -> List[FlaggedContract]:
        ids = [c.identifier for c in candidates]
        self.batches.append(ids)
        return [
            FlaggedContract.model_validate(make_flagged(i, self.flags[i]))
            for i in ids
            if i in self.flags
        ]


def build_runner(output_file, transport, classifier, sleep, retry_policy) -> ScreeningRunner:
    """Runner wired to a mocked source; ``sleep`` replaces the courtesy wait"""
    fetcher = ContractPageFetcher(
        client=httpx.AsyncClient(transport=transport),
        api_url=TEST_API_URL,
        resource_id=TEST_RESOURCE_ID,
        retry_policy=retry_policy,
    )
    return ScreeningRunner.for_output_file(output_file, fetcher, classifier, sleep=sleep)
