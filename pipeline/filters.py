"""
High-value / novelty filter applied to every fetched page
"""

import math
import re
from typing import Any, Iterable, List

from core.config import MIN_CONTRACT_VALUE
from pipeline.identity import ProcessedContractIds
from schemas.contracts import Contract

_NON_NUMERIC = re.compile(r"[^0-9.-]+")
_LEADING_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)")


def parse_contract_value(value: Any) -> float:
    """
    Parse a currency-formatted amount such as ``"$1,234.00"``.

    Everything except digits, ``.`` and ``-`` is stripped, then the longest
    leading number is read. Returns ``nan`` when nothing parses.
    """
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = _NON_NUMERIC.sub("", str(value))
    match = _LEADING_NUMBER.match(cleaned)
    if not match:
        return math.nan
    return float(match.group(0))


def is_high_value(contract: Contract, min_value: float = MIN_CONTRACT_VALUE) -> bool:
    # nan compares False
    return parse_contract_value(contract.contract_value) >= min_value


def select_candidates(
    records: Iterable[Contract],
    processed: ProcessedContractIds,
    min_value: float = MIN_CONTRACT_VALUE
) -> List[Contract]:
    """Records worth at least ``min_value`` that have not been flagged before."""
    return [
        record for record in records
        if is_high_value(record, min_value) and record.identifier not in processed
    ]
