"""
Set of contract identifiers that already have a flagged result on disk.

The result log is the only source of truth: the set is rebuilt by replaying
the whole log at startup and only grows through successful appends.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional, Set, Union

from pydantic import ValidationError

from core.exceptions import StateLoadError
from schemas.contracts import FlaggedContract

logger = logging.getLogger(__name__)


class ProcessedContractIds:
    """
    Identifiers of contracts with a durably written FlaggedContract.

    Responsibilities:
    - Rebuild from the NDJSON result log (missing/empty log = fresh run)
    - O(1) membership checks for the novelty filter
    - Idempotent inserts, no removal
    """

    def __init__(self, output_file: Union[str, Path]):
        self.output_file = Path(output_file)
        self._ids: Set[str] = set()
        self.skipped_lines = 0

    def load(self) -> int:
        """
        Replay the result log and collect every contract_id in it.

        Lines that fail validation but still carry a contract_id count as
        processed. Anything else is skipped with a warning.

        Returns:
            Number of identifiers known after loading
        """
        if not self.output_file.exists():
            logger.info("Starting fresh analysis (no previous results found)")
            return len(self._ids)

        try:
            content = self.output_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StateLoadError(
                "Failed to read result log",
                context={"output_file": str(self.output_file)},
                original_exception=e
            )

        for line_number, line in enumerate(content.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                flagged = FlaggedContract.model_validate_json(line)
            except ValidationError as e:
                contract_id = self._recover_contract_id(line)
                if contract_id is None:
                    self.skipped_lines += 1
                    logger.warning(
                        f"Skipping corrupt line {line_number} in {self.output_file}: "
                        f"{e.error_count()} validation error(s)"
                    )
                    continue
                logger.warning(
                    f"Line {line_number} in {self.output_file} failed validation, "
                    f"keeping contract_id {contract_id}"
                )
                self._ids.add(contract_id)
                continue
            self._ids.add(flagged.identifier)

        if self._ids:
            logger.info(f"Loaded {len(self._ids)} previously processed contracts")
        else:
            logger.info("Starting fresh analysis (no previous results found)")
        return len(self._ids)

    @staticmethod
    def _recover_contract_id(line: str) -> Optional[str]:
        """contract_id of a well-formed JSON object whose other fields are off"""
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            return None
        if not isinstance(parsed, dict):
            return None
        contract_id = parsed.get("contract_id")
        if isinstance(contract_id, bool) or not isinstance(contract_id, (str, int, float)):
            return None
        return str(contract_id).strip() or None

    def contains(self, contract_id: str) -> bool:
        return contract_id in self._ids

    def add(self, contract_id: str) -> None:
        self._ids.add(contract_id)

    def update(self, contract_ids: Iterable[str]) -> None:
        for contract_id in contract_ids:
            self.add(contract_id)

    def __contains__(self, contract_id: object) -> bool:
        return contract_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)
