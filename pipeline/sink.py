"""
Append flagged contracts to the NDJSON result log
"""

import logging
import os
from pathlib import Path
from typing import Sequence, Union

from core.exceptions import PersistenceError
from pipeline.identity import ProcessedContractIds
from schemas.contracts import FlaggedContract

logger = logging.getLogger(__name__)


class FlaggedContractSink:
    """
    Append-only writer for the result log.

    Ensures:
    - One JSON object per line, UTF-8
    - One write per batch, flushed and fsynced before returning
    - Identifiers enter the processed set only after the write is durable
    """

    def __init__(self, output_file: Union[str, Path], processed: ProcessedContractIds):
        self.output_file = Path(output_file)
        self.processed = processed

    def append(self, results: Sequence[FlaggedContract]) -> int:
        """
        Write ``results`` to the log, then mark them processed.

        Args:
            results: Flagged contracts from one batch

        Returns:
            Number of lines appended (0 for an empty batch, file untouched)

        Raises:
            PersistenceError: If the write fails; nothing is marked processed
        """
        if not results:
            return 0

        payload = "".join(result.to_ndjson_line() + "\n" for result in results).encode("utf-8")

        try:
            self.output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.output_file, "a+b") as fh:
                if self._ends_with_torn_line(fh):
                    logger.warning(f"Result log {self.output_file} ends without a newline, terminating torn line")
                    payload = b"\n" + payload
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
        except OSError as e:
            raise PersistenceError(
                "Failed to append flagged contracts",
                context={
                    "output_file": str(self.output_file),
                    "records": len(results),
                },
                original_exception=e
            )

        self.processed.update(result.identifier for result in results)

        logger.info(f"Appended {len(results)} flagged contracts to {self.output_file}")
        return len(results)

    @staticmethod
    def _ends_with_torn_line(fh) -> bool:
        """True when a previous write was cut off before its newline"""
        size = fh.seek(0, os.SEEK_END)
        if size == 0:
            return False
        fh.seek(size - 1)
        return fh.read(1) != b"\n"
