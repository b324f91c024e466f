"""
Screening runner - drives fetch → filter → classify → persist over the
whole paginated source.

This module provides:
- Strictly sequential batches with a fixed courtesy delay between them
- Offset advanced by exactly one batch per iteration
- Idempotent re-runs through the processed-identifier set
- The last successful offset on fatal failure, for manual resume
"""

import asyncio
import enum
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from core.config import BATCH_SIZE, MIN_CONTRACT_VALUE, RATE_LIMIT_DELAY
from core.exceptions import FatalRunError, PipelineException
from pipeline.filters import select_candidates
from pipeline.identity import ProcessedContractIds
from pipeline.sink import FlaggedContractSink
from schemas.contracts import Contract, ContractPage, FlaggedContract

logger = logging.getLogger(__name__)


class PipelineStage(str, enum.Enum):
    """Runner state machine"""
    INIT = "init"
    LOADING_STATE = "loading_state"
    FETCHING = "fetching"
    FILTERING = "filtering"
    CLASSIFYING = "classifying"
    PERSISTING = "persisting"
    RATE_LIMIT_WAIT = "rate_limit_wait"
    DONE = "done"
    FAILED = "failed"


class PageSource(Protocol):
    async def fetch(self, offset: int, page_size: int = BATCH_SIZE) -> ContractPage: ...


class Classifier(Protocol):
    async def classify(self, candidates: Sequence[Contract]) -> List[FlaggedContract]: ...


class RunState(BaseModel):
    """Progress of one run; lives in memory only."""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(0, ge=0)
    batch_number: int = 1
    total_fetched: int = 0
    total_candidates: int = 0
    total_flagged: int = 0

    def advance(
        self,
        fetched: int,
        candidates: int,
        flagged: int,
        batch_size: int = BATCH_SIZE
    ) -> "RunState":
        return RunState(
            offset=self.offset + batch_size,
            batch_number=self.batch_number + 1,
            total_fetched=self.total_fetched + fetched,
            total_candidates=self.total_candidates + candidates,
            total_flagged=self.total_flagged + flagged,
        )


class RunSummary(BaseModel):
    """Outcome of a completed run"""

    start_offset: int
    state: RunState
    stage: PipelineStage
    output_file: Optional[str] = None

    @property
    def final_offset(self) -> int:
        return self.state.offset


class ScreeningRunner:
    """
    Orchestrates the batch loop.

    Responsibilities:
    - Rebuild the processed set before the first fetch
    - Fetch, filter, classify and persist one batch at a time
    - Keep RunState counters for the completion report
    - Turn a fatal failure into FatalRunError with the resume offset
    """

    def __init__(
        self,
        fetcher: PageSource,
        classifier: Classifier,
        processed: ProcessedContractIds,
        sink: FlaggedContractSink,
        batch_size: int = BATCH_SIZE,
        min_value: float = MIN_CONTRACT_VALUE,
        rate_limit_delay: float = RATE_LIMIT_DELAY,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None
    ):
        self.fetcher = fetcher
        self.classifier = classifier
        self.processed = processed
        self.sink = sink
        self.batch_size = batch_size
        self.min_value = min_value
        self.rate_limit_delay = rate_limit_delay
        self.sleep = sleep or asyncio.sleep
        self.stage = PipelineStage.INIT

    @classmethod
    def for_output_file(
        cls,
        output_file: Union[str, Path],
        fetcher: PageSource,
        classifier: Classifier,
        **kwargs
    ) -> "ScreeningRunner":
        """Build a runner whose processed set and sink share one result log."""
        processed = ProcessedContractIds(output_file)
        sink = FlaggedContractSink(output_file, processed)
        return cls(fetcher, classifier, processed, sink, **kwargs)

    def _enter(self, stage: PipelineStage) -> None:
        logger.debug(f"Stage {self.stage.value} -> {stage.value}")
        self.stage = stage

    async def process_batch(
        self,
        state: RunState,
        page: ContractPage
    ) -> Tuple[RunState, List[FlaggedContract]]:
        """
        Filter, classify and persist one non-empty page.

        Returns:
            The advanced state and the flagged results that were written
        """
        self._enter(PipelineStage.FILTERING)
        candidates = select_candidates(page.records, self.processed, self.min_value)

        flagged: List[FlaggedContract] = []
        if candidates:
            self._enter(PipelineStage.CLASSIFYING)
            flagged = await self.classifier.classify(candidates)

            if flagged:
                self._enter(PipelineStage.PERSISTING)
                self.sink.append(flagged)
        else:
            logger.info(f"No new high-value contracts in batch {state.batch_number}")

        new_state = state.advance(
            fetched=page.fetched,
            candidates=len(candidates),
            flagged=len(flagged),
            batch_size=self.batch_size,
        )

        logger.info(
            f"Batch {state.batch_number} results: "
            f"contracts={page.fetched}, high-value={len(candidates)}, flagged={len(flagged)}"
        )
        logger.info(
            f"Running totals: contracts={new_state.total_fetched}, "
            f"high-value={new_state.total_candidates}, flagged={new_state.total_flagged}"
        )
        return new_state, flagged

    async def run(self, start_offset: int = 0) -> RunSummary:
        """
        Run the pipeline from ``start_offset`` until the source is exhausted.

        Raises:
            FatalRunError: When a page cannot be fetched (or results cannot be
                written); ``last_successful_offset`` is where to resume.
        """
        if start_offset < 0:
            raise ValueError("start_offset must be a non-negative integer")

        state = RunState(offset=start_offset)

        try:
            self._enter(PipelineStage.LOADING_STATE)
            self.processed.load()

            logger.info(f"Starting analysis from offset {start_offset}")
            logger.info(f"Minimum contract value: ${self.min_value:,.0f}")

            while True:
                self._enter(PipelineStage.FETCHING)
                logger.info(f"Processing batch {state.batch_number} (offset: {state.offset})...")
                page = await self.fetcher.fetch(state.offset, self.batch_size)

                if page.is_end_of_stream:
                    logger.info("No more contracts to analyze")
                    break

                state, _ = await self.process_batch(state, page)

                self._enter(PipelineStage.RATE_LIMIT_WAIT)
                await self.sleep(self.rate_limit_delay)

        except PipelineException as e:
            self._enter(PipelineStage.FAILED)
            logger.error(
                f"Error processing batch {state.batch_number}: {e}",
                extra={"error_context": e.to_dict()}
            )
            logger.error(f"Last successful offset: {state.offset}")
            logger.error("Use this offset to resume the analysis")
            raise FatalRunError(
                f"Run stopped at batch {state.batch_number}",
                last_successful_offset=state.offset,
                state=state,
                context={"batch_number": state.batch_number},
                original_exception=e
            )

        self._enter(PipelineStage.DONE)
        self._log_completion(state)

        return RunSummary(
            start_offset=start_offset,
            state=state,
            stage=self.stage,
            output_file=str(self.sink.output_file),
        )

    def _log_completion(self, state: RunState) -> None:
        logger.info("Analysis Complete!")
        logger.info(f"Total contracts analyzed: {state.total_fetched}")
        logger.info(f"High-value contracts (>=${self.min_value:,.0f}): {state.total_candidates}")
        logger.info(f"Flagged contracts: {state.total_flagged}")
        logger.info(f"Results appended to {self.sink.output_file}")
