"""
Contract screening pipeline.

Modules:
    retry: Bounded retry with linear backoff shared by both network calls
    identity: Processed contract identifiers, rebuilt from the result log
    fetcher: Page fetcher for the paginated contracts API
    filters: High-value / novelty filter
    prompts: Fixed task description for the classifier
    classifier: Adapter around the external LLM classifier
    sink: Append-only NDJSON result log
    runner: Batch loop orchestrator
    cli: Command-line entry point

Architecture:
    Each batch flows strictly downstream:

    1. Fetch - One page at the current offset, retried on transient errors
    2. Filter - Keep high-value contracts not flagged in an earlier run
    3. Classify - Ask the classifier which candidates deserve scrutiny
    4. Persist - Append flagged results, then mark them processed

    The offset advances by one batch per iteration. A failed fetch stops
    the run and reports the offset to resume from; a failed classification
    only drops that batch's flags.

Example:
    processed = ProcessedContractIds("flagged_contracts.ndjson")
    sink = FlaggedContractSink("flagged_contracts.ndjson", processed)

    async with ContractPageFetcher() as fetcher:
        runner = ScreeningRunner(fetcher, ContractClassifier(), processed, sink)
        summary = await runner.run(start_offset=0)

    print(f"Flagged {summary.state.total_flagged} contracts")
"""

__all__ = [
    "RetryPolicy",
    "ProcessedContractIds",
    "ContractPageFetcher",
    "parse_contract_value",
    "select_candidates",
    "ContractClassifier",
    "FlaggedContractSink",
    "ScreeningRunner",
    "RunState",
    "RunSummary",
    "PipelineStage",
]

from pipeline.retry import RetryPolicy
from pipeline.identity import ProcessedContractIds
from pipeline.fetcher import ContractPageFetcher
from pipeline.filters import parse_contract_value, select_candidates
from pipeline.classifier import ContractClassifier
from pipeline.sink import FlaggedContractSink
from pipeline.runner import ScreeningRunner, RunState, RunSummary, PipelineStage
