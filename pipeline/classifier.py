"""
Adapter around the external LLM classifier.

The judgement itself is delegated to the model; this module only builds the
request, retries it, and turns the answer into FlaggedContract objects.
Running out of retries is not fatal: the batch is treated as having no flags.
"""

import json
import logging
from typing import Any, List, Optional, Sequence

from openai import AsyncOpenAI
from pydantic import ValidationError

from core.config import settings
from core.exceptions import ClassifierResponseError, RetryExhaustedError
from pipeline.prompts import build_messages
from pipeline.retry import RetryPolicy
from schemas.contracts import Contract, FlaggedContract

logger = logging.getLogger(__name__)


class ContractClassifier:
    """
    Map a batch of candidate contracts to zero or more flagged results.

    Attributes:
        model: Chat model name
        temperature: Sampling temperature (kept low for stable answers)
        retry_policy: Retry/backoff policy around the chat completion call
    """

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        temperature: float = 0.1
    ):
        # Retries are handled by RetryPolicy, not the SDK
        self._client = client or AsyncOpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.REQUEST_TIMEOUT,
            max_retries=0,
        )
        self.model = model or settings.OPENAI_MODEL
        self.retry_policy = retry_policy or RetryPolicy()
        self.temperature = temperature

    async def aclose(self) -> None:
        await self._client.close()

    async def _complete(self, messages: List[dict]) -> Optional[str]:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )
        if not response.choices:
            return None
        return response.choices[0].message.content

    async def classify(self, candidates: Sequence[Contract]) -> List[FlaggedContract]:
        """
        Classify one batch of candidates.

        Returns:
            Flagged results, at most one per candidate. Empty when the
            classifier flags nothing, answers with something malformed, or
            keeps failing after all retries.
        """
        if not candidates:
            return []

        first_id = candidates[0].identifier
        logger.info(f"Analyzing {len(candidates)} contracts (batch starting at {first_id})...")

        messages = build_messages([c.payload for c in candidates])

        try:
            content = await self.retry_policy.run(
                lambda: self._complete(messages),
                description=f"classification of batch starting at {first_id}"
            )
        except RetryExhaustedError as e:
            logger.error(
                f"Error analyzing contracts, skipping batch starting at {first_id}: {e}",
                extra={"error_context": e.to_dict()}
            )
            return []

        try:
            entries = self.parse_response(content)
        except ClassifierResponseError as e:
            logger.warning(f"Ignoring classifier answer for batch starting at {first_id}: {e.message}")
            return []

        return self._collect_results(entries, candidates)

    @staticmethod
    def parse_response(content: Optional[str]) -> List[Any]:
        """
        Extract the ``contracts`` list from the raw answer.

        Raises:
            ClassifierResponseError: If the answer is not ``{"contracts": [...]}``
        """
        if not content:
            raise ClassifierResponseError("Empty response from classifier")

        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            raise ClassifierResponseError(
                "Classifier response is not valid JSON",
                context={"response_body": content[:500]},
                original_exception=e
            )

        if not isinstance(parsed, dict):
            raise ClassifierResponseError(
                "Classifier response is not a JSON object",
                context={"response_type": type(parsed).__name__}
            )

        contracts = parsed.get("contracts")
        if contracts is None:
            return []
        if not isinstance(contracts, list):
            raise ClassifierResponseError(
                "'contracts' is not a list",
                context={"response_type": type(contracts).__name__}
            )
        return contracts

    def _collect_results(
        self,
        entries: List[Any],
        candidates: Sequence[Contract]
    ) -> List[FlaggedContract]:
        candidate_ids = {c.identifier for c in candidates}
        results: List[FlaggedContract] = []
        seen = set()

        for entry in entries:
            try:
                flagged = FlaggedContract.model_validate(entry)
            except ValidationError as e:
                logger.warning(f"Skipping invalid classifier entry: {e.error_count()} validation error(s)")
                continue

            if flagged.identifier not in candidate_ids:
                logger.warning(f"Skipping flag for unknown contract {flagged.identifier}")
                continue
            if flagged.identifier in seen:
                continue

            seen.add(flagged.identifier)
            results.append(flagged)

        return results
