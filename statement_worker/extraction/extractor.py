"""AI-powered bank statement transaction extractor."""

import json
from pathlib import Path

from statement_worker.extraction.base import BaseExtractor
from statement_worker.extraction.client_base import BaseExtractionClient
from statement_worker.extraction.exceptions import ExtractionError
from statement_worker.extraction.json_repair import repair_truncated_json, strip_code_fences
from statement_worker.extraction.models import ExtractedTransaction, ExtractionRequest
from statement_worker.extraction.prompt_loader import load_json_schema, load_prompt_template
from statement_worker.extraction.validator import validate_and_build
from statement_worker.logging.logger import Log

_DEFAULT_SYSTEM_PROMPT = (
    "You convert bank statements into structured transactions. "
    "Respond with JSON only."
)


class Extractor(BaseExtractor):
    """Extracts statement transactions through an OpenAI-compatible chat model."""

    def __init__(
        self,
        *,
        client: BaseExtractionClient,
        model: str,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = _DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def extract(self, request: ExtractionRequest) -> list[ExtractedTransaction]:
        """Extract transactions for one chunk or page batch."""
        prompt = self._build_prompt(request)
        Log.debug(f"Extraction prompt for {request.label or 'document'}:\n{prompt}")

        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
            images=request.images or None,
        )
        Log.debug(f"AI raw response:\n{raw_response}")

        transactions = validate_and_build(self._parse_json(raw_response))
        if request.is_bounded:
            transactions = self._within_bounds(transactions, request)

        Log.info(
            f"Extraction complete: {len(transactions)} transactions",
            chunk=request.label or "document",
        )
        return transactions

    def _build_prompt(self, request: ExtractionRequest) -> str:
        if request.is_bounded:
            period_instructions = (
                f"Only include transactions dated {request.start_date} to "
                f"{request.end_date} inclusive; ignore any others."
            )
        else:
            period_instructions = "Include transactions of every date in the content."
        if request.chunk_total > 1:
            chunk_position = (
                f"This is part {request.chunk_index + 1} of {request.chunk_total} "
                f"of the statement ({request.label})."
            )
        else:
            chunk_position = "This is the complete statement."
        statement_text = request.text
        if request.images:
            statement_text = f"(statement pages attached as {len(request.images)} images)"
        return self._prompt_template.format(
            period_instructions=period_instructions,
            chunk_position=chunk_position,
            statement_text=statement_text,
            json_schema=self._json_schema,
        )

    @staticmethod
    def _within_bounds(
        transactions: list[ExtractedTransaction],
        request: ExtractionRequest,
    ) -> list[ExtractedTransaction]:
        start, end = request.start_date, request.end_date
        if start is None or end is None:
            return transactions
        kept = [t for t in transactions if start <= t.date <= end]
        if len(kept) < len(transactions):
            Log.info(
                f"Discarded {len(transactions) - len(kept)} out-of-range transactions",
                chunk=request.label,
            )
        return kept

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = strip_code_fences(raw)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            if "{" not in cleaned:
                raise ExtractionError(f"Invalid JSON response: {exc}") from exc
            Log.warning("JSON parse failed, attempting truncation repair")
            try:
                parsed = json.loads(repair_truncated_json(cleaned))
            except json.JSONDecodeError as exc:
                raise ExtractionError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ExtractionError("JSON response must be an object")
        return parsed
