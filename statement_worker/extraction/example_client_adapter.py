"""Example extraction client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseExtractionClient and register the provider in ExtractorFactory.
"""

import json
from typing import ClassVar

from statement_worker.extraction.client_base import BaseExtractionClient


class ExampleClientAdapter(BaseExtractionClient):
    """Example adapter that returns a fixed, empty transaction list.

    No network calls. Useful for local development and smoke runs of the
    worker against a real database without spending provider credits.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {"transactions": []}

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
        images: list[str] | None = None,
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema, images
        return json.dumps(self.DEFAULT_RESPONSE)
