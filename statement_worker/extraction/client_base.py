from abc import ABC, abstractmethod


class BaseExtractionClient(ABC):
    """Contract for provider-specific extraction AI clients."""

    @abstractmethod
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
        """Return provider response as plain text.

        ``images`` are base64-encoded PNG pages for vision-capable models.
        """
