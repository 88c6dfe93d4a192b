from abc import ABC, abstractmethod


class AIProviderError(Exception):
    """Raised when the completion service is unreachable or returns an error."""


class AIProvider(ABC):
    """Abstract base class for text-completion providers."""

    DEFAULT_MODEL = ""

    def __init__(self, api_key: str, model: str | None = None, timeout_seconds: float = 30):
        self.api_key = api_key
        self._model = model
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        model: str,
        system: str = "",
        max_tokens: int | None = None,
    ) -> dict:
        """Send a chat request to the provider.

        Args:
            messages: List of message dicts with role and content.
            model: Model identifier to use.
            system: Optional system instruction.
            max_tokens: Optional completion token limit.

        Returns:
            dict with content, tokens_in, tokens_out, model.
        """
        ...

    @abstractmethod
    async def chat_with_vision(
        self,
        messages: list[dict],
        image_data_url: str,
        model: str,
        system: str = "",
        max_tokens: int | None = None,
    ) -> dict:
        """Send a chat request whose user turn carries an inlined image.

        Returns:
            dict with content, tokens_in, tokens_out, model.
        """
        ...

    def get_model(self) -> str:
        return self._model or self.DEFAULT_MODEL
