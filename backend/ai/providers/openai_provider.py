from typing import Any

import httpx

from ai.providers.base import AIProvider, AIProviderError


class OpenAIProvider(AIProvider):
    """OpenAI-compatible chat completions provider."""

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_MAX_COMPLETION_TOKENS = 300

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        timeout_seconds: float = 30,
        base_url: str | None = None,
    ):
        super().__init__(api_key, model, timeout_seconds)
        self.url = f"{(base_url or self.DEFAULT_BASE_URL).rstrip('/')}/chat/completions"
        self._headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    # ------------------------------------------------------------------
    # chat
    # ------------------------------------------------------------------
    async def chat(
        self,
        messages: list[dict],
        model: str,
        system: str = "",
        max_tokens: int | None = None,
    ) -> dict:
        full_messages = list(messages)
        if system:
            full_messages.insert(0, {"role": "system", "content": system})

        payload: dict[str, Any] = {
            "model": model,
            "messages": full_messages,
        }
        payload.update(self._token_limit_field(model, max_tokens or self.DEFAULT_MAX_COMPLETION_TOKENS))
        return await self._non_stream_chat(payload)

    # ------------------------------------------------------------------
    # chat_with_vision
    # ------------------------------------------------------------------
    async def chat_with_vision(
        self,
        messages: list[dict],
        image_data_url: str,
        model: str,
        system: str = "",
        max_tokens: int | None = None,
    ) -> dict:
        # Convert user turns to multimodal content carrying the image.
        vision_messages = []
        if system:
            vision_messages.append({"role": "system", "content": system})

        for msg in messages:
            text_content = msg.get("content", "")
            if msg["role"] == "user" and isinstance(text_content, str):
                vision_messages.append({
                    "role": "user",
                    "content": [
                        {"type": "text", "text": text_content},
                        {"type": "image_url", "image_url": {"url": image_data_url}},
                    ],
                })
            else:
                vision_messages.append(msg)

        payload: dict[str, Any] = {
            "model": model,
            "messages": vision_messages,
        }
        payload.update(self._token_limit_field(model, max_tokens or self.DEFAULT_MAX_COMPLETION_TOKENS))
        return await self._non_stream_chat(payload)

    # ---- transport ----------------------------------------------------
    async def _non_stream_chat(self, payload: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.post(self.url, headers=self._headers, json=payload)
                if resp.status_code != 200 and self._should_retry_with_alt_token_field(resp):
                    resp = await client.post(
                        self.url,
                        headers=self._headers,
                        json=self._swap_token_limit_field(payload),
                    )
        except httpx.HTTPError as exc:
            raise AIProviderError(f"OpenAI request failed: {exc}") from exc
        if resp.status_code != 200:
            raise AIProviderError(f"OpenAI API error {resp.status_code}: {resp.text[:500]}")
        data = resp.json()

        choice = (data.get("choices") or [{}])[0]
        content = (choice.get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}

        return {
            "content": content,
            "tokens_in": usage.get("prompt_tokens", 0),
            "tokens_out": usage.get("completion_tokens", 0),
            "model": data.get("model", payload["model"]),
        }

    def _token_limit_field(self, model: str, limit: int) -> dict[str, int]:
        m = (model or "").strip().lower()
        if m.startswith("o") or m.startswith("gpt-5") or m.startswith("gpt-4.1"):
            return {"max_completion_tokens": limit}
        return {"max_tokens": limit}

    def _swap_token_limit_field(self, payload: dict[str, Any]) -> dict[str, Any]:
        swapped = dict(payload)
        if "max_tokens" in swapped:
            value = swapped.pop("max_tokens")
            swapped["max_completion_tokens"] = value
            return swapped
        if "max_completion_tokens" in swapped:
            value = swapped.pop("max_completion_tokens")
            swapped["max_tokens"] = value
        return swapped

    def _should_retry_with_alt_token_field(self, resp: httpx.Response) -> bool:
        if resp.status_code != 400:
            return False
        text = (resp.text or "").lower()
        unsupported_param = "unsupported parameter" in text
        mentions_max_tokens = "max_tokens" in text or "max_completion_tokens" in text
        return unsupported_param and mentions_max_tokens
