from typing import Any

import httpx
import openai

from docflow.ai.client_base import BaseGenerativeClientAdapter
from docflow.ai.exceptions import ServiceCallError


class OpenAIClientAdapter(BaseGenerativeClientAdapter):
    """Generative client adapter built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        # Retries and model fallback are handled by GenerativeClient.
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
            max_retries=0,
        )

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float,
        json_response: bool = False,
    ) -> str:
        kwargs: dict[str, Any] = {}
        if json_response:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except openai.APIStatusError as exc:
            raise ServiceCallError(
                f"AI provider API error: {exc}", status_code=exc.status_code
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ServiceCallError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ServiceCallError(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise ServiceCallError("AI returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise ServiceCallError("AI returned empty response")
        return content
