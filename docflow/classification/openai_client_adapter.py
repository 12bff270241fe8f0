from typing import Any

import httpx
import openai

from docflow.classification.client_base import BaseClassificationClient
from docflow.classification.exceptions import ClassificationError, ClassificationNetworkError

RESULT_SCHEMA_NAME = "classification_result"

_NETWORK_ERRORS = (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException)


def _chat_messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
    """The vocabulary lives in the user prompt; a system prompt is optional."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})
    return messages


def _structured_output(json_schema: dict[str, object]) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {"name": RESULT_SCHEMA_NAME, "strict": True, "schema": json_schema},
    }


class OpenAIClientAdapter(BaseClassificationClient):
    """Sends classification prompts to any OpenAI-compatible chat endpoint.

    The answer is constrained by the category schema, so the model can only
    name a category from the vocabulary or ``unknown``.
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format=_structured_output(json_schema),
                messages=_chat_messages(system_prompt, user_prompt),
            )
        except _NETWORK_ERRORS as exc:
            raise ClassificationNetworkError(f"AI provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise ClassificationNetworkError(f"AI provider API error: {exc}") from exc
        return self._answer_text(response)

    @staticmethod
    def _answer_text(response: Any) -> str:
        if not response.choices:
            raise ClassificationError("AI returned no choices")
        message = response.choices[0].message
        refusal = getattr(message, "refusal", None)
        if refusal:
            raise ClassificationError(f"AI refused to classify: {refusal}")
        if message.content is None:
            raise ClassificationError("AI returned empty response")
        return message.content
