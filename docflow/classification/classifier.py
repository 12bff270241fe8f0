"""AI-powered document classifier."""

import json
import re

from docflow.classification.base import BaseClassifier
from docflow.classification.client_base import BaseClassificationClient
from docflow.classification.config import ClassificationConfig
from docflow.classification.exceptions import ClassificationError
from docflow.classification.models import ClassificationResult
from docflow.classification.validator import validate_and_build
from docflow.logging.logger import Log

_OPENING_FENCE = re.compile(r"```[a-z]*\n?", re.IGNORECASE)


class Classifier(BaseClassifier):
    """Classifies extracted attachment text into the configured vocabulary."""

    def __init__(
        self,
        *,
        client: BaseClassificationClient,
        model: str,
        config: ClassificationConfig,
        temperature: float = 0.0,
        system_prompt: str = "",
    ) -> None:
        self._client = client
        self._model = model
        self._config = config
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt

    @property
    def categories(self) -> tuple[str, ...]:
        return self._config.categories

    def classify(self, text: str) -> ClassificationResult:
        """Ask the engine for a category; empty text is still sent."""
        prompt = self._config.render_prompt(text)
        Log.debug(f"Classification prompt:\n{prompt}")

        raw_response = self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._config.json_schema,
        )
        Log.debug(f"AI raw response:\n{raw_response}")

        parsed = self._parse_json(raw_response)
        result = validate_and_build(parsed, self._config.allowed_types)
        Log.debug(f"Classification complete: {result.type} ({result.confidence:.2f})")
        return result

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = _OPENING_FENCE.sub("", raw.strip())
        cleaned = cleaned.removesuffix("```").strip()

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ClassificationError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ClassificationError("JSON response must be an object")
        return parsed
