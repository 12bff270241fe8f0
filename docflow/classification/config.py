"""Typed classification configuration, validated once at startup."""

import json
import string
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docflow.classification.exceptions import ClassificationConfigError
from docflow.classification.prompt_loader import load_json_schema, load_prompt_template
from docflow.pipeline.models import UNKNOWN_CATEGORY

REQUIRED_PLACEHOLDERS = frozenset({"categories", "document_text", "json_schema"})


@dataclass(frozen=True)
class ClassificationConfig:
    """Category vocabulary plus the prompt and response schema built from it."""

    categories: tuple[str, ...]
    prompt_template: str
    json_schema: dict[str, Any]

    @property
    def allowed_types(self) -> frozenset[str]:
        return frozenset(self.categories) | {UNKNOWN_CATEGORY}

    @property
    def json_schema_text(self) -> str:
        return json.dumps(self.json_schema, indent=2)

    def render_prompt(self, document_text: str) -> str:
        return self.prompt_template.format(
            categories=json.dumps(list(self.categories)),
            json_schema=self.json_schema_text,
            document_text=document_text,
        )

    @classmethod
    def load(
        cls,
        categories: Sequence[str],
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> "ClassificationConfig":
        """Build and validate the configuration.

        Raises:
            ClassificationConfigError: on an empty vocabulary, a template with
                missing or unexpected placeholders, or an unusable schema.
        """
        vocabulary = tuple(categories)
        if not vocabulary:
            raise ClassificationConfigError("Category vocabulary must not be empty")

        template = load_prompt_template(prompt_template_path)
        _check_placeholders(template)

        try:
            schema = json.loads(load_json_schema(json_schema_path))
        except json.JSONDecodeError as exc:
            raise ClassificationConfigError(f"JSON schema is not valid JSON: {exc}") from exc
        return cls(
            categories=vocabulary,
            prompt_template=template,
            json_schema=_with_vocabulary(schema, vocabulary),
        )


def _check_placeholders(template: str) -> None:
    try:
        found = {
            name
            for _literal, name, _spec, _conversion in string.Formatter().parse(template)
            if name is not None
        }
    except ValueError as exc:
        raise ClassificationConfigError(f"Prompt template is malformed: {exc}") from exc
    missing = REQUIRED_PLACEHOLDERS - found
    unexpected = found - REQUIRED_PLACEHOLDERS
    if missing:
        raise ClassificationConfigError(
            f"Prompt template is missing placeholders: {sorted(missing)}"
        )
    if unexpected:
        raise ClassificationConfigError(
            f"Prompt template has unknown placeholders: {sorted(unexpected)}"
        )


def _with_vocabulary(schema: Any, categories: tuple[str, ...]) -> dict[str, Any]:
    if not isinstance(schema, dict):
        raise ClassificationConfigError("JSON schema must be an object")
    properties = schema.get("properties")
    if not isinstance(properties, dict) or not isinstance(properties.get("type"), dict):
        raise ClassificationConfigError("JSON schema must define a 'type' property")
    type_property = {
        **properties["type"],
        "enum": [*categories, UNKNOWN_CATEGORY],
    }
    return {**schema, "properties": {**properties, "type": type_property}}
