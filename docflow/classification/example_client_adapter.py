"""Example classification client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseClassificationClient and register the provider in ClassifierFactory.
"""

import json
from dataclasses import asdict

from docflow.classification.client_base import BaseClassificationClient
from docflow.classification.models import ClassificationResult


class ExampleClientAdapter(BaseClassificationClient):
    """Example adapter that answers every document with the fallback category.

    No network calls. Useful for local development and tests.
    """

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(asdict(ClassificationResult.unknown()))
