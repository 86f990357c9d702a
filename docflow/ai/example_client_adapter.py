"""Example generative client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseGenerativeClientAdapter and register the provider in
GenerativeClientFactory.
"""

import json
from typing import ClassVar

from docflow.ai.client_base import BaseGenerativeClientAdapter


class ExampleClientAdapter(BaseGenerativeClientAdapter):
    """Example adapter that returns fixed responses.

    No network calls. Useful for local development and tests.
    """

    DEFAULT_TEXT: ClassVar[str] = "This is an example response."
    DEFAULT_JSON: ClassVar[dict[str, object]] = {"quiz": [], "suggestions": []}

    def generate(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float,
        json_response: bool = False,
    ) -> str:
        _ = model, prompt, temperature
        if json_response:
            return json.dumps(self.DEFAULT_JSON)
        return self.DEFAULT_TEXT
