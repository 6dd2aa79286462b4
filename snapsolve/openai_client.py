"""OpenAI vision analysis integration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from snapsolve.analysis import parse_result_entry
from snapsolve.config import OpenAIConfig
from snapsolve.errors import AnalysisError
from snapsolve.rendering import strip_code_fences
from snapsolve.types import AnalysisRequest, AnalysisResult


@dataclass(slots=True)
class OpenAIAnalysisClient:
    """Analyzes screenshots with the OpenAI Responses API."""

    config: OpenAIConfig
    system_prompt: str
    _client: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        """Initialize the OpenAI client lazily at construction."""
        try:
            from openai import OpenAI
        except ImportError as error:
            raise RuntimeError("openai package is required for the OpenAI backend.") from error

        self._client = OpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout_seconds,
        )

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Send prompt text plus every screenshot and parse the JSON reply."""
        from openai import OpenAIError

        content: list[dict[str, str]] = [{"type": "input_text", "text": request.prompt_text}]
        content.extend(
            {"type": "input_image", "image_url": artifact.data_url}
            for artifact in request.artifacts
        )
        try:
            response: Any = self._client.responses.create(
                model=self.config.model,
                max_output_tokens=self.config.max_output_tokens,
                input=[
                    {
                        "role": "system",
                        "content": [{"type": "input_text", "text": self.system_prompt}],
                    },
                    {"role": "user", "content": content},
                ],
            )
        except OpenAIError as error:
            raise AnalysisError(f"OpenAI request failed: {error}") from error

        return self._parse_completion(self._extract_text(response))

    def _parse_completion(self, text: str) -> AnalysisResult:
        """Decode the JSON object the system prompt asks for."""
        try:
            payload: Any = json.loads(strip_code_fences(text))
        except json.JSONDecodeError as error:
            raise AnalysisError("OpenAI reply was not valid JSON.") from error
        return parse_result_entry(payload)

    def _extract_text(self, response: Any) -> str:
        """Extract plain text from an OpenAI response object."""
        output_text: str | None = getattr(response, "output_text", None)
        if output_text and output_text.strip():
            return output_text.strip()

        output: list[Any] = getattr(response, "output", [])
        chunks: list[str] = []
        for item in output:
            content_items: list[Any] = getattr(item, "content", None) or []
            for content in content_items:
                text: str | None = getattr(content, "text", None)
                if text:
                    chunks.append(text.strip())

        if chunks:
            return "\n".join(chunk for chunk in chunks if chunk)
        raise AnalysisError("OpenAI response did not contain text output.")
