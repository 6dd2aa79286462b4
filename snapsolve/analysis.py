"""Stand-in analysis backend and client selection."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Any

import requests

from snapsolve.config import AppConfig
from snapsolve.errors import AnalysisError
from snapsolve.interfaces import AnalysisClient
from snapsolve.types import AnalysisRequest, AnalysisResult

LOGGER = logging.getLogger(__name__)


def parse_result_entry(entry: Any) -> AnalysisResult:
    """Parse one collection entry, unwrapping ``{"response": {...}}`` if present."""
    if isinstance(entry, dict) and isinstance(entry.get("response"), dict):
        entry = entry["response"]
    if not isinstance(entry, dict):
        raise AnalysisError("Analysis entry is not a JSON object.")
    try:
        return AnalysisResult.from_mapping(entry)
    except ValueError as error:
        raise AnalysisError(f"Analysis entry is malformed: {error}") from error


@dataclass(slots=True)
class JsonServerAnalysisClient:
    """Returns a random pre-seeded result from a local JSON collection.

    The submitted screenshots are ignored. The collection lives at
    ``GET <base_url>/responses`` and holds an array of result objects.
    """

    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 30.0
    rng: random.Random = field(default_factory=random.Random)
    session: requests.Session = field(default_factory=requests.Session, repr=False)
    logger: logging.Logger = LOGGER

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Fetch the collection and pick one entry uniformly at random."""
        url: str = f"{self.base_url.rstrip('/')}/responses"
        self.logger.debug(
            "Submitting %d screenshot(s) to stand-in backend %s.", len(request.artifacts), url
        )
        try:
            response = self.session.get(url, timeout=self.timeout_seconds)
            response.raise_for_status()
            entries: Any = response.json()
        except requests.RequestException as error:
            raise AnalysisError(f"Could not reach the stand-in backend: {error}") from error
        except ValueError as error:
            raise AnalysisError("Stand-in backend returned a non-JSON body.") from error

        if not isinstance(entries, list) or not entries:
            raise AnalysisError("Stand-in backend returned no results.")
        return parse_result_entry(self.rng.choice(entries))


def build_analysis_client(config: AppConfig) -> AnalysisClient:
    """Create the analysis client selected by configuration."""
    if config.backend == "openai":
        from snapsolve.openai_client import OpenAIAnalysisClient

        if config.openai is None:
            raise ValueError("OpenAI backend selected but OpenAI settings are missing.")
        return OpenAIAnalysisClient(config=config.openai, system_prompt=config.system_prompt)
    return JsonServerAnalysisClient(
        base_url=config.mock_server_url,
        timeout_seconds=config.request_timeout_seconds,
    )
