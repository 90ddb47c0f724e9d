"""Entity tagger backed by an OpenAI-compatible chat API.

Defaults point at a local Ollama endpoint: the text handed to the tagger
still contains unmasked names, so a remote provider should only be
configured deliberately.
"""

import json
from pathlib import Path
from typing import Any

import httpx
import openai

from privacymail.logging.logger import Log
from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.exceptions import TaggingError, TaggingNetworkError
from privacymail.tagging.models import TaggedEntities

_PROMPT_DIR = Path(__file__).parent / "prompts"


class LlmTagger(BaseEntityTagger):
    """Asks a chat model for person, location and organization names."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        timeout_seconds: int,
        base_url: str | None = None,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._model = model
        self._prompt_template = self._read(
            prompt_template_path or _PROMPT_DIR / "tagging_prompt.txt", "prompt template"
        )
        self._json_schema = self._read(
            json_schema_path or _PROMPT_DIR / "tagging_schema.json", "JSON schema"
        )
        self._json_schema_dict = json.loads(self._json_schema)

    @staticmethod
    def _read(path: Path, what: str) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TaggingError(f"Failed to load {what}: {exc}") from exc

    def tag(self, text: str) -> TaggedEntities:
        prompt = self._prompt_template.format(text=text, json_schema=self._json_schema)
        raw = self._call_ai(prompt)
        Log.debug(f"Tagger raw response: {len(raw)} chars")
        return self._build(self._parse_json(raw))

    def _call_ai(self, prompt: str) -> str:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                temperature=0.0,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": "tagged_entities",
                        "strict": True,
                        "schema": self._json_schema_dict,
                    },
                },
                messages=[{"role": "user", "content": prompt}],
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise TaggingNetworkError(f"Tagging provider network error: {exc}") from exc
        except openai.APIError as exc:
            raise TaggingNetworkError(f"Tagging provider API error: {exc}") from exc

        if not response.choices:
            raise TaggingError("Tagging provider returned no choices")
        content = response.choices[0].message.content
        if content is None:
            raise TaggingError("Tagging provider returned empty response")
        return content

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise TaggingError(f"Tagging provider returned invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise TaggingError("Tagging provider response must be a JSON object")
        return data

    @staticmethod
    def _build(data: dict[str, Any]) -> TaggedEntities:
        def strings(key: str) -> list[str]:
            values = data.get(key) or []
            if not isinstance(values, list):
                return []
            return [value for value in values if isinstance(value, str)]

        return TaggedEntities(
            persons=strings("persons"),
            locations=strings("locations"),
            organizations=strings("organizations"),
        )
