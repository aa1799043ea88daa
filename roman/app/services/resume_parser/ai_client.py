"""
Resume structuring via OpenAI chat completions.
Text formats send the extracted text; images send base64 PNG data for vision extraction.
Unparsable model output degrades to raw text with empty structured data.
"""
from __future__ import annotations

import base64
import json
import re
from dataclasses import dataclass, field
from typing import Any

from openai import APIError, AsyncOpenAI

from roman.app.core.config import MIN_API_KEY_LENGTH, Settings, settings as default_settings
from roman.app.core.errors import AIStructuringError, ConfigurationError
from roman.app.core.logging_config import get_logger
from roman.app.schemas.resume import FileType

logger = get_logger("services.resume_parser.ai_client")

_RESPONSE_SHAPE = """{
  "text": "full resume text cleaned up and formatted",
  "structuredData": {
    "name": "Full Name",
    "email": "email@example.com",
    "phone": "phone number",
    "skills": ["skill1", "skill2"],
    "experience": ["job1: description", "job2: description"],
    "education": ["degree1", "degree2"]
  }
}"""

TEXT_PROMPT = (
    "Please extract and structure the following resume content. "
    "Return a JSON object with the following format:\n"
    f"{_RESPONSE_SHAPE}\n\n"
    "Resume content:\n"
)

IMAGE_PROMPT = (
    "Please extract and structure all text from this resume image. "
    "Return a JSON object with the following format:\n"
    f"{_RESPONSE_SHAPE}"
)


@dataclass
class AIStructuringOutput:
    text: str
    structured_data: dict[str, Any] = field(default_factory=dict)


def build_messages(content: str | bytes, file_type: FileType) -> list[dict[str, Any]]:
    """Chat messages for a resume. Same input always yields the same messages."""
    if file_type in ("pdf", "docx", "doc"):
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        return [{"role": "user", "content": TEXT_PROMPT + content}]

    raw = content.encode("utf-8") if isinstance(content, str) else content
    b64 = base64.b64encode(raw).decode("ascii")
    return [{
        "role": "user",
        "content": [
            {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{b64}"}},
            {"type": "text", "text": IMAGE_PROMPT},
        ],
    }]


def strip_code_fences(content: str) -> str:
    """Remove a surrounding ```json ... ``` block, if any."""
    content = (content or "").strip()
    return re.sub(r"^```\w*\n?", "", content).replace("```", "").strip()


def parse_ai_response(response_text: str) -> AIStructuringOutput:
    try:
        parsed = json.loads(strip_code_fences(response_text))
    except (TypeError, ValueError):
        parsed = None
    if not isinstance(parsed, dict):
        logger.warning("Failed to parse AI response as JSON, using raw text")
        return AIStructuringOutput(text=response_text or "", structured_data={})

    structured = parsed.get("structuredData")
    return AIStructuringOutput(
        text=str(parsed.get("text") or ""),
        structured_data=structured if isinstance(structured, dict) else {},
    )


class AIStructuringClient:
    def __init__(self, cfg: Settings | None = None, client: AsyncOpenAI | None = None):
        self.cfg = cfg or default_settings
        self._client = client

    def _validate_api_key(self) -> str:
        api_key = (self.cfg.openai_api_key or "").strip()
        if not api_key:
            logger.error("OPENAI_API_KEY environment variable is missing or empty")
            raise ConfigurationError("AI service configuration error: API key missing")
        if len(api_key) < MIN_API_KEY_LENGTH:
            logger.error("OPENAI_API_KEY appears to be invalid (too short)")
            raise ConfigurationError("AI service configuration error: API key invalid")
        return api_key

    def _get_client(self) -> AsyncOpenAI:
        api_key = self._validate_api_key()
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=api_key,
                timeout=self.cfg.ai_request_timeout,
                max_retries=self.cfg.ai_max_retries,
            )
        return self._client

    def build_request(self, content: str | bytes, file_type: FileType) -> dict[str, Any]:
        return {
            "model": self.cfg.openai_model,
            "messages": build_messages(content, file_type),
            "temperature": 0,
            "response_format": {"type": "json_object"},
            "max_tokens": self.cfg.ai_max_tokens,
        }

    async def structure(self, content: str | bytes, file_type: FileType) -> AIStructuringOutput:
        client = self._get_client()
        request = self.build_request(content, file_type)
        logger.info("Structuring %s resume with model=%s", file_type, request["model"])
        try:
            resp = await client.chat.completions.create(**request)
        except APIError as e:
            logger.error("AI structuring failed: %s", e)
            raise AIStructuringError(f"AI structuring failed: {e}") from e
        if not resp.choices:
            raise AIStructuringError("AI structuring failed: empty response")
        response_text = resp.choices[0].message.content or ""
        result = parse_ai_response(response_text)
        logger.info("AI structuring completed chars=%d", len(result.text))
        return result
