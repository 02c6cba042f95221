"""
HTTP client for the Gemini violation oracle.

The model only lists violations. Its response schema has no score or
summary fields, and anything aggregate it returns anyway is dropped;
scoring happens in ``services.scoring``.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Sequence

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..core.config import Settings
from ..core.exceptions import OracleError
from ..schemas.analysis import Frame
from ..schemas.audit import CodeEvidence, SuggestedFix, Violation, VisualEvidence

logger = structlog.get_logger(__name__)

AGGREGATE_FIELDS = ("overall_score", "summary", "wcag_compliance", "score")

VIOLATION_LIST_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "violations": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "severity": {"type": "STRING", "enum": ["critical", "high", "medium", "low"]},
                    "wcag_criterion": {"type": "STRING"},
                    "title": {"type": "STRING"},
                    "description": {"type": "STRING"},
                    "visual_evidence": {
                        "type": "OBJECT",
                        "properties": {
                            "frame_timestamp": {"type": "STRING"},
                            "description": {"type": "STRING"},
                            "frame_image_url": {"type": "STRING"},
                        },
                    },
                    "code_evidence": {
                        "type": "OBJECT",
                        "properties": {
                            "file": {"type": "STRING"},
                            "line": {"type": "INTEGER"},
                            "snippet": {"type": "STRING"},
                        },
                    },
                    "reasoning": {"type": "STRING"},
                    "user_impact": {"type": "STRING"},
                    "suggested_fix": {
                        "type": "OBJECT",
                        "properties": {
                            "code": {"type": "STRING"},
                            "explanation": {"type": "STRING"},
                        },
                    },
                },
                "required": ["severity", "wcag_criterion", "title", "description", "user_impact", "suggested_fix"],
            },
        },
    },
    "required": ["violations"],
}

AUDIT_INSTRUCTIONS = """
You are an expert WCAG 2.1 AA accessibility auditor.

Analyze the video frames and source code above and list ALL accessibility
violations you can find.

Do NOT compute an overall score, summary or compliance verdict. Only list
violations; scoring is done separately.

Assign each violation a severity:
- "critical": blocks access entirely (missing alt text on primary images,
  keyboard traps, contrast below 3:1).
- "high": major barrier (contrast between 3:1 and 4.4:1, broken heading
  hierarchy).
- "medium": usability impact (touch targets of 40-44px).
- "low": best-practice issue.

Check contrast, touch targets, focus indicators, semantic HTML, ARIA roles
and alt text. Tie visual evidence to code evidence where possible.
"""


class OracleViolation(BaseModel):
    """Shape the oracle must return for each violation."""
    id: Optional[str] = None
    severity: Literal["critical", "high", "medium", "low"]
    wcag_criterion: str
    title: str
    description: str
    visual_evidence: Optional[VisualEvidence] = None
    code_evidence: Optional[CodeEvidence] = None
    reasoning: Optional[str] = None
    user_impact: str
    suggested_fix: SuggestedFix

    def to_violation(self) -> Violation:
        return Violation.model_validate(self.model_dump())


def build_parts(frames: Sequence[Frame], code: str, code_filename: Optional[str] = None) -> List[Dict[str, Any]]:
    """Request parts: source context, then one caption + image per frame, then instructions."""
    header = f"SOURCE CODE CONTEXT ({code_filename}):" if code_filename else "SOURCE CODE CONTEXT:"
    parts: List[Dict[str, Any]] = [{"text": f"{header}\n{code}\n\n"}]
    for frame in frames:
        parts.append({"text": f"Frame at timestamp {frame.timestamp}:"})
        parts.append({"inlineData": {"mimeType": frame.mime_type, "data": frame.image_data}})
    parts.append({"text": AUDIT_INSTRUCTIONS})
    return parts


def parse_violations(text: str) -> List[Violation]:
    """Decode the model's JSON answer into violations, dropping aggregate fields."""
    try:
        payload = json.loads(text)
    except ValueError as e:
        raise OracleError("Model returned malformed JSON") from e

    if isinstance(payload, dict):
        ignored = [name for name in AGGREGATE_FIELDS if name in payload]
        if ignored:
            logger.warning("Ignoring aggregate fields from oracle", fields=ignored)
        items = payload.get("violations")
    else:
        items = payload

    if not isinstance(items, list):
        raise OracleError("Model response has no violations list")

    violations = []
    rejected = 0
    for item in items:
        try:
            violations.append(OracleViolation.model_validate(item).to_violation())
        except ValidationError as e:
            rejected += 1
            logger.warning("Rejected malformed violation", error_count=e.error_count())
    if rejected:
        logger.info("Oracle violations filtered", accepted=len(violations), rejected=rejected)
    return violations


class GeminiClient:
    """Calls Gemini ``generateContent`` with a violations-only JSON schema."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-3-pro-preview",
        timeout: float = 120.0,
        temperature: float = 0.1,
        thinking_budget: int = 2048,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.thinking_budget = thinking_budget
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=10.0),
            headers={"Content-Type": "application/json"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeminiClient":
        return cls(
            api_key=settings.gemini_api_key,
            base_url=settings.gemini_base_url,
            model=settings.gemini_model,
            timeout=settings.gemini_timeout,
            temperature=settings.gemini_temperature,
            thinking_budget=settings.gemini_thinking_budget,
        )

    def _request_body(self, frames: Sequence[Frame], code: str, code_filename: Optional[str]) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": build_parts(frames, code, code_filename)}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": VIOLATION_LIST_SCHEMA,
                "temperature": self.temperature,
                "topP": 0.95,
                "topK": 40,
                "thinkingConfig": {"thinkingBudget": self.thinking_budget},
            },
        }

    async def detect_violations(
        self,
        frames: Sequence[Frame],
        code: str,
        code_filename: Optional[str] = None,
    ) -> List[Violation]:
        if not self.api_key:
            raise OracleError("Gemini API key is missing. Set GEMINI_API_KEY.", code="ORACLE_NOT_CONFIGURED")

        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.info("Requesting violation analysis", model=self.model, frames=len(frames), code_chars=len(code))

        try:
            response = await self.client.post(
                url,
                json=self._request_body(frames, code, code_filename),
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Oracle request rejected", status_code=e.response.status_code)
            raise OracleError(f"Model request failed with status {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error("Oracle request failed", error=str(e), error_type=type(e).__name__)
            raise OracleError("Model request failed") from e

        try:
            text = _response_text(response.json())
        except ValueError as e:
            raise OracleError("Model returned a non-JSON envelope") from e
        if not text:
            raise OracleError("No response from model")

        violations = parse_violations(text)
        logger.info("Violation analysis complete", violations=len(violations))
        return violations

    async def aclose(self) -> None:
        await self.client.aclose()


def _response_text(data: Dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    # Thinking models may emit thought parts before the answer.
    return "".join(part.get("text", "") for part in parts if not part.get("thought"))
