# core/layers/extraction.py
"""
ExtractionLayer (generative backend)

Cleans an unordered token list into structured query candidates:
- namespace (ns- prefix)
- resource kind(s), one candidate per kind
- identifier (instance name or zone)
- intent (list / inspect)

Fail-closed: any transport error, safety block, unparseable reply or
empty validated result collapses to None. Never guesses.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from config import (
    AI_API_KEY,
    AI_BASE_URL,
    AI_ENABLED,
    AI_MAX_OUTPUT_TOKENS,
    AI_MODEL,
    AI_TEMPERATURE,
    AI_TIMEOUT,
)
from core import vocabulary
from core.models import Candidate
from utils.json_parser import extract_json_array
from utils.logger import log_debug, log_error, log_info, log_warning


EXTRACTION_PROMPT = f"""You are a parameter cleaning tool. Turn the unordered input tokens into a JSON array of query objects.

CORE LOGIC:
1. Shared parameters: namespace (starts with "ns-"), identifier (instance name or zone)
2. Find every resource keyword, case-insensitive. Known kinds:
   {", ".join(sorted(vocabulary.RESOURCE_KINDS))}
   Aliases: pod -> pods, db / database -> cluster, bucket -> objectstoragebucket, cert -> certificate
3. Deduplicate (two "devbox" tokens are one resource)
4. No resource keyword at all -> use "pods"
5. One object per recognized resource kind, sharing namespace and identifier

RULES:
- zone tokens are {", ".join(sorted(vocabulary.ZONES))}; a zone is an identifier for list queries
- intent: "inspect" when the user asks to describe / inspect / show logs of ONE named instance, otherwise "list"
- inspect needs a real instance name as identifier, never a zone
- omit fields you cannot find instead of guessing; do not invent namespaces
- order resources by priority: cluster > devbox > pods > everything else

EXAMPLES:
["hzh", "pods", "ns-mh69tey1"] -> [{{"namespace":"ns-mh69tey1","resource":"pods","identifier":"hzh","intent":"list"}}]
["ns-mh69tey1", "devbox", "cluster", "hzh"] -> [{{"namespace":"ns-mh69tey1","resource":"cluster","identifier":"hzh","intent":"list"}},{{"namespace":"ns-mh69tey1","resource":"devbox","identifier":"hzh","intent":"list"}}]
["ns-m1", "hzh"] -> [{{"namespace":"ns-m1","resource":"pods","identifier":"hzh","intent":"list"}}]
["devbox", "describe", "my-app"] -> [{{"resource":"devbox","identifier":"my-app","intent":"inspect"}}]

Return ONLY the JSON array, no markdown code fences."""


class ExtractionError(Exception):
    """Internal to the layer; extract() turns it into None."""


class ExtractionLayer:
    def __init__(
        self,
        base_url: str = AI_BASE_URL,
        api_key: str = AI_API_KEY,
        model: str = AI_MODEL,
        timeout: float = AI_TIMEOUT,
        enabled: bool = AI_ENABLED,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.enabled = enabled and bool(api_key)

    @property
    def url(self) -> str:
        return f"{self.base_url}/v1beta/models/{self.model}:generateContent"

    def build_request(self, tokens: List[str], snapshot: Optional[str] = None) -> Dict[str, Any]:
        parts = [{"text": EXTRACTION_PROMPT}]
        if snapshot:
            parts.append({"text": f"PREVIOUS RESULTS (for follow-up questions):\n{snapshot}"})
        parts.append({"text": f"Input tokens: {json.dumps(tokens)}\nClean them into the standard format."})
        return {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": AI_TEMPERATURE,
                "maxOutputTokens": AI_MAX_OUTPUT_TOKENS,
            },
        }

    async def extract(self, tokens: List[str], snapshot: Optional[str] = None) -> Optional[List[Candidate]]:
        """
        Returns:
            Validated candidates, or None on any failure
        """
        if not self.enabled:
            log_debug("[Extraction] AI backend disabled")
            return None
        if not tokens:
            return None

        try:
            text = await self._generate(tokens, snapshot)
            return self.parse_candidates(text)
        except ExtractionError as e:
            log_warning(f"[Extraction] {e}")
            return None
        except httpx.TimeoutException:
            log_error(f"[Extraction] Timeout after {self.timeout}s")
            return None
        except httpx.HTTPStatusError as e:
            log_error(f"[Extraction] HTTP Error: {e.response.status_code} {e.response.text[:200]}")
            return None
        except httpx.HTTPError as e:
            log_error(f"[Extraction] Request failed: {e}")
            return None

    async def _generate(self, tokens: List[str], snapshot: Optional[str]) -> str:
        payload = self.build_request(tokens, snapshot)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        log_debug(f"[Extraction] POST {self.url} tokens={tokens}")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
            try:
                data = response.json()
            except ValueError as e:
                raise ExtractionError(f"Response is not JSON: {e}")

        return self.reply_text(data)

    @staticmethod
    def reply_text(data: Dict[str, Any]) -> str:
        """
        Pulls the first candidate's text out of a generateContent reply,
        honoring finishReason.
        """
        candidates = data.get("candidates") or []
        if not candidates:
            raise ExtractionError("Reply has no candidates")
        first = candidates[0] or {}

        finish_reason = first.get("finishReason")
        if finish_reason in ("SAFETY", "RECITATION"):
            raise ExtractionError(f"Reply blocked (finishReason={finish_reason})")
        if finish_reason == "MAX_TOKENS":
            log_warning("[Extraction] Reply was truncated at the token limit")

        parts = (first.get("content") or {}).get("parts") or []
        text = parts[0].get("text") if parts and isinstance(parts[0], dict) else None
        if not text:
            raise ExtractionError("Reply has no text")
        return text

    @staticmethod
    def parse_candidates(text: str) -> Optional[List[Candidate]]:
        items = extract_json_array(text, context="Extraction")
        if items is None:
            log_debug(f"[Extraction] Unparseable reply: {text[:200]}")
            return None

        candidates: List[Candidate] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                candidate = Candidate.model_validate(item)
            except ValidationError as e:
                log_debug(f"[Extraction] Dropping invalid item {item}: {e.error_count()} error(s)")
                continue
            if not candidate.resource_kind:
                log_debug(f"[Extraction] Dropping item without resource kind: {item}")
                continue
            candidates.append(candidate)

        if not candidates:
            return None
        log_info(f"[Extraction] {len(candidates)} candidate(s)")
        return candidates
