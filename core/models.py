# core/models.py
"""
Data models shared by the turn pipeline.

Normalizer -> ContextStore -> Extractor -> Fusion -> Dispatcher -> Aggregator
all exchange these types.
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Intent(str, Enum):
    LIST = "list"
    INSPECT = "inspect"


# ═══════════════════════════════════════════════════════════
# SESSION CONTEXT
# ═══════════════════════════════════════════════════════════

@dataclass
class SessionContext:
    """
    Conversation-scoped scope fields.
    Lives for the whole process run, mutated only on the control thread.
    """
    zone: Optional[str] = None
    namespace: Optional[str] = None
    resource: Optional[str] = None
    name: Optional[str] = None

    def reset(self) -> None:
        self.zone = None
        self.namespace = None
        self.resource = None
        self.name = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "zone": self.zone,
            "namespace": self.namespace,
            "resource": self.resource,
            "name": self.name,
        }


# ═══════════════════════════════════════════════════════════
# EXTRACTOR OUTPUT
# ═══════════════════════════════════════════════════════════

class Candidate(BaseModel):
    """One structured query candidate as produced by an extractor."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    namespace: Optional[str] = Field(default=None, description="Namespace, ns- prefixed")
    resource_kind: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("resourceKind", "resource_kind", "resource"),
        description="Resource kind, e.g. pods / devbox / cluster",
    )
    identifier: Optional[str] = Field(default=None, description="Instance name or zone")
    intent: Intent = Field(default=Intent.LIST, description="list | inspect")

    @field_validator("namespace", "resource_kind", "identifier", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("expected a string")
        value = value.strip()
        if not value or value.lower() in ("null", "none"):
            return None
        return value

    @field_validator("intent", mode="before")
    @classmethod
    def _normalize_intent(cls, value: Any) -> Any:
        if value is None:
            return Intent.LIST
        if isinstance(value, str):
            return value.strip().lower()
        return value


# ═══════════════════════════════════════════════════════════
# RESOLVED QUERY
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ResolvedQuery:
    """A fully resolved lookup; immutable once dispatched."""
    namespace: str
    resource_kind: str
    identifier: str
    intent: Intent
    line_limit: Optional[int] = None

    @property
    def dedup_key(self):
        return (self.namespace, self.resource_kind, self.identifier, self.intent)

    def describe(self) -> str:
        return f"{self.namespace} {self.resource_kind} {self.identifier} ({self.intent.value})"


# ═══════════════════════════════════════════════════════════
# WORKER TASK + OUTCOME
# ═══════════════════════════════════════════════════════════

def decode_tool_content(result: Any) -> Any:
    """
    Decodes a tools/call result into plain data.

    {"content": [{"type": "text", "text": "<json>"}]} -> parsed JSON,
    falling back to the raw text. Anything else is returned unchanged.
    """
    if not isinstance(result, dict):
        return result
    content = result.get("content")
    if not isinstance(content, list) or not content:
        return result
    first = content[0]
    if not isinstance(first, dict) or "text" not in first:
        return result
    text = first.get("text")
    if not isinstance(text, str):
        return text
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


@dataclass
class TaskOutcome:
    """Terminal result of one worker task. Errors are data, never raised."""
    success: bool
    payload: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, payload: Any = None) -> "TaskOutcome":
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, error: str) -> "TaskOutcome":
        return cls(success=False, error=error)

    @property
    def data(self) -> Any:
        """Decoded payload; None for failures and for empty successes."""
        if not self.success or self.payload is None:
            return None
        return decode_tool_content(self.payload)


@dataclass
class WorkerTask:
    """
    One dispatched query bound to one worker process.

    The outcome transitions exactly once; later settle calls are no-ops.
    """
    query: ResolvedQuery
    started_at: float = field(default_factory=time.monotonic)
    timeout: float = 30.0
    pid: Optional[int] = None
    settled: bool = False
    settled_at: Optional[float] = None
    outcome: Optional[TaskOutcome] = None

    @property
    def resource_kind(self) -> str:
        return self.query.resource_kind

    @property
    def deadline(self) -> float:
        return self.started_at + self.timeout

    def remaining(self) -> float:
        return max(0.0, self.deadline - time.monotonic())

    def settle(self, outcome: TaskOutcome) -> bool:
        if self.settled:
            return False
        self.settled = True
        self.settled_at = time.monotonic()
        self.outcome = outcome
        return True

    def settle_success(self, payload: Any = None) -> bool:
        return self.settle(TaskOutcome.ok(payload))

    def settle_failure(self, error: str) -> bool:
        return self.settle(TaskOutcome.failed(error))


@dataclass
class AggregatedResult:
    resource_kind: str
    outcome: TaskOutcome

    def to_dict(self) -> Dict[str, Any]:
        if self.outcome.success:
            return {"resource": self.resource_kind, "success": True, "data": self.outcome.data}
        return {"resource": self.resource_kind, "success": False, "error": self.outcome.error}


@dataclass
class TurnInput:
    """Normalized input line: tokens plus per-turn flags."""
    tokens: List[str] = field(default_factory=list)
    raw_output: bool = False
    line_limit: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
