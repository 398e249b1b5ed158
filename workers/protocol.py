# workers/protocol.py
"""
Wire protocol spoken with one resource-query worker.

Request:  a single JSON-RPC object on stdin, newline terminated, then EOF.
Response: newline-delimited stdout. Only lines that look like a JSON object
          ({ ... }) are decoded; the first one carrying "error" or "result"
          settles the task.
"""

import itertools
import json
from typing import Any, Dict, Iterator, List, Optional, Tuple

from core.models import Intent, ResolvedQuery
from utils.logger import log_debug, log_warning


# ═══════════════════════════════════════════════════════════
# TOOL TABLE
# ═══════════════════════════════════════════════════════════

LIST_TOOLS: Dict[str, str] = {
    "pods": "list_pods_by_ns",
    "devbox": "list_devbox_by_ns",
    "cluster": "list_cluster_by_ns",
    "quota": "list_quota_by_ns",
    "ingress": "list_ingress_by_ns",
    "nodes": "list_nodes",
    "cronjobs": "list_cronjobs_by_ns",
    "events": "list_events_by_ns",
    "account": "list_account_by_ns",
    "debt": "list_debt_by_ns",
    "objectstoragebucket": "list_objectstoragebucket_by_ns",
    "certificate": "list_certificate_by_ns",
}

INSPECT_TOOL = "inspect_resource"
DEFAULT_LIST_TOOL = LIST_TOOLS["pods"]

_request_ids = itertools.count(1)


def tool_call_for(query: ResolvedQuery) -> Tuple[str, Dict[str, Any]]:
    """Maps a resolved query to (tool name, arguments)."""
    if query.intent is Intent.INSPECT:
        arguments: Dict[str, Any] = {
            "namespace": query.namespace,
            "resource": query.resource_kind,
            "name": query.identifier,
        }
        if query.line_limit:
            arguments["lines"] = query.line_limit
        return INSPECT_TOOL, arguments

    tool = LIST_TOOLS.get(query.resource_kind)
    if tool is None:
        log_warning(f"[Protocol] No list tool for '{query.resource_kind}', using {DEFAULT_LIST_TOOL}")
        tool = DEFAULT_LIST_TOOL
    return tool, {"namespace": query.namespace}


def build_request(query: ResolvedQuery, request_id: Optional[int] = None) -> Dict[str, Any]:
    name, arguments = tool_call_for(query)
    return {
        "jsonrpc": "2.0",
        "id": request_id if request_id is not None else next(_request_ids),
        "method": "tools/call",
        "params": {
            "name": name,
            "arguments": arguments,
        },
    }


def encode_request(request: Dict[str, Any]) -> bytes:
    return (json.dumps(request) + "\n").encode("utf-8")


def error_message(error: Any) -> str:
    """Remote error payload -> failure reason, verbatim where possible."""
    if isinstance(error, dict):
        message = error.get("message")
        if message:
            return str(message)
        return json.dumps(error)
    if error is None or error == "":
        return "Unknown error"
    return str(error)


# ═══════════════════════════════════════════════════════════
# LINE FRAMING
# ═══════════════════════════════════════════════════════════

class LineFramer:
    """
    Incremental newline framing over a byte stream.

    feed() returns the decoded JSON messages of every complete line in the
    chunk. Partial lines stay buffered until their newline arrives (or until
    flush() at EOF). Lines that fail to decode are logged and dropped.
    """

    def __init__(self, label: str = "worker"):
        self.label = label
        self._buffer = b""
        self.discarded = 0

    def feed(self, chunk: bytes) -> List[Dict[str, Any]]:
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        return list(self._decode_lines(lines))

    def flush(self) -> List[Dict[str, Any]]:
        rest, self._buffer = self._buffer, b""
        return list(self._decode_lines([rest]))

    def _decode_lines(self, lines: List[bytes]) -> Iterator[Dict[str, Any]]:
        for raw in lines:
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue
            if not (line.startswith("{") and line.endswith("}")):
                log_debug(f"[Protocol:{self.label}] Output: {line[:200]}")
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError as e:
                self.discarded += 1
                log_warning(f"[Protocol:{self.label}] Failed to parse JSON line ({e}): {line[:200]}")
                continue
            if isinstance(message, dict):
                yield message
