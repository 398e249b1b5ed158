# core/aggregator.py
"""
Response Aggregator - fan-in side of a turn.

- orders settled outcomes by a fixed priority table (unknown kinds last,
  stable for ties)
- keeps a running item count across kinds for the summary line
- renders each kind through the OutputLayer; one failed kind never stops
  the others
- builds the bounded result snapshot handed to the extractor next turn
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from config import SNAPSHOT_CHAR_BUDGET
from core.models import AggregatedResult, WorkerTask
from utils.logger import log_debug


RESOURCE_PRIORITY: List[str] = [
    "cluster",
    "devbox",
    "pods",
    "ingress",
    "certificate",
    "cronjobs",
    "quota",
    "objectstoragebucket",
    "events",
    "account",
    "debt",
    "nodes",
]

_PRIORITY_INDEX: Dict[str, int] = {kind: i for i, kind in enumerate(RESOURCE_PRIORITY)}

# Resource kind -> array field of its list payload
ARRAY_FIELDS: Dict[str, str] = {
    "pods": "pods",
    "devbox": "devboxes",
    "cluster": "clusters",
    "quota": "quotas",
    "ingress": "ingresses",
    "nodes": "nodes",
    "cronjobs": "cronjobs",
    "events": "events",
    "account": "accounts",
    "debt": "debts",
    "objectstoragebucket": "objectstoragebuckets",
    "certificate": "certificates",
}

INSPECT_FIELDS = ("manifest", "logs")


def priority_of(kind: str) -> int:
    return _PRIORITY_INDEX.get(kind, len(RESOURCE_PRIORITY))


def order_results(results: Sequence[AggregatedResult]) -> List[AggregatedResult]:
    # sorted() is stable, so equal priorities keep first-seen order
    return sorted(results, key=lambda r: priority_of(r.resource_kind))


def count_items(result: AggregatedResult) -> int:
    """
    Items contributed to the summary line.

    Failures and empty successes count 0, an inspect payload counts 1,
    a list payload counts the length of its array field.
    """
    if not result.outcome.success:
        return 0
    data = result.outcome.data
    if not isinstance(data, dict):
        return 0
    if data.get("success") is False:
        return 0

    field = ARRAY_FIELDS.get(result.resource_kind)
    if field and isinstance(data.get(field), list):
        return len(data[field])
    for name in ARRAY_FIELDS.values():
        if isinstance(data.get(name), list):
            return len(data[name])
    if any(k in data for k in INSPECT_FIELDS):
        return 1
    return 0


def build_snapshot(results: Sequence[AggregatedResult], budget: int = SNAPSHOT_CHAR_BUDGET) -> Optional[str]:
    """
    Compact JSON of the turn's results, cut to `budget` characters.
    """
    if not results or budget <= 0:
        return None
    snapshot = json.dumps([r.to_dict() for r in results], ensure_ascii=False, separators=(",", ":"), default=str)
    if len(snapshot) > budget:
        log_debug(f"[Aggregator] Snapshot truncated {len(snapshot)} -> {budget} chars")
        snapshot = snapshot[:budget]
    return snapshot


class ResponseAggregator:
    def __init__(self, output: Any):
        self.output = output

    def collect(self, tasks: Sequence[WorkerTask]) -> List[AggregatedResult]:
        return [AggregatedResult(t.resource_kind, t.outcome) for t in tasks if t.outcome is not None]

    def present(self, tasks: Sequence[WorkerTask], raw: bool = False) -> List[AggregatedResult]:
        """
        Renders a settled batch.

        Returns:
            The results in display order
        """
        results = self.collect(tasks)
        if not results:
            return results

        # Single query: render directly, no ordering, no summary
        if len(results) == 1:
            self.output.render_result(results[0], raw=raw)
            return results

        ordered = order_results(results)
        total = 0
        failed = 0
        for result in ordered:
            self.output.render_result(result, raw=raw)
            total += count_items(result)
            if not result.outcome.success:
                failed += 1

        log_debug(f"[Aggregator] {len(ordered)} kinds, {total} items, {failed} failed")
        self.output.render_summary(total=total, kinds=len(ordered), failed=failed)
        return ordered
