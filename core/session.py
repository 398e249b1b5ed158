# core/session.py
"""
ShellSession - one turn of the conversational query pipeline.

    normalize -> context update -> extract -> fuse -> dispatch -> aggregate

The session owns the SessionContext (through its ContextStore) and the
previous turn's result snapshot. Only one turn is ever in flight.
"""

from typing import Any, List, Optional

from config import AI_ENABLED, RAW_OUTPUT, SNAPSHOT_CHAR_BUDGET
from core.aggregator import ResponseAggregator, build_snapshot
from core.context_store import ContextStore
from core.fusion import FusionError, fuse
from core.input_normalizer import normalize
from core.layers.extraction import ExtractionLayer
from core.layers.keyword_extractor import KeywordExtractor
from core.layers.output import OutputLayer
from core.models import AggregatedResult
from utils.logger import log_debug, log_error, log_info
from workers.dispatcher import TaskDispatcher


GUIDANCE = (
    "Could not understand that query. Name a namespace (ns-...), a zone "
    "(hzh, bja, gzg, usw) and a resource, e.g. 'ns-mh69tey1 pods devbox hzh' "
    "or 'devbox describe my-app'."
)


def default_extractor() -> Any:
    if AI_ENABLED:
        log_info("[Session] Using AI extraction")
        return ExtractionLayer()
    log_info("[Session] AI extraction disabled, using keyword extraction")
    return KeywordExtractor()


class ShellSession:
    def __init__(
        self,
        extractor: Any = None,
        dispatcher: Optional[TaskDispatcher] = None,
        output: Optional[OutputLayer] = None,
        store: Optional[ContextStore] = None,
        raw_default: bool = RAW_OUTPUT,
        snapshot_budget: int = SNAPSHOT_CHAR_BUDGET,
    ):
        self.extractor = extractor or default_extractor()
        self.dispatcher = dispatcher or TaskDispatcher()
        self.output = output or OutputLayer()
        self.store = store or ContextStore()
        self.aggregator = ResponseAggregator(self.output)
        self.raw_default = raw_default
        self.snapshot_budget = snapshot_budget
        self.snapshot: Optional[str] = None

    @property
    def context(self):
        return self.store.context

    async def handle_line(self, line: str) -> List[AggregatedResult]:
        """
        Runs one turn. Unexpected errors end the turn, never the shell.

        Returns:
            The rendered results (empty when nothing was dispatched)
        """
        try:
            return await self._turn(line)
        except Exception as e:
            log_error(f"[Session] Turn failed: {type(e).__name__}: {e}")
            self.output.error(f"Unexpected error: {e}")
            return []

    async def _turn(self, line: str) -> List[AggregatedResult]:
        turn = normalize(line, raw_default=self.raw_default)
        for warning in turn.warnings:
            self.output.warning(warning)
        if not turn.tokens:
            return []

        if self.store.update(turn.tokens):
            # Previous results belong to the old scope
            self.snapshot = None

        candidates = await self.extractor.extract(turn.tokens, self.snapshot)
        if not candidates:
            self.output.hint(GUIDANCE)
            return []

        try:
            queries = fuse(candidates, self.store, turn.line_limit)
        except FusionError as e:
            self.output.error(e.message)
            return []
        if not queries:
            self.output.hint(GUIDANCE)
            return []

        for query in queries:
            log_debug(f"[Session] Query: {query.describe()}")

        tasks = await self.dispatcher.dispatch(queries)
        results = self.aggregator.present(tasks, raw=turn.raw_output)
        self.snapshot = build_snapshot(results, self.snapshot_budget)
        return results
