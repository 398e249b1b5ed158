import asyncio
import json
from typing import List

from core.layers.keyword_extractor import KeywordExtractor
from core.models import Candidate, Intent, ResolvedQuery, WorkerTask
from core.session import GUIDANCE, ShellSession


class _RecordingDispatcher:
    def __init__(self, data=None):
        self.batches: List[List[ResolvedQuery]] = []
        self.data = data if data is not None else {"pods": []}

    async def dispatch(self, queries):
        queries = list(queries)
        self.batches.append(queries)
        tasks = []
        for query in queries:
            task = WorkerTask(query=query)
            task.settle_success({"content": [{"type": "text", "text": json.dumps(self.data)}]})
            tasks.append(task)
        return tasks


class _StaticExtractor:
    def __init__(self, candidates):
        self.candidates = candidates
        self.snapshots = []

    async def extract(self, tokens, snapshot=None):
        self.snapshots.append(snapshot)
        return self.candidates


def _session(captured_output, extractor=None, dispatcher=None):
    return ShellSession(
        extractor=extractor or KeywordExtractor(),
        dispatcher=dispatcher or _RecordingDispatcher(),
        output=captured_output,
        raw_default=False,
    )


def test_turn_dispatches_resolved_queries(captured_output):
    dispatcher = _RecordingDispatcher()
    session = _session(captured_output, dispatcher=dispatcher)

    results = asyncio.run(session.handle_line("ns-mh69tey1 pods devbox hzh"))

    assert [q.resource_kind for q in dispatcher.batches[0]] == ["pods", "devbox"]
    assert all(q.identifier == "hzh" for q in dispatcher.batches[0])
    assert [r.resource_kind for r in results] == ["devbox", "pods"]
    assert session.context.namespace == "ns-mh69tey1"


def test_follow_up_turn_uses_context(captured_output):
    dispatcher = _RecordingDispatcher()
    session = _session(captured_output, dispatcher=dispatcher)

    asyncio.run(session.handle_line("ns-a1 pods hzh"))
    asyncio.run(session.handle_line("cluster"))

    query = dispatcher.batches[1][0]
    assert (query.namespace, query.resource_kind, query.identifier) == ("ns-a1", "cluster", "hzh")


def test_inspect_with_lines_flag(captured_output):
    dispatcher = _RecordingDispatcher()
    session = _session(captured_output, dispatcher=dispatcher)

    asyncio.run(session.handle_line("ns-a1 pods describe web-0 --lines 10"))

    query = dispatcher.batches[0][0]
    assert query.intent is Intent.INSPECT
    assert query.identifier == "web-0"
    assert query.line_limit == 10


def test_unrecognized_input_shows_guidance(captured_output):
    dispatcher = _RecordingDispatcher()
    session = _session(captured_output, dispatcher=dispatcher)

    assert asyncio.run(session.handle_line("hello world")) == []
    assert dispatcher.batches == []
    assert "Could not understand" in captured_output.console.file.getvalue()
    assert GUIDANCE.startswith("Could not understand")


def test_invalid_inspect_dispatches_nothing(captured_output):
    dispatcher = _RecordingDispatcher()
    extractor = _StaticExtractor([
        Candidate(namespace="ns-a", resource_kind="pods", intent=Intent.LIST),
        Candidate(namespace="ns-a", resource_kind="devbox", intent=Intent.INSPECT),
    ])
    session = _session(captured_output, extractor=extractor, dispatcher=dispatcher)

    assert asyncio.run(session.handle_line("whatever")) == []
    assert dispatcher.batches == []
    assert "Inspect needs a resource name" in captured_output.console.file.getvalue()


def test_snapshot_passed_then_dropped_on_scope_change(captured_output):
    extractor = _StaticExtractor([Candidate(namespace="ns-a", resource_kind="pods")])
    session = _session(captured_output, extractor=extractor)

    asyncio.run(session.handle_line("ns-a pods"))
    asyncio.run(session.handle_line("pods again"))
    asyncio.run(session.handle_line("ns-b pods"))

    assert extractor.snapshots[0] is None
    assert extractor.snapshots[1] is not None and '"pods"' in extractor.snapshots[1]
    assert extractor.snapshots[2] is None


def test_unexpected_error_is_contained(captured_output):
    class _Broken:
        async def extract(self, tokens, snapshot=None):
            raise RuntimeError("backend exploded")

    session = _session(captured_output, extractor=_Broken())

    assert asyncio.run(session.handle_line("pods")) == []
    assert "backend exploded" in captured_output.console.file.getvalue()


def test_flag_only_line_does_nothing(captured_output):
    dispatcher = _RecordingDispatcher()
    session = _session(captured_output, dispatcher=dispatcher)

    assert asyncio.run(session.handle_line("--raw")) == []
    assert dispatcher.batches == []
