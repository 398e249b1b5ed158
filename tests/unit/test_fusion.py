import pytest

from core.context_store import ContextStore
from core.fusion import INSPECT_USAGE, NAMESPACE_USAGE, FusionError, fuse
from core.models import Candidate, Intent, SessionContext


def _store(**fields) -> ContextStore:
    return ContextStore(SessionContext(**fields))


def test_list_identifier_zone_is_replaced_by_stored_zone():
    store = _store(zone="bja", namespace="ns-a")
    candidates = [Candidate(namespace="ns-a", resource_kind="pods", identifier="hzh", intent=Intent.LIST)]

    queries = fuse(candidates, store)

    assert len(queries) == 1
    assert queries[0].identifier == "bja"


def test_list_backfills_namespace_and_clears_name():
    store = _store(zone="hzh", namespace="ns-a", name="my-app")

    queries = fuse([Candidate(resource_kind="devbox")], store)

    assert queries[0].namespace == "ns-a"
    assert queries[0].identifier == "hzh"
    assert queries[0].intent is Intent.LIST
    assert store.name is None


def test_inspect_without_identifier_aborts_whole_batch():
    store = _store(zone="hzh", namespace="ns-a")
    candidates = [
        Candidate(resource_kind="pods", intent=Intent.INSPECT),
        Candidate(resource_kind="devbox", intent=Intent.INSPECT),
        Candidate(resource_kind="cluster", intent=Intent.INSPECT),
    ]

    with pytest.raises(FusionError) as exc:
        fuse(candidates, store)

    assert exc.value.message == INSPECT_USAGE


def test_mixed_batch_with_invalid_inspect_dispatches_nothing():
    store = _store(zone="hzh", namespace="ns-a")
    candidates = [
        Candidate(resource_kind="pods", intent=Intent.LIST),
        Candidate(resource_kind="devbox", identifier="hzh", intent=Intent.INSPECT),
    ]

    with pytest.raises(FusionError):
        fuse(candidates, store)


def test_rejected_batch_keeps_stored_name():
    store = _store(zone="hzh", namespace="ns-a", name="my-app")
    candidates = [
        Candidate(resource_kind="pods", intent=Intent.LIST),
        Candidate(resource_kind="devbox", intent=Intent.INSPECT),
    ]

    with pytest.raises(FusionError):
        fuse(candidates, store)

    assert store.name == "my-app"


def test_inspect_carries_line_limit():
    store = _store(namespace="ns-a")
    candidates = [Candidate(resource_kind="pod", identifier="web-0", intent=Intent.INSPECT)]

    queries = fuse(candidates, store, line_limit=50)

    assert queries[0].resource_kind == "pods"
    assert queries[0].identifier == "web-0"
    assert queries[0].line_limit == 50


def test_duplicates_are_dropped_in_first_seen_order():
    store = _store(zone="hzh", namespace="ns-a")
    candidates = [
        Candidate(resource_kind="devbox"),
        Candidate(resource_kind="pods"),
        Candidate(resource_kind="devboxes", identifier="hzh"),
    ]

    queries = fuse(candidates, store)

    assert [q.resource_kind for q in queries] == ["devbox", "pods"]


def test_generic_kind_when_no_resource_recognized():
    store = _store()
    candidates = [Candidate(namespace="ns-a", identifier="hzh")]

    queries = fuse(candidates, store)

    assert len(queries) == 1
    assert queries[0].resource_kind == "pods"
    assert queries[0].intent is Intent.LIST


def test_missing_namespace_is_rejected():
    with pytest.raises(FusionError) as exc:
        fuse([Candidate(resource_kind="pods")], _store(zone="hzh"))
    assert exc.value.message == NAMESPACE_USAGE


def test_nodes_need_no_namespace():
    queries = fuse([Candidate(resource_kind="nodes")], _store())
    assert queries[0].namespace == ""


def test_empty_candidates_resolve_to_nothing():
    assert fuse([], _store(namespace="ns-a")) == []
