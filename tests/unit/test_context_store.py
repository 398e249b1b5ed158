from core.context_store import ContextStore, recognize
from core.models import SessionContext


def test_update_is_idempotent():
    store = ContextStore()
    tokens = ["ns-mh69tey1", "devbox", "describe", "my-app", "hzh"]

    assert store.update(tokens) is True
    first = store.context.to_dict()

    assert store.update(tokens) is False
    assert store.context.to_dict() == first


def test_zone_change_resets_all_fields():
    store = ContextStore(SessionContext(zone="hzh", namespace="ns-a"))

    changed = store.update(["bja"])

    assert changed is True
    assert store.context.to_dict() == {"zone": "bja", "namespace": None, "resource": None, "name": None}


def test_namespace_change_drops_stale_name():
    store = ContextStore(SessionContext(zone="hzh", namespace="ns-a", resource="devbox", name="old-app"))

    assert store.update(["ns-b", "pods"]) is True
    assert store.context.to_dict() == {"zone": None, "namespace": "ns-b", "resource": "pods", "name": None}


def test_unmentioned_fields_are_retained():
    store = ContextStore(SessionContext(zone="hzh", namespace="ns-a", resource="pods"))

    assert store.update(["cluster"]) is False
    assert store.zone == "hzh"
    assert store.namespace == "ns-a"
    assert store.resource == "cluster"


def test_same_zone_is_not_a_scope_change():
    store = ContextStore(SessionContext(zone="hzh", namespace="ns-a", name="my-app"))

    assert store.update(["HZH", "devbox"]) is False
    assert store.name == "my-app"


def test_name_follows_resource_keyword():
    assert recognize(["devbox", "describe", "my-app"]).name == "my-app"


def test_no_name_when_nothing_follows_resource():
    assert recognize(["my-app", "devbox"]).name is None


def test_name_must_not_be_zone_or_namespace():
    assert recognize(["pods", "hzh"]).name is None
    assert recognize(["pods", "ns-abc"]).name is None
    assert recognize(["pods", "devbox"]).name is None


def test_name_uses_last_resource_keyword():
    found = recognize(["pods", "cluster", "my-db-1"])
    assert found.resource == "cluster"
    assert found.name == "my-db-1"


def test_tokens_are_classified_case_insensitively():
    found = recognize(["NS-MH69TEY1", "Pods", "BJA"])
    assert found.namespace == "ns-mh69tey1"
    assert found.resource == "pods"
    assert found.zone == "bja"


def test_clear_name():
    store = ContextStore(SessionContext(name="my-app"))
    store.clear_name()
    assert store.name is None
