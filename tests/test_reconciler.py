from router_status.models import DeviceConfig
from router_status.reconciler import reconcile

A = DeviceConfig(name="A", homepage_url="192.168.1.1")
B = DeviceConfig(name="B", homepage_url="192.168.1.2")
C = DeviceConfig(name="C", homepage_url="192.168.1.3")


def _known(*devices):
    return {d.identity_key: f"handle-{d.name}" for d in devices}


def test_new_device_is_added_existing_is_kept():
    plan = reconcile([A, B], _known(A))
    assert plan.keep == [(A, "handle-A")]
    assert plan.add == [B]
    assert plan.remove == []


def test_unconfigured_device_is_removed():
    plan = reconcile([B], _known(A, B))
    assert plan.keep == [(B, "handle-B")]
    assert plan.add == []
    assert plan.remove == ["handle-A"]


def test_configured_order_is_preserved():
    plan = reconcile([C, A, B], _known(A))
    assert plan.add == [C, B]


def test_empty_configuration_removes_everything():
    plan = reconcile([], _known(A, B))
    assert sorted(plan.remove) == ["handle-A", "handle-B"]
    assert plan.keep == [] and plan.add == []


def test_nothing_is_both_added_and_removed():
    plan = reconcile([A, C], _known(A, B))
    added = {d.identity_key for d in plan.add}
    removed = {h for h in plan.remove}
    assert added == {C.identity_key}
    assert removed == {"handle-B"}


def test_identity_function_maps_keys_to_host_ids():
    known = {"uuid:" + A.identity_key: "handle-A"}
    plan = reconcile([A, B], known, identity=lambda key: "uuid:" + key)
    assert plan.keep == [(A, "handle-A")]
    assert plan.add == [B]


def test_duplicate_identity_keys_are_collapsed():
    twin = DeviceConfig(name="A twin", homepage_url=A.homepage_url)
    plan = reconcile([A, twin, B], {})
    assert plan.add == [A, B]
    assert plan.duplicates == [twin]


def test_same_name_distinct_urls_are_separate_devices():
    first = DeviceConfig(name="Mesh", homepage_url="10.0.0.2")
    second = DeviceConfig(name="Mesh", homepage_url="10.0.0.3")
    plan = reconcile([first, second], {})
    assert plan.add == [first, second]
    assert plan.duplicates == []
