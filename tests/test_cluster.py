import pytest

from finops_scaler.api import FinOpsOperatorConfig, FinOpsScalePolicy, ObjectMeta
from finops_scaler.cluster import (
    Deployment,
    InMemoryClient,
    Namespace,
    NotFoundError,
    ObjectKey,
)


def _client():
    return InMemoryClient(
        [
            Namespace("empty"),
            Deployment(name="web", namespace="shop", replicas=3),
            Deployment(name="api", namespace="shop", replicas=2),
            Deployment(name="job", namespace="batch", replicas=4),
            FinOpsScalePolicy(metadata=ObjectMeta(name="p1", namespace="shop")),
            FinOpsScalePolicy(metadata=ObjectMeta(name="p2", namespace="batch")),
            FinOpsOperatorConfig(metadata=ObjectMeta(name="cfg", namespace="ops")),
        ]
    )


def test_namespaces_registered_and_sorted():
    names = [ns.name for ns in _client().list_namespaces()]
    assert names == sorted(names)
    assert set(names) == {"empty", "shop", "batch", "ops"}


def test_list_deployments_filters_by_namespace_and_sorts():
    deployments = _client().list_deployments("shop")
    assert [d.name for d in deployments] == ["api", "web"]
    assert all(d.namespace == "shop" for d in deployments)
    assert _client().list_deployments("empty") == []


def test_list_policies_all_and_by_namespace():
    client = _client()
    assert {p.name for p in client.list_policies()} == {"p1", "p2"}
    assert [p.name for p in client.list_policies("batch")] == ["p2"]
    assert client.list_policies("empty") == []


def test_list_and_get_configs():
    client = _client()
    assert [c.name for c in client.list_configs()] == ["cfg"]
    assert client.get_config(ObjectKey("ops", "cfg")).name == "cfg"
    with pytest.raises(NotFoundError):
        client.get_config(ObjectKey("shop", "cfg"))


def test_get_deployment_and_not_found():
    client = _client()
    deployment = client.get_deployment(ObjectKey("shop", "web"))
    assert deployment.replicas == 3
    with pytest.raises(NotFoundError) as info:
        client.get_deployment(ObjectKey("shop", "missing"))
    assert info.value.key == ObjectKey("shop", "missing")
    assert info.value.kind == "Deployment"


def test_returned_objects_are_copies():
    client = _client()
    deployment = client.get_deployment(ObjectKey("shop", "web"))
    deployment.replicas = 0
    deployment.annotations["x"] = "y"
    fresh = client.get_deployment(ObjectKey("shop", "web"))
    assert fresh.replicas == 3
    assert fresh.annotations == {}


def test_added_objects_are_copied():
    original = Deployment(name="a", namespace="n", replicas=2)
    client = InMemoryClient([original])
    original.replicas = 9
    assert client.get_deployment(original.key).replicas == 2


def test_patch_deployment_writes_state():
    client = _client()
    deployment = client.get_deployment(ObjectKey("shop", "web"))
    deployment.replicas = 0
    deployment.annotations["finops.dev/original-replicas"] = "3"
    result = client.patch_deployment(deployment)
    assert result == deployment
    stored = client.get_deployment(ObjectKey("shop", "web"))
    assert stored.replicas == 0
    assert stored.annotations == {"finops.dev/original-replicas": "3"}


def test_patch_missing_deployment_raises():
    client = _client()
    with pytest.raises(NotFoundError):
        client.patch_deployment(Deployment(name="ghost", namespace="shop"))


def test_add_replaces_same_key():
    client = _client()
    client.add(Deployment(name="web", namespace="shop", replicas=7))
    assert client.get_deployment(ObjectKey("shop", "web")).replicas == 7
    assert len(client.list_deployments("shop")) == 2


def test_add_rejects_unknown_objects():
    with pytest.raises(TypeError):
        InMemoryClient().add("not an object")


def test_object_key_str():
    assert str(ObjectKey("shop", "web")) == "shop/web"
    assert str(ObjectKey("", "web")) == "web"