import pytest

from finops_scaler.api import (
    GROUP_VERSION,
    DeploymentScale,
    ExcludedDeploy,
    FinOpsOperatorConfig,
    FinOpsOperatorConfigSpec,
    FinOpsScalePolicy,
    FinOpsScalePolicySpec,
    GlobalScheduleSpec,
    ObjectMeta,
    ScheduleSpec,
)


def _full_config():
    return FinOpsOperatorConfig(
        metadata=ObjectMeta(name="global", namespace="ops"),
        spec=FinOpsOperatorConfigSpec(
            excluded_namespaces=["kube-system", "kube-public"],
            excluded_deployments=[ExcludedDeploy(namespace="shop", name="db")],
            max_parallel_operations=5,
            check_interval="5m",
            force_scale_down=True,
            force_scale_down_schedule=GlobalScheduleSpec(
                days=["Mon", "Tue"], start_time="20:00", end_time="06:00"
            ),
            force_scale_down_timezone="UTC",
        ),
    )


def _full_policy():
    return FinOpsScalePolicy(
        metadata=ObjectMeta(name="nightly", namespace="shop"),
        spec=FinOpsScalePolicySpec(
            opt_out=False,
            default_schedule=ScheduleSpec(days=["*"], start_time="19:00", end_time="07:00"),
            timezone="Europe/Berlin",
            deployments=[
                DeploymentScale(
                    name="web",
                    schedule=ScheduleSpec(days=["Sat"], start_time="00:00", end_time="23:59"),
                    min_replicas=1,
                ),
                DeploymentScale(name="worker", opt_out=True),
            ],
        ),
    )


def test_documents_carry_group_version_fixed_by_source():
    policy_doc = FinOpsScalePolicy().to_dict()
    config_doc = FinOpsOperatorConfig().to_dict()
    assert policy_doc["apiVersion"] == "finops.devopsideas.com/v1alpha1"
    assert config_doc["apiVersion"] == "finops.devopsideas.com/v1alpha1"
    assert policy_doc["kind"] == "FinOpsScalePolicy"
    assert config_doc["kind"] == "FinOpsOperatorConfig"
    assert GROUP_VERSION.group == "finops.devopsideas.com"
    assert GROUP_VERSION.version == "v1alpha1"


def test_config_round_trip():
    config = _full_config()
    assert FinOpsOperatorConfig.from_dict(config.to_dict()) == config


def test_policy_round_trip():
    policy = _full_policy()
    assert FinOpsScalePolicy.from_dict(policy.to_dict()) == policy


def test_config_dict_uses_json_field_names():
    data = _full_config().to_dict()
    assert data["kind"] == "FinOpsOperatorConfig"
    assert data["apiVersion"] == GROUP_VERSION.api_version
    spec = data["spec"]
    assert spec["excludedNamespaces"] == ["kube-system", "kube-public"]
    assert spec["excludedDeployments"] == [{"namespace": "shop", "name": "db"}]
    assert spec["maxParallelOperations"] == 5
    assert spec["checkInterval"] == "5m"
    assert spec["forceScaleDown"] is True
    assert spec["forceScaleDownSchedule"] == {
        "days": ["Mon", "Tue"],
        "startTime": "20:00",
        "endTime": "06:00",
    }
    assert spec["forceScaleDownTimezone"] == "UTC"


def test_empty_config_omits_optional_fields_but_keeps_status():
    data = FinOpsOperatorConfig().to_dict()
    assert data["spec"] == {}
    assert data["metadata"] == {}
    assert data["status"] == {"active": False}


def test_policy_from_document():
    doc = {
        "apiVersion": GROUP_VERSION.api_version,
        "kind": "FinOpsScalePolicy",
        "metadata": {"name": "p", "namespace": "team"},
        "spec": {
            "timezone": "UTC",
            "defaultSchedule": {"days": ["Mon"], "startTime": "18:00", "endTime": "08:00"},
            "deployments": [{"name": "api", "minReplicas": 2}],
        },
    }
    policy = FinOpsScalePolicy.from_dict(doc)
    assert policy.name == "p"
    assert policy.namespace == "team"
    assert policy.spec.timezone == "UTC"
    assert policy.spec.default_schedule == ScheduleSpec(
        days=["Mon"], start_time="18:00", end_time="08:00"
    )
    assert policy.spec.deployments == [DeploymentScale(name="api", min_replicas=2)]
    assert policy.spec.opt_out is False
    assert policy.status.active is False


def test_deployment_entry_omits_defaults():
    data = _full_policy().to_dict()
    worker = data["spec"]["deployments"][1]
    assert worker == {"name": "worker", "optOut": True}
    assert "optOut" not in data["spec"]


def test_annotations_survive_round_trip():
    policy = FinOpsScalePolicy(
        metadata=ObjectMeta(
            name="p", namespace="n", annotations={"finops.dev/original-replicas": "3"}
        )
    )
    restored = FinOpsScalePolicy.from_dict(policy.to_dict())
    assert restored.metadata.annotations == {"finops.dev/original-replicas": "3"}


def test_wrong_kind_rejected():
    with pytest.raises(ValueError):
        FinOpsScalePolicy.from_dict(_full_config().to_dict())
    with pytest.raises(ValueError):
        FinOpsOperatorConfig.from_dict(_full_policy().to_dict())


def test_wrong_api_version_rejected():
    doc = _full_policy().to_dict()
    doc["apiVersion"] = "apps/v1"
    with pytest.raises(ValueError):
        FinOpsScalePolicy.from_dict(doc)