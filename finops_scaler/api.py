"""Resource types of the finops.devopsideas.com/v1alpha1 API group."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, TypeVar


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with its version."""

    group: str
    version: str

    @property
    def api_version(self) -> str:
        """The value used in the ``apiVersion`` field of a resource."""
        return f"{self.group}/{self.version}" if self.group else self.version

    def __str__(self) -> str:
        return self.api_version


GROUP_VERSION = GroupVersion(group="finops.devopsideas.com", version="v1alpha1")

OPERATOR_CONFIG_KIND = "FinOpsOperatorConfig"
SCALE_POLICY_KIND = "FinOpsScalePolicy"


@dataclass
class ObjectMeta:
    """Identity and annotations of a stored resource."""

    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)


@dataclass
class ExcludedDeploy:
    """A deployment that must never be scaled down."""

    namespace: str
    name: str


@dataclass
class GlobalScheduleSpec:
    """The cluster-wide window used when forced scale-down is enabled."""

    days: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""


@dataclass
class FinOpsOperatorConfigSpec:
    """Desired state of the operator's global configuration."""

    excluded_namespaces: list[str] = field(default_factory=list)
    excluded_deployments: list[ExcludedDeploy] = field(default_factory=list)
    max_parallel_operations: int = 0
    check_interval: str = ""
    force_scale_down: bool = False
    force_scale_down_schedule: GlobalScheduleSpec | None = None
    force_scale_down_timezone: str = ""


@dataclass
class FinOpsOperatorConfigStatus:
    """Observed state of the operator's global configuration."""

    active: bool = False


@dataclass
class ScheduleSpec:
    """A scaling window: days of the week plus a start and end time (HH:MM)."""

    days: list[str] = field(default_factory=list)
    start_time: str = ""
    end_time: str = ""


@dataclass
class DeploymentScale:
    """Scaling rules for one deployment of a policy's namespace."""

    name: str
    schedule: ScheduleSpec | None = None
    min_replicas: int = 0
    opt_out: bool = False


@dataclass
class FinOpsScalePolicySpec:
    """Desired state of a namespace's scaling policy."""

    opt_out: bool = False
    default_schedule: ScheduleSpec | None = None
    timezone: str = ""
    deployments: list[DeploymentScale] = field(default_factory=list)


@dataclass
class FinOpsScalePolicyStatus:
    """Observed state of a scaling policy."""

    active: bool = False


_Schedule = TypeVar("_Schedule", ScheduleSpec, GlobalScheduleSpec)


def _check_type(data: Mapping[str, Any], kind: str) -> None:
    found_kind = data.get("kind")
    if found_kind is not None and found_kind != kind:
        raise ValueError(f"expected kind {kind!r}, got {found_kind!r}")
    found_version = data.get("apiVersion")
    if found_version is not None and found_version != GROUP_VERSION.api_version:
        raise ValueError(
            f"expected apiVersion {GROUP_VERSION.api_version!r}, got {found_version!r}"
        )


def _meta_from_dict(data: Mapping[str, Any] | None) -> ObjectMeta:
    data = data or {}
    return ObjectMeta(
        name=data.get("name", ""),
        namespace=data.get("namespace", ""),
        annotations=dict(data.get("annotations") or {}),
        labels=dict(data.get("labels") or {}),
    )


def _meta_to_dict(meta: ObjectMeta) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if meta.name:
        out["name"] = meta.name
    if meta.namespace:
        out["namespace"] = meta.namespace
    if meta.labels:
        out["labels"] = dict(meta.labels)
    if meta.annotations:
        out["annotations"] = dict(meta.annotations)
    return out


def _schedule_from_dict(
    data: Mapping[str, Any] | None, cls: type[_Schedule]
) -> _Schedule | None:
    if data is None:
        return None
    return cls(
        days=list(data.get("days") or []),
        start_time=data.get("startTime", ""),
        end_time=data.get("endTime", ""),
    )


def _schedule_to_dict(schedule: ScheduleSpec | GlobalScheduleSpec) -> dict[str, Any]:
    return {
        "days": list(schedule.days),
        "startTime": schedule.start_time,
        "endTime": schedule.end_time,
    }


@dataclass
class FinOpsOperatorConfig:
    """The global configuration resource of the operator."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: FinOpsOperatorConfigSpec = field(default_factory=FinOpsOperatorConfigSpec)
    status: FinOpsOperatorConfigStatus = field(default_factory=FinOpsOperatorConfigStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FinOpsOperatorConfig:
        """Build a config from its JSON/YAML document form."""
        _check_type(data, OPERATOR_CONFIG_KIND)
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            metadata=_meta_from_dict(data.get("metadata")),
            spec=FinOpsOperatorConfigSpec(
                excluded_namespaces=list(spec.get("excludedNamespaces") or []),
                excluded_deployments=[
                    ExcludedDeploy(namespace=item["namespace"], name=item["name"])
                    for item in spec.get("excludedDeployments") or []
                ],
                max_parallel_operations=int(spec.get("maxParallelOperations", 0)),
                check_interval=spec.get("checkInterval", ""),
                force_scale_down=bool(spec.get("forceScaleDown", False)),
                force_scale_down_schedule=_schedule_from_dict(
                    spec.get("forceScaleDownSchedule"), GlobalScheduleSpec
                ),
                force_scale_down_timezone=spec.get("forceScaleDownTimezone", ""),
            ),
            status=FinOpsOperatorConfigStatus(active=bool(status.get("active", False))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON/YAML document form, leaving out empty optional fields."""
        spec = self.spec
        spec_out: dict[str, Any] = {}
        if spec.excluded_namespaces:
            spec_out["excludedNamespaces"] = list(spec.excluded_namespaces)
        if spec.excluded_deployments:
            spec_out["excludedDeployments"] = [
                {"namespace": item.namespace, "name": item.name}
                for item in spec.excluded_deployments
            ]
        if spec.max_parallel_operations:
            spec_out["maxParallelOperations"] = spec.max_parallel_operations
        if spec.check_interval:
            spec_out["checkInterval"] = spec.check_interval
        if spec.force_scale_down:
            spec_out["forceScaleDown"] = True
        if spec.force_scale_down_schedule is not None:
            spec_out["forceScaleDownSchedule"] = _schedule_to_dict(
                spec.force_scale_down_schedule
            )
        if spec.force_scale_down_timezone:
            spec_out["forceScaleDownTimezone"] = spec.force_scale_down_timezone
        return {
            "apiVersion": GROUP_VERSION.api_version,
            "kind": OPERATOR_CONFIG_KIND,
            "metadata": _meta_to_dict(self.metadata),
            "spec": spec_out,
            "status": {"active": self.status.active},
        }


@dataclass
class FinOpsScalePolicy:
    """A namespace's scaling policy resource."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: FinOpsScalePolicySpec = field(default_factory=FinOpsScalePolicySpec)
    status: FinOpsScalePolicyStatus = field(default_factory=FinOpsScalePolicyStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FinOpsScalePolicy:
        """Build a policy from its JSON/YAML document form."""
        _check_type(data, SCALE_POLICY_KIND)
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            metadata=_meta_from_dict(data.get("metadata")),
            spec=FinOpsScalePolicySpec(
                opt_out=bool(spec.get("optOut", False)),
                default_schedule=_schedule_from_dict(
                    spec.get("defaultSchedule"), ScheduleSpec
                ),
                timezone=spec.get("timezone", ""),
                deployments=[
                    DeploymentScale(
                        name=item["name"],
                        schedule=_schedule_from_dict(item.get("schedule"), ScheduleSpec),
                        min_replicas=int(item.get("minReplicas", 0)),
                        opt_out=bool(item.get("optOut", False)),
                    )
                    for item in spec.get("deployments") or []
                ],
            ),
            status=FinOpsScalePolicyStatus(active=bool(status.get("active", False))),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON/YAML document form, leaving out empty optional fields."""
        spec = self.spec
        spec_out: dict[str, Any] = {}
        if spec.opt_out:
            spec_out["optOut"] = True
        if spec.default_schedule is not None:
            spec_out["defaultSchedule"] = _schedule_to_dict(spec.default_schedule)
        if spec.timezone:
            spec_out["timezone"] = spec.timezone
        if spec.deployments:
            deployments = []
            for item in spec.deployments:
                entry: dict[str, Any] = {"name": item.name}
                if item.schedule is not None:
                    entry["schedule"] = _schedule_to_dict(item.schedule)
                if item.min_replicas:
                    entry["minReplicas"] = item.min_replicas
                if item.opt_out:
                    entry["optOut"] = True
                deployments.append(entry)
            spec_out["deployments"] = deployments
        return {
            "apiVersion": GROUP_VERSION.api_version,
            "kind": SCALE_POLICY_KIND,
            "metadata": _meta_to_dict(self.metadata),
            "spec": spec_out,
            "status": {"active": self.status.active},
        }