# finops-scaler

Scales deployments down during scheduled windows and restores them afterwards.
Two kinds of resources drive it:

- **FinOpsScalePolicy** (per namespace): a default schedule, a timezone, an
  opt-out switch, and per-deployment overrides (own schedule, minimum
  replicas, opt-out).
- **FinOpsOperatorConfig** (one per cluster): excluded namespaces and
  deployments, the parallelism limit, the check interval, and an optional
  cluster-wide forced scale-down schedule for namespaces without a policy.

Before a deployment is scaled down, its replica count is stored in the
`finops.dev/original-replicas` annotation. Outside the window that value is
used to scale the deployment back up, and the annotation is then removed.

## Installing

```
pip install finops-scaler
```

The package has no dependencies outside the standard library. It needs
Python 3.10 or later.

## Modules

- `finops_scaler.api`: the resource types (`FinOpsScalePolicy`,
  `FinOpsOperatorConfig`, `ScheduleSpec`, `GlobalScheduleSpec`,
  `DeploymentScale`, `ExcludedDeploy`, `ObjectMeta`, `GroupVersion`, …).
  Both top-level resources have `from_dict` and `to_dict`, which work on the
  camelCase document form. `to_dict` leaves out empty optional fields.
  `from_dict` raises `ValueError` if `kind` or `apiVersion` does not match.
- `finops_scaler.schedule`: `is_day_active`, `is_time_within_range`,
  `is_scaling_time`, `parse_int32` and `parse_duration`.
  - Days are three-letter names compared without regard to case, or `"*"`.
  - Times are `HH:MM`.
  - A window whose end is before its start runs across midnight.
  - An unknown timezone or a malformed time makes `is_scaling_time` return
    `False`.
  - `parse_duration` accepts values such as `"5m"` or `"1h30m"` and returns a
    `timedelta`.
- `finops_scaler.cluster`: the abstract `Client` interface, together with
  `Deployment`, `Namespace`, `ObjectKey` and `NotFoundError`. It also has
  `InMemoryClient`, which keeps all objects in memory and copies them on the
  way in and out.
- `finops_scaler.controller`: `FinOpsScalePolicyReconciler`, `Request`,
  `Result`, `default_config` and `get_controller_namespace`. The reconciler
  reads its own namespace from a file, which defaults to the service-account
  path. It takes an optional `clock` so the current time can be fixed.
- `finops_scaler.webhook`: `FinOpsOperatorConfigValidator`, which has
  `validate_create`, `validate_update` and `validate_delete`.
  - It raises `ValidationError` when a second `FinOpsOperatorConfig` would
    exist.
  - It raises `TypeError` for objects of any other type.
  - Each method returns a list of warnings.

## Example

```python
from datetime import datetime, timezone
from pathlib import Path

from finops_scaler.api import FinOpsScalePolicy
from finops_scaler.cluster import Deployment, InMemoryClient, ObjectKey
from finops_scaler.controller import FinOpsScalePolicyReconciler, Request

client = InMemoryClient()
client.add(Deployment(name="web", namespace="shop", replicas=3))
client.add(FinOpsScalePolicy.from_dict({
    "metadata": {"name": "nightly", "namespace": "shop"},
    "spec": {
        "timezone": "UTC",
        "defaultSchedule": {"days": ["*"], "startTime": "20:00", "endTime": "06:00"},
    },
}))

namespace_file = Path("controller-namespace")
namespace_file.write_text("finops-system\n")

reconciler = FinOpsScalePolicyReconciler(
    client,
    namespace_path=namespace_file,
    clock=lambda: datetime(2025, 1, 6, 22, 0, tzinfo=timezone.utc),
)
reconciler.reconcile(Request(namespace="shop", name="nightly"))

web = client.get_deployment(ObjectKey("shop", "web"))
print(web.replicas)                                          # 0
print(web.annotations["finops.dev/original-replicas"])       # "3"
```

A cluster-wide scan, started with an empty `Request()` or by a change to the
operator configuration, returns a `Result`. Its `requeue_after` is the
configured check interval. That interval is 5 minutes by default, and also
when the configured value cannot be parsed.

When the cluster holds no `FinOpsOperatorConfig`, `default_config()` is used.
It excludes `kube-system`, `kube-public`, `kube-node-lease` and
`local-path-storage`, runs at most 5 operations in parallel, and uses UTC for
the forced schedule.

## What it does not do

- It does not connect to a real cluster API. The only `Client` it ships is
  `InMemoryClient`; to reach a cluster you write your own subclass of `Client`.
- It has no command-line program and no long-running manager process. Nothing
  calls `reconcile` repeatedly: the caller runs it and honours
  `Result.requeue_after`.
- It does not serve HTTP. There is no admission webhook endpoint and no metrics
  or health-probe server; `FinOpsOperatorConfigValidator` is a plain object.

## Tests

```
pip install "finops-scaler[test]"
pytest
```