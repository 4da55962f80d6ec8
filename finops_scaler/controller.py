"""Reconciler that scales deployments down and back up on a schedule."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

from finops_scaler.api import (
    FinOpsOperatorConfig,
    FinOpsOperatorConfigSpec,
    FinOpsScalePolicy,
    ScheduleSpec,
)
from finops_scaler.cluster import Client, Deployment, NotFoundError, ObjectKey
from finops_scaler.schedule import is_scaling_time, parse_duration, parse_int32

log = logging.getLogger(__name__)

ORIGINAL_REPLICAS_ANNOTATION = "finops.dev/original-replicas"
NAMESPACE_PATH = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"
DEFAULT_CHECK_INTERVAL = timedelta(minutes=5)


@dataclass(frozen=True)
class Request:
    """Identifies the object whose change triggered a reconcile.

    An empty namespace and name ask for a cluster-wide scan.
    """

    namespace: str = ""
    name: str = ""

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)


@dataclass(frozen=True)
class Result:
    """Outcome of a reconcile: when, if at all, to run again."""

    requeue_after: Optional[timedelta] = None


def default_config() -> FinOpsOperatorConfig:
    """The configuration used when the cluster holds none."""
    return FinOpsOperatorConfig(
        spec=FinOpsOperatorConfigSpec(
            excluded_namespaces=[
                "kube-system",
                "kube-public",
                "kube-node-lease",
                "local-path-storage",
            ],
            max_parallel_operations=5,
            check_interval="5m",
            force_scale_down=False,
            force_scale_down_schedule=None,
            force_scale_down_timezone="UTC",
        )
    )


def get_controller_namespace(path: str | Path = NAMESPACE_PATH) -> str:
    """Read the namespace the controller runs in from its service-account file."""
    try:
        return Path(path).read_text().strip()
    except OSError as err:
        raise OSError(f"failed to read controller namespace: {err}") from err


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FinOpsScalePolicyReconciler:
    """Brings deployment replica counts in line with policies and global config."""

    def __init__(
        self,
        client: Client,
        *,
        config: Optional[FinOpsOperatorConfig] = None,
        namespace_path: str | Path = NAMESPACE_PATH,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.client = client
        self.config = config
        self.namespace_path = namespace_path
        self.clock = clock
        self._lock = threading.Lock()

    # -- configuration -------------------------------------------------

    def load_config(self) -> FinOpsOperatorConfig:
        """Load the global configuration from the cluster, or use the defaults."""
        log.info("Loading FinOpsOperatorConfig...")
        configs = self.client.list_configs()
        if not configs:
            log.info("No FinOpsOperatorConfig found, using default values")
            self.config = default_config()
        else:
            self.config = configs[0]
            if len(configs) == 1:
                log.info("Loaded FinOpsOperatorConfig %s", self.config.name)
            else:
                log.warning(
                    "Multiple FinOpsOperatorConfig resources found (%d). Using %s",
                    len(configs),
                    self.config.name,
                )
        return self.config

    def _active_config(self) -> FinOpsOperatorConfig:
        return self.config if self.config is not None else self.load_config()

    def _parallelism(self) -> int:
        # A zero limit would stall every worker, so at least one runs at a time.
        return max(1, self._active_config().spec.max_parallel_operations)

    # -- entry points --------------------------------------------------

    def reconcile(self, request: Request) -> Result:
        """Handle one change notification."""
        with self._lock:
            log.info("Reconciling %s", request.key)
            controller_namespace = get_controller_namespace(self.namespace_path)

            try:
                self.client.get_config(request.key)
            except NotFoundError:
                pass
            else:
                if request.namespace != controller_namespace:
                    log.info(
                        "Ignoring FinOpsOperatorConfig from namespace %s, expected %s",
                        request.namespace,
                        controller_namespace,
                    )
                    return Result()
                log.info("Reconcile triggered by FinOpsOperatorConfig %s", request.key)
                self.load_config()
                return self.reconcile_all_namespaces()

            if self.config is None:
                self.load_config()

            if not request.name and not request.namespace:
                return self.reconcile_all_namespaces()

            self.reconcile_namespace(request.namespace)
            return Result()

    def reconcile_all_namespaces(self) -> Result:
        """Scan the whole cluster and ask to be run again after the check interval."""
        config = self._active_config()
        spec = config.spec
        log.info("Starting cluster-wide scan...")

        if spec.force_scale_down and spec.force_scale_down_schedule is not None:
            targets = [
                namespace.name
                for namespace in self.client.list_namespaces()
                if not self.is_namespace_excluded(namespace.name)
            ]
            work: Callable[[str], None] = self._reconcile_forced_namespace
        else:
            targets = sorted(
                {policy.namespace for policy in self.client.list_policies()}
            )
            work = self.reconcile_namespace

        with ThreadPoolExecutor(max_workers=self._parallelism()) as pool:
            futures = [pool.submit(work, namespace) for namespace in targets]
        for future in futures:
            error = future.exception()
            if error is not None:
                log.error("Error during namespace reconciliation: %s", error)
                raise error

        try:
            interval = parse_duration(spec.check_interval)
        except ValueError as err:
            log.error("Invalid CheckInterval, using default 5m: %s", err)
            interval = DEFAULT_CHECK_INTERVAL
        log.info("Cluster-wide scan completed, next check in %s", interval)
        return Result(requeue_after=interval)

    def _reconcile_forced_namespace(self, namespace: str) -> None:
        spec = self._active_config().spec
        policies = self.client.list_policies(namespace)

        scaling_time = False
        window = spec.force_scale_down_schedule
        if window is not None:
            schedule = ScheduleSpec(
                days=list(window.days),
                start_time=window.start_time,
                end_time=window.end_time,
            )
            scaling_time = is_scaling_time(
                [schedule], spec.force_scale_down_timezone, self.clock()
            )

        if policies:
            log.debug("FinOpsScalePolicy found in %s, using it", namespace)
            self.reconcile_namespace(namespace)
        else:
            log.info(
                "No policy in %s, forced scale-down active: %s", namespace, scaling_time
            )
            self.manage_deployments_without_policy(namespace, scaling_time)

    # -- per-namespace work --------------------------------------------

    def manage_deployments_without_policy(
        self, namespace: str, force_scale_down: bool
    ) -> None:
        """Scale a policy-less namespace to zero, or restore it, per the global window."""
        for deployment in self.client.list_deployments(namespace):
            if self.is_deployment_excluded(deployment.namespace, deployment.name):
                log.info("Skipping excluded deployment %s", deployment.key)
                continue

            original = self.get_original_replicas(deployment)
            if force_scale_down:
                min_replicas = 0
                if original is None and deployment.replicas > min_replicas:
                    self.store_original_replicas(deployment, deployment.replicas)
                    self.scale_deployment(deployment, min_replicas)
                elif original is not None and deployment.replicas != 0:
                    self.scale_deployment(deployment, min_replicas)
            elif original is not None:
                self.scale_deployment(deployment, original)
                self.clear_original_replicas(deployment)
            else:
                log.debug("No original replicas for %s, skipping", deployment.key)

    def reconcile_namespace(self, namespace: str) -> None:
        """Apply the namespace's scaling policies to its deployments."""
        if namespace in self._active_config().spec.excluded_namespaces:
            log.info("Skipping excluded namespace %s", namespace)
            return

        for policy in self.client.list_policies(namespace):
            if policy.spec.opt_out:
                log.info("OptOut is true, skipping namespace %s", namespace)
                return
            for deployment in self.client.list_deployments(namespace):
                if self.is_deployment_excluded(deployment.namespace, deployment.name):
                    log.info("Skipping excluded deployment %s", deployment.key)
                    continue
                self._apply_policy(policy, deployment)
        log.info("Finished processing namespace %s", namespace)

    def _apply_policy(self, policy: FinOpsScalePolicy, deployment: Deployment) -> None:
        schedules: list[ScheduleSpec] = []
        if policy.spec.default_schedule is not None:
            schedules.append(policy.spec.default_schedule)
        min_replicas = 0
        opted_out = False
        rule = next(
            (item for item in policy.spec.deployments if item.name == deployment.name),
            None,
        )
        if rule is not None:
            if rule.schedule is not None:
                schedules = [rule.schedule]
            min_replicas = rule.min_replicas
            opted_out = rule.opt_out

        if opted_out:
            log.info("Deployment %s opted out of scaling", deployment.key)
            return

        original = self.get_original_replicas(deployment)
        if is_scaling_time(schedules, policy.spec.timezone, self.clock()):
            if original is None and deployment.replicas > min_replicas:
                self.store_original_replicas(deployment, deployment.replicas)
                self.scale_deployment(deployment, min_replicas)
            elif original is not None and deployment.replicas > min_replicas:
                self.scale_deployment(deployment, min_replicas)
            else:
                log.info("Nothing to scale down for %s", deployment.key)
        elif original is not None and deployment.replicas != original:
            self.scale_deployment(deployment, original)
            self.clear_original_replicas(deployment)
        else:
            log.info("No scaling required for %s", deployment.key)

    # -- exclusions ----------------------------------------------------

    def is_namespace_excluded(self, namespace: str) -> bool:
        """True if the global config excludes the namespace."""
        return namespace in self._active_config().spec.excluded_namespaces

    def is_deployment_excluded(self, namespace: str, name: str) -> bool:
        """True if the global config excludes the deployment."""
        return any(
            item.namespace == namespace and item.name == name
            for item in self._active_config().spec.excluded_deployments
        )

    # -- deployment changes --------------------------------------------

    def scale_deployment(self, deployment: Deployment, replicas: int) -> None:
        """Set a deployment's replica count, leaving its annotations as stored."""
        latest = self.client.get_deployment(deployment.key)
        latest.replicas = replicas
        self.client.patch_deployment(latest)
        deployment.replicas = replicas
        log.info("Scaled deployment %s to %d replicas", deployment.key, replicas)

    def get_original_replicas(self, deployment: Deployment) -> Optional[int]:
        """The replica count saved before scale-down, or None if none is saved."""
        value = deployment.annotations.get(ORIGINAL_REPLICAS_ANNOTATION)
        if value is None:
            return None
        try:
            return parse_int32(value)
        except ValueError as err:
            raise ValueError(
                f"invalid value for annotation {ORIGINAL_REPLICAS_ANNOTATION}: {err}"
            ) from err

    def store_original_replicas(self, deployment: Deployment, replicas: int) -> None:
        """Save the replica count in an annotation on the stored deployment."""
        latest = self.client.get_deployment(deployment.key)
        latest.annotations[ORIGINAL_REPLICAS_ANNOTATION] = str(replicas)
        self.client.patch_deployment(latest)
        log.info("Stored original replicas %d on %s", replicas, deployment.key)

    def clear_original_replicas(self, deployment: Deployment) -> None:
        """Remove the saved replica count, if the deployment carries one."""
        if ORIGINAL_REPLICAS_ANNOTATION not in deployment.annotations:
            log.info("Annotation not found on %s, skipping deletion", deployment.key)
            return
        latest = self.client.get_deployment(deployment.key)
        latest.annotations.pop(ORIGINAL_REPLICAS_ANNOTATION, None)
        self.client.patch_deployment(latest)
        deployment.annotations.pop(ORIGINAL_REPLICAS_ANNOTATION, None)
        log.info("Removed original replicas annotation from %s", deployment.key)