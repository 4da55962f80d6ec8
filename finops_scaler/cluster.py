"""Cluster objects and the client interface the controller talks through."""

from __future__ import annotations

import abc
import copy
from dataclasses import dataclass, field
from typing import Iterable, Union

from finops_scaler.api import FinOpsOperatorConfig, FinOpsScalePolicy


@dataclass(frozen=True, order=True)
class ObjectKey:
    """Namespace and name that identify an object."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


class NotFoundError(LookupError):
    """Raised when a requested object does not exist."""

    def __init__(self, kind: str, key: ObjectKey) -> None:
        super().__init__(f'{kind} "{key}" not found')
        self.kind = kind
        self.key = key


@dataclass
class Deployment:
    """The parts of a deployment the scaler reads and changes."""

    name: str
    namespace: str
    replicas: int = 1
    annotations: dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)


@dataclass(frozen=True)
class Namespace:
    """A cluster namespace."""

    name: str


ClusterObject = Union[Deployment, Namespace, FinOpsScalePolicy, FinOpsOperatorConfig]


class Client(abc.ABC):
    """Access to the cluster objects the scaler works on."""

    @abc.abstractmethod
    def list_namespaces(self) -> list[Namespace]:
        """Return every namespace."""

    @abc.abstractmethod
    def list_deployments(self, namespace: str) -> list[Deployment]:
        """Return the deployments of one namespace."""

    @abc.abstractmethod
    def list_policies(self, namespace: str | None = None) -> list[FinOpsScalePolicy]:
        """Return the scaling policies of a namespace, or of all namespaces."""

    @abc.abstractmethod
    def list_configs(self) -> list[FinOpsOperatorConfig]:
        """Return every operator configuration in the cluster."""

    @abc.abstractmethod
    def get_config(self, key: ObjectKey) -> FinOpsOperatorConfig:
        """Return one operator configuration or raise NotFoundError."""

    @abc.abstractmethod
    def get_deployment(self, key: ObjectKey) -> Deployment:
        """Return the current state of a deployment or raise NotFoundError."""

    @abc.abstractmethod
    def patch_deployment(self, deployment: Deployment) -> Deployment:
        """Write replicas and annotations of an existing deployment."""


def _meta_key(obj: FinOpsScalePolicy | FinOpsOperatorConfig) -> ObjectKey:
    return ObjectKey(obj.metadata.namespace, obj.metadata.name)


class InMemoryClient(Client):
    """A client that keeps the cluster state in memory.

    Objects are copied on the way in and on the way out, so callers never
    share state with the store.
    """

    def __init__(self, objects: Iterable[ClusterObject] = ()) -> None:
        self._namespaces: set[str] = set()
        self._deployments: dict[ObjectKey, Deployment] = {}
        self._policies: dict[ObjectKey, FinOpsScalePolicy] = {}
        self._configs: dict[ObjectKey, FinOpsOperatorConfig] = {}
        for obj in objects:
            self.add(obj)

    def add(self, obj: ClusterObject) -> None:
        """Store an object, replacing one with the same key."""
        if isinstance(obj, Namespace):
            self._namespaces.add(obj.name)
            return
        stored = copy.deepcopy(obj)
        if isinstance(stored, Deployment):
            self._deployments[stored.key] = stored
            namespace = stored.namespace
        elif isinstance(stored, FinOpsScalePolicy):
            self._policies[_meta_key(stored)] = stored
            namespace = stored.metadata.namespace
        elif isinstance(stored, FinOpsOperatorConfig):
            self._configs[_meta_key(stored)] = stored
            namespace = stored.metadata.namespace
        else:
            raise TypeError(f"unsupported object type {type(obj).__name__}")
        if namespace:
            self._namespaces.add(namespace)

    def list_namespaces(self) -> list[Namespace]:
        return [Namespace(name) for name in sorted(self._namespaces)]

    def list_deployments(self, namespace: str) -> list[Deployment]:
        return [
            copy.deepcopy(self._deployments[key])
            for key in sorted(self._deployments)
            if key.namespace == namespace
        ]

    def list_policies(self, namespace: str | None = None) -> list[FinOpsScalePolicy]:
        return [
            copy.deepcopy(self._policies[key])
            for key in sorted(self._policies)
            if namespace is None or key.namespace == namespace
        ]

    def list_configs(self) -> list[FinOpsOperatorConfig]:
        return [copy.deepcopy(self._configs[key]) for key in sorted(self._configs)]

    def get_config(self, key: ObjectKey) -> FinOpsOperatorConfig:
        try:
            return copy.deepcopy(self._configs[key])
        except KeyError:
            raise NotFoundError("FinOpsOperatorConfig", key) from None

    def get_deployment(self, key: ObjectKey) -> Deployment:
        try:
            return copy.deepcopy(self._deployments[key])
        except KeyError:
            raise NotFoundError("Deployment", key) from None

    def patch_deployment(self, deployment: Deployment) -> Deployment:
        key = deployment.key
        if key not in self._deployments:
            raise NotFoundError("Deployment", key)
        stored = self._deployments[key]
        stored.replicas = deployment.replicas
        stored.annotations = dict(deployment.annotations)
        return copy.deepcopy(stored)