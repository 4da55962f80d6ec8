"""Admission validation for the operator configuration resource."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from finops_scaler.api import FinOpsOperatorConfig

log = logging.getLogger(__name__)


class ValidationError(Exception):
    """The admission request is denied."""


class _ConfigLister(Protocol):
    def list_configs(self) -> list[FinOpsOperatorConfig]: ...


def _require_config(obj: Any, what: str = "") -> FinOpsOperatorConfig:
    if not isinstance(obj, FinOpsOperatorConfig):
        target = f" for the {what}" if what else ""
        raise TypeError(
            f"expected a FinOpsOperatorConfig object{target} but got {type(obj).__name__}"
        )
    return obj


class FinOpsOperatorConfigValidator:
    """Allows at most one operator configuration in the cluster.

    Each method returns a list of admission warnings, or raises
    ValidationError to deny the request.
    """

    def __init__(self, client: _ConfigLister) -> None:
        self.client = client

    def _existing_configs(self) -> list[FinOpsOperatorConfig]:
        try:
            return self.client.list_configs()
        except Exception as err:
            log.error("Failed to list existing FinOpsOperatorConfig resources: %s", err)
            raise ValidationError(
                "internal error: failed to list existing FinOpsOperatorConfig resources"
            ) from err

    def validate_create(self, obj: Any) -> list[str]:
        config = _require_config(obj)
        log.info("Validation for FinOpsOperatorConfig upon creation name=%s", config.name)
        if self._existing_configs():
            raise ValidationError(
                "only one FinOpsOperatorConfig resource can be created in the cluster"
            )
        return []

    def validate_update(self, old_obj: Any, new_obj: Any) -> list[str]:
        config = _require_config(new_obj, "newObj")
        log.info("Validation for FinOpsOperatorConfig upon update name=%s", config.name)
        if len(self._existing_configs()) > 1:
            raise ValidationError(
                "only one FinOpsOperatorConfig resource is allowed in the cluster"
            )
        return []

    def validate_delete(self, obj: Any) -> list[str]:
        config = _require_config(obj)
        log.info("Validation for FinOpsOperatorConfig upon deletion name=%s", config.name)
        return []