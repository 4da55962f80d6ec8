"""Schedule-driven scale-down and restore of deployments from FinOps scale policies."""

__version__ = "0.1.0"

__all__ = ["api", "cluster", "controller", "schedule", "webhook"]