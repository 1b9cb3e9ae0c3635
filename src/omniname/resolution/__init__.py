"""Resolution engine: routing, orchestration and batching."""

from omniname.resolution.batch import BatchPlan, ProviderGroup, group_by_primary
from omniname.resolution.orchestrator import NameOrchestrator, OrchestratorConfig
from omniname.resolution.registry import ProviderRegistry, Registration
from omniname.resolution.router import Route, RoutePattern, Router, RouteTable

__all__ = [
    # Router
    "Route",
    "RoutePattern",
    "RouteTable",
    "Router",
    # Batch
    "BatchPlan",
    "ProviderGroup",
    "group_by_primary",
    # Orchestrator
    "NameOrchestrator",
    "OrchestratorConfig",
    # Registry
    "ProviderRegistry",
    "Registration",
]
