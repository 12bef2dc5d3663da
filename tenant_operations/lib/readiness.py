"""Readiness polling for a tenant's control-plane deployments."""

from dataclasses import dataclass, field

from .logging_config import LOGGER
from .object_store import ObjectStore
from .workloads import APISERVER, CONTROLLER_MANAGER

EXPECTED_DEPLOYMENTS = (APISERVER, CONTROLLER_MANAGER)


@dataclass
class ProbeResult:
    not_ready: list[str] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.not_ready


class ReadinessProber:
    """Compares replicas to readyReplicas on each expected deployment."""

    def __init__(self, store: ObjectStore, deployments: tuple[str, ...] = EXPECTED_DEPLOYMENTS) -> None:
        self.store = store
        self.deployments = deployments

    def probe(self, namespace: str) -> ProbeResult:
        """Read deployment status; store errors propagate to the caller.

        Stops at the first deployment that is not ready.
        """
        result = ProbeResult()
        for name in self.deployments:
            deployment = self.store.get("Deployment", namespace, name)
            status = deployment.get("status") or {}
            # A deployment the controller has not observed yet has no status.
            desired = (deployment.get("spec") or {}).get("replicas", 1)
            replicas = status.get("replicas", desired)
            ready_replicas = status.get("readyReplicas", 0)
            if replicas != ready_replicas:
                LOGGER.warning(
                    "deployment %s/%s is not ready (%d/%d)",
                    namespace,
                    name,
                    ready_replicas,
                    replicas,
                    extra={"tenant": namespace},
                )
                result.not_ready.append(name)
                break
        return result
