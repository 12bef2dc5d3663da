"""Tenant reconciler: finalizer protocol, provisioning and readiness.

One call to `reconcile` is one pass. Every pass that gets past loading the
tenant ends by recomputing the phase from conditions and persisting status,
whether the pass succeeded or failed.
"""

import threading
from dataclasses import dataclass

from . import conditions
from .bundles import load_seed_data
from .config import ControllerConfig
from .errors import AggregateError, NotFoundError, ProvisioningError, ReconcileCancelledError
from .logging_config import LOGGER
from .models import (
    CONDITION_PROVISIONED,
    CONDITION_READY,
    Condition,
    ReconcileResult,
    Tenant,
    TenantPhase,
)
from .object_store import KubeObject, ObjectStore, create_if_not_exists
from .pipeline import ProvisioningPipeline, raise_if_cancelled
from .readiness import ReadinessProber
from .registry import ResourceRegistry

TENANT_KIND = "Tenant"


def derive_phase(tenant_conditions: list[Condition], deleting: bool) -> TenantPhase:
    """Project conditions and the deletion marker onto a phase.

    Later checks take precedence; deletion overrides everything.
    """
    phase = TenantPhase.PENDING
    if conditions.is_false(tenant_conditions, CONDITION_PROVISIONED):
        phase = TenantPhase.PROVISIONING
    if conditions.is_true(tenant_conditions, CONDITION_PROVISIONED):
        phase = TenantPhase.PROVISIONED
    if conditions.is_false(tenant_conditions, CONDITION_READY):
        phase = TenantPhase.FAILED
    if conditions.is_true(tenant_conditions, CONDITION_READY):
        phase = TenantPhase.READY
    if deleting:
        phase = TenantPhase.TERMINATING
    return phase


@dataclass
class PassOutcome:
    """What a reconcile pass produced before status is persisted."""

    result: ReconcileResult
    error: Exception | None = None


class TenantReconciler:
    """Drives one tenant through its lifecycle per invocation."""

    def __init__(
        self,
        store: ObjectStore,
        config: ControllerConfig,
        registry: ResourceRegistry,
        seed_data: dict[str, bytes] | None = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            store: Host object store
            config: Controller configuration
            registry: Resource registry shared with the store
            seed_data: Entries merged into every server-cert bundle
        """
        self.store = store
        self.config = config
        self.tenant_type = registry.lookup(TENANT_KIND)
        self.pipeline = ProvisioningPipeline(store, config, seed_data)
        self.prober = ReadinessProber(store)

    @classmethod
    def from_config(
        cls, store: ObjectStore, config: ControllerConfig, registry: ResourceRegistry
    ) -> "TenantReconciler":
        """Build a reconciler, loading seed data from the configured etcd secret."""
        return cls(store, config, registry, load_seed_data(store, config.etcd_secret_ref))

    def reconcile(self, name: str, cancel: threading.Event | None = None) -> ReconcileResult:
        """Run one reconcile pass for the named tenant.

        Raises:
            ReconcileCancelledError: If cancel is set; status is not written
            Exception: The pass error, the status write error, or an
                AggregateError holding both
        """
        LOGGER.info("reconcile for Tenant", extra={"tenant": name})
        raise_if_cancelled(cancel)

        try:
            obj = self.store.get(TENANT_KIND, None, name)
        except NotFoundError:
            LOGGER.info("Tenant not found, assuming deleted", extra={"tenant": name})
            return ReconcileResult()

        tenant = Tenant.from_object(obj)
        if not obj.get("apiVersion"):
            tenant.api_version = self.tenant_type.api_version

        outcome = self._run(tenant, cancel)

        tenant.phase = derive_phase(tenant.conditions, tenant.is_deleting)
        persist_error = self._persist(tenant)

        error = AggregateError.of(outcome.error, persist_error)
        if error is not None:
            raise error
        return outcome.result

    def _run(self, tenant: Tenant, cancel: threading.Event | None) -> PassOutcome:
        if not tenant.has_finalizer():
            if tenant.is_deleting:
                # Finalizers cannot be added once deletion has started.
                LOGGER.info("Tenant deleting without finalizer", extra={"tenant": tenant.name})
                return PassOutcome(ReconcileResult())
            # Record the finalizer before anything else becomes observable.
            tenant.add_finalizer()
            LOGGER.info("Added finalizer", extra={"tenant": tenant.name})
            return PassOutcome(ReconcileResult())

        try:
            if tenant.is_deleting:
                return PassOutcome(self._reconcile_delete(tenant))
            return PassOutcome(self._reconcile_normal(tenant, cancel))
        except ReconcileCancelledError:
            raise
        except ProvisioningError as e:
            # Already logged by the pipeline with its phase.
            return PassOutcome(ReconcileResult(), e)
        except Exception as e:
            LOGGER.error("reconcile failed: %s", e, extra={"tenant": tenant.name})
            return PassOutcome(ReconcileResult(), e)

    def _reconcile_delete(self, tenant: Tenant) -> ReconcileResult:
        """Release the finalizer once Terminating has been recorded.

        The first pass after deletion is requested only persists the
        Terminating phase and asks for an immediate retry; the next pass sees
        it and lets the object go. Owned objects are left to the garbage
        collector.
        """
        LOGGER.info("reconcile for Tenant delete", extra={"tenant": tenant.name})
        if tenant.phase != TenantPhase.TERMINATING:
            return ReconcileResult(requeue_after=0)
        tenant.remove_finalizer()
        return ReconcileResult()

    def _reconcile_normal(self, tenant: Tenant, cancel: threading.Event | None) -> ReconcileResult:
        LOGGER.info("reconcile for Tenant normal", extra={"tenant": tenant.name})

        raise_if_cancelled(cancel)
        create_if_not_exists(
            self.store, "Namespace", None, tenant.namespace, lambda: self._namespace(tenant)
        )

        if not conditions.is_true(tenant.conditions, CONDITION_PROVISIONED):
            try:
                self.pipeline.run(tenant, cancel)
            except ProvisioningError as e:
                conditions.mark_false(
                    tenant.conditions, CONDITION_PROVISIONED, e.reason, str(e.cause)
                )
                raise
            conditions.mark_true(
                tenant.conditions, CONDITION_PROVISIONED, "Success", "Success to provision"
            )

        raise_if_cancelled(cancel)
        probe = self.prober.probe(tenant.namespace)
        if not probe.ready:
            return ReconcileResult(requeue_after=self.config.ready_requeue_seconds)

        conditions.mark_true(tenant.conditions, CONDITION_READY, "Success", "Ready")
        return ReconcileResult()

    def _namespace(self, tenant: Tenant) -> KubeObject:
        return {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {
                "name": tenant.namespace,
                "labels": {"tenant": tenant.name},
                "ownerReferences": [tenant.owner_reference()],
            },
        }

    def _persist(self, tenant: Tenant) -> Exception | None:
        """Write finalizers, owner references and status; return any failure."""
        try:
            self.store.patch(TENANT_KIND, None, tenant.name, tenant.apply_to)
        except NotFoundError:
            # Finalizer release let the object go; nothing left to update.
            return None
        except Exception as e:
            LOGGER.error("unable to patch Tenant: %s", e, extra={"tenant": tenant.name})
            return e
        return None
