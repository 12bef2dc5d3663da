"""Provisioning pipeline: ordered, idempotent, create-only phases."""

import threading
from enum import Enum

from .bundles import (
    ADMIN_CLIENT,
    ADMIN_CONF,
    CONTROLLER_MANAGER_CLIENT,
    CONTROLLER_MANAGER_CONF,
    KUBECONFIG_ADMIN_SECRET,
    KUBECONFIG_CONTROLLER_MANAGER_SECRET,
    KUBECONFIG_SECRET_TYPE,
    SERVER_CERT_SECRET,
    SERVER_CERT_SECRET_TYPE,
    build_kubeconfig_data,
    build_secret,
    build_server_cert_data,
    read_ca,
)
from .config import CertConfig, ControllerConfig
from .errors import ProvisioningError, ReconcileCancelledError
from .logging_config import LOGGER
from .models import Tenant
from .object_store import ObjectStore, create_if_not_exists
from .workloads import (
    APISERVER,
    CONTROLLER_MANAGER,
    build_apiserver_deployment,
    build_apiserver_service,
    build_controller_manager_deployment,
)


class Phase(Enum):
    SECRET = "Secret"
    KUBECONFIG = "Kubeconfig"
    API_SERVER = "APIServer"
    CONTROLLER_MANAGER = "ControllerManager"


# Later phases read artifacts written by earlier ones.
PHASES: tuple[Phase, ...] = (
    Phase.SECRET,
    Phase.KUBECONFIG,
    Phase.API_SERVER,
    Phase.CONTROLLER_MANAGER,
)


def raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ReconcileCancelledError("reconcile cancelled")


class ProvisioningPipeline:
    """Materializes a tenant's credential bundles and control-plane workloads."""

    def __init__(
        self,
        store: ObjectStore,
        config: ControllerConfig,
        seed_data: dict[str, bytes] | None = None,
    ) -> None:
        """Initialize pipeline.

        Args:
            store: Host object store
            config: Controller configuration
            seed_data: Entries merged verbatim into every server-cert bundle
        """
        self.store = store
        self.config = config
        self.seed_data = dict(seed_data or {})

    def run(self, tenant: Tenant, cancel: threading.Event | None = None) -> None:
        """Run every phase in order, stopping at the first failure.

        Raises:
            ProvisioningError: Wrapping the failing phase and its cause
            ReconcileCancelledError: If cancel is set between phases
        """
        for phase in PHASES:
            raise_if_cancelled(cancel)
            try:
                self.run_phase(phase, tenant)
            except Exception as e:
                LOGGER.error(
                    "Phase %s failed: %s",
                    phase.value,
                    e,
                    extra={"tenant": tenant.name, "phase": phase.value},
                )
                raise ProvisioningError(phase.value, e) from e

    def run_phase(self, phase: Phase, tenant: Tenant) -> None:
        match phase:
            case Phase.SECRET:
                self._reconcile_secret(tenant)
            case Phase.KUBECONFIG:
                self._reconcile_kubeconfig(tenant)
            case Phase.API_SERVER:
                self._reconcile_apiserver(tenant)
            case Phase.CONTROLLER_MANAGER:
                self._reconcile_controller_manager(tenant)

    def _reconcile_secret(self, tenant: Tenant) -> None:
        create_if_not_exists(
            self.store,
            "Secret",
            tenant.namespace,
            SERVER_CERT_SECRET,
            lambda: build_secret(
                tenant,
                SERVER_CERT_SECRET,
                build_server_cert_data(tenant.name, self.config, self.seed_data),
                SERVER_CERT_SECRET_TYPE,
            ),
        )

    def _reconcile_kubeconfig(self, tenant: Tenant) -> None:
        for secret_name, conf_key, client in (
            (KUBECONFIG_ADMIN_SECRET, ADMIN_CONF, ADMIN_CLIENT),
            (KUBECONFIG_CONTROLLER_MANAGER_SECRET, CONTROLLER_MANAGER_CONF, CONTROLLER_MANAGER_CLIENT),
        ):
            create_if_not_exists(
                self.store,
                "Secret",
                tenant.namespace,
                secret_name,
                lambda name=secret_name, key=conf_key, cfg=client: self._kubeconfig_secret(
                    tenant, name, key, cfg
                ),
            )

    def _kubeconfig_secret(self, tenant: Tenant, secret_name: str, conf_key: str, client: CertConfig):
        # Missing server-cert surfaces as NotFoundError; the CA is never regenerated here.
        ca_cert, ca_key = read_ca(self.store, tenant.namespace)
        data = build_kubeconfig_data(tenant.name, ca_cert, ca_key, client, self.config.key_size)
        return build_secret(tenant, secret_name, {conf_key: data}, KUBECONFIG_SECRET_TYPE)

    def _reconcile_apiserver(self, tenant: Tenant) -> None:
        create_if_not_exists(
            self.store,
            "Deployment",
            tenant.namespace,
            APISERVER,
            lambda: build_apiserver_deployment(tenant, self.config),
        )
        create_if_not_exists(
            self.store,
            "Service",
            tenant.namespace,
            APISERVER,
            lambda: build_apiserver_service(tenant),
        )

    def _reconcile_controller_manager(self, tenant: Tenant) -> None:
        create_if_not_exists(
            self.store,
            "Deployment",
            tenant.namespace,
            CONTROLLER_MANAGER,
            lambda: build_controller_manager_deployment(tenant, self.config),
        )
