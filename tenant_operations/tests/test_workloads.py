"""Tests for workload descriptors."""

from tenant_operations.lib.config import ControllerConfig
from tenant_operations.lib.models import Tenant
from tenant_operations.lib.workloads import (
    APISERVER,
    CONTROLLER_MANAGER,
    build_apiserver_deployment,
    build_apiserver_service,
    build_controller_manager_deployment,
)


def _container(deployment: dict) -> dict:
    return deployment["spec"]["template"]["spec"]["containers"][0]


class TestApiserver:
    """Tests for kube-apiserver descriptors."""

    def test_deployment_metadata(self, tenant: Tenant, controller_config: ControllerConfig) -> None:
        deployment = build_apiserver_deployment(tenant, controller_config)

        assert deployment["metadata"]["name"] == APISERVER
        assert deployment["metadata"]["namespace"] == "t1"
        assert deployment["metadata"]["ownerReferences"][0]["uid"] == "uid-t1"
        assert deployment["spec"]["selector"]["matchLabels"] == {"app": APISERVER, "tenant": "t1"}

    def test_command_uses_etcd_servers_and_tenant_prefix(
        self, tenant: Tenant, controller_config: ControllerConfig
    ) -> None:
        command = _container(build_apiserver_deployment(tenant, controller_config))["command"]

        assert "--etcd-servers=https://etcd-0.etcd:2379,https://etcd-1.etcd:2379" in command
        assert "--etcd-prefix=/t1/registry" in command
        assert "--secure-port=6443" in command
        assert "--service-cluster-ip-range=10.101.0.0/16" in command

    def test_mounts_server_cert(self, tenant: Tenant, controller_config: ControllerConfig) -> None:
        deployment = build_apiserver_deployment(tenant, controller_config)

        volumes = deployment["spec"]["template"]["spec"]["volumes"]
        assert volumes == [{"name": "server-cert", "secret": {"secretName": "server-cert"}}]
        assert _container(deployment)["image"] == controller_config.apiserver_image

    def test_probes(self, tenant: Tenant, controller_config: ControllerConfig) -> None:
        container = _container(build_apiserver_deployment(tenant, controller_config))

        assert container["livenessProbe"]["httpGet"]["path"] == "/livez"
        assert container["readinessProbe"]["httpGet"]["path"] == "/readyz"
        assert container["readinessProbe"]["httpGet"]["port"] == 6443

    def test_service(self, tenant: Tenant) -> None:
        service = build_apiserver_service(tenant)

        assert service["metadata"]["name"] == APISERVER
        assert service["spec"]["ports"][0]["port"] == 6443
        assert service["spec"]["selector"] == {"app": APISERVER, "tenant": "t1"}


class TestControllerManager:
    """Tests for kube-controller-manager descriptors."""

    def test_mounts_kubeconfig_and_certs(
        self, tenant: Tenant, controller_config: ControllerConfig
    ) -> None:
        deployment = build_controller_manager_deployment(tenant, controller_config)

        assert deployment["metadata"]["name"] == CONTROLLER_MANAGER
        secrets = {
            v["secret"]["secretName"] for v in deployment["spec"]["template"]["spec"]["volumes"]
        }
        assert secrets == {"server-cert", "kubeconfig-controller-manager"}

    def test_command(self, tenant: Tenant, controller_config: ControllerConfig) -> None:
        command = _container(build_controller_manager_deployment(tenant, controller_config))["command"]

        assert "--kubeconfig=/etc/kubernetes/kubeconfig/controller-manager.conf" in command
        assert "--cluster-cidr=10.100.0.0/16" in command
        assert "--cluster-signing-key-file=/etc/kubernetes/pki/ca.key" in command

    def test_probes_use_healthz(self, tenant: Tenant, controller_config: ControllerConfig) -> None:
        container = _container(build_controller_manager_deployment(tenant, controller_config))

        assert container["livenessProbe"]["httpGet"]["path"] == "/healthz"
        assert container["livenessProbe"]["httpGet"]["port"] == 10257
