"""Deployment and Service descriptors for a tenant's hosted control plane."""

from typing import Any

from .bundles import KUBECONFIG_CONTROLLER_MANAGER_SECRET, SERVER_CERT_SECRET
from .config import ControllerConfig
from .kubeconfig import APISERVER_PORT
from .models import Tenant
from .object_store import KubeObject

APISERVER = "kube-apiserver"
CONTROLLER_MANAGER = "kube-controller-manager"

PKI_DIR = "/etc/kubernetes/pki"
KUBECONFIG_DIR = "/etc/kubernetes/kubeconfig"

CONTROLLER_MANAGER_PORT = 10257


def labels(app: str, tenant: Tenant) -> dict[str, str]:
    return {"app": app, "tenant": tenant.name}


def _https_probe(path: str, port: int, **timing: int) -> dict[str, Any]:
    return {
        "httpGet": {"host": "127.0.0.1", "path": path, "port": port, "scheme": "HTTPS"},
        **timing,
    }


def _probes(port: int, live_path: str = "/livez", ready_path: str = "/readyz") -> dict[str, Any]:
    return {
        "livenessProbe": _https_probe(
            live_path,
            port,
            initialDelaySeconds=10,
            periodSeconds=10,
            timeoutSeconds=15,
            successThreshold=1,
            failureThreshold=8,
        ),
        "readinessProbe": _https_probe(
            ready_path,
            port,
            periodSeconds=1,
            timeoutSeconds=15,
            successThreshold=1,
            failureThreshold=3,
        ),
        "startupProbe": _https_probe(
            live_path,
            port,
            initialDelaySeconds=10,
            periodSeconds=10,
            timeoutSeconds=15,
            successThreshold=1,
            failureThreshold=24,
        ),
    }


def _secret_volume(name: str, secret_name: str) -> dict[str, Any]:
    return {"name": name, "secret": {"secretName": secret_name}}


def _deployment(
    tenant: Tenant, app: str, container: dict[str, Any], volumes: list[dict[str, Any]]
) -> KubeObject:
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {
            "name": app,
            "namespace": tenant.namespace,
            "labels": labels(app, tenant),
            "ownerReferences": [tenant.owner_reference()],
        },
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": labels(app, tenant)},
            "template": {
                "metadata": {"labels": labels(app, tenant)},
                "spec": {"containers": [container], "volumes": volumes},
            },
        },
    }


def apiserver_command(tenant: Tenant, config: ControllerConfig) -> list[str]:
    return [
        "kube-apiserver",
        "--advertise-address=0.0.0.0",
        "--allow-privileged=true",
        "--authorization-mode=Node,RBAC",
        f"--client-ca-file={PKI_DIR}/ca.crt",
        "--enable-admission-plugins=NodeRestriction",
        "--enable-bootstrap-token-auth=true",
        f"--etcd-cafile={PKI_DIR}/etcd-ca.crt",
        f"--etcd-certfile={PKI_DIR}/apiserver-etcd-client.crt",
        f"--etcd-keyfile={PKI_DIR}/apiserver-etcd-client.key",
        "--etcd-servers=" + ",".join(config.etcd_servers),
        f"--etcd-prefix=/{tenant.name}/registry",
        f"--kubelet-client-certificate={PKI_DIR}/apiserver-kubelet-client.crt",
        f"--kubelet-client-key={PKI_DIR}/apiserver-kubelet-client.key",
        "--kubelet-preferred-address-types=InternalIP,ExternalIP,Hostname",
        f"--proxy-client-cert-file={PKI_DIR}/front-proxy-client.crt",
        f"--proxy-client-key-file={PKI_DIR}/front-proxy-client.key",
        "--requestheader-allowed-names=front-proxy-client",
        f"--requestheader-client-ca-file={PKI_DIR}/front-proxy-ca.crt",
        "--requestheader-extra-headers-prefix=X-Remote-Extra-",
        "--requestheader-group-headers=X-Remote-Group",
        "--requestheader-username-headers=X-Remote-User",
        f"--secure-port={APISERVER_PORT}",
        "--service-account-issuer=https://kubernetes.default.svc.cluster.local",
        f"--service-account-key-file={PKI_DIR}/sa.pub",
        f"--service-account-signing-key-file={PKI_DIR}/sa.key",
        f"--service-cluster-ip-range={config.service_cluster_ip_range}",
        f"--tls-cert-file={PKI_DIR}/apiserver.crt",
        f"--tls-private-key-file={PKI_DIR}/apiserver.key",
    ]


def build_apiserver_deployment(tenant: Tenant, config: ControllerConfig) -> KubeObject:
    container = {
        "name": "apiserver",
        "image": config.apiserver_image,
        "imagePullPolicy": "IfNotPresent",
        "command": apiserver_command(tenant, config),
        "ports": [{"name": "https", "containerPort": APISERVER_PORT, "protocol": "TCP"}],
        "volumeMounts": [{"name": SERVER_CERT_SECRET, "mountPath": PKI_DIR, "readOnly": True}],
        **_probes(APISERVER_PORT),
    }
    return _deployment(
        tenant, APISERVER, container, [_secret_volume(SERVER_CERT_SECRET, SERVER_CERT_SECRET)]
    )


def build_apiserver_service(tenant: Tenant) -> KubeObject:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": APISERVER,
            "namespace": tenant.namespace,
            "labels": labels(APISERVER, tenant),
            "ownerReferences": [tenant.owner_reference()],
        },
        "spec": {
            "selector": labels(APISERVER, tenant),
            "ports": [
                {
                    "name": "https",
                    "protocol": "TCP",
                    "port": APISERVER_PORT,
                    "targetPort": APISERVER_PORT,
                }
            ],
        },
    }


def controller_manager_command(config: ControllerConfig) -> list[str]:
    kubeconfig = f"{KUBECONFIG_DIR}/controller-manager.conf"
    return [
        "kube-controller-manager",
        "--allocate-node-cidrs=true",
        f"--authentication-kubeconfig={kubeconfig}",
        f"--authorization-kubeconfig={kubeconfig}",
        "--bind-address=0.0.0.0",
        f"--client-ca-file={PKI_DIR}/ca.crt",
        f"--cluster-cidr={config.cluster_cidr}",
        f"--cluster-signing-cert-file={PKI_DIR}/ca.crt",
        f"--cluster-signing-key-file={PKI_DIR}/ca.key",
        "--controllers=*,bootstrapsigner,tokencleaner",
        f"--kubeconfig={kubeconfig}",
        "--leader-elect=true",
        "--node-cidr-mask-size=24",
        f"--requestheader-client-ca-file={PKI_DIR}/front-proxy-ca.crt",
        f"--root-ca-file={PKI_DIR}/ca.crt",
        f"--service-account-private-key-file={PKI_DIR}/sa.key",
        f"--service-cluster-ip-range={config.service_cluster_ip_range}",
        "--use-service-account-credentials=true",
    ]


def build_controller_manager_deployment(tenant: Tenant, config: ControllerConfig) -> KubeObject:
    container = {
        "name": "controller-manager",
        "image": config.controller_manager_image,
        "imagePullPolicy": "IfNotPresent",
        "command": controller_manager_command(config),
        "volumeMounts": [
            {"name": SERVER_CERT_SECRET, "mountPath": PKI_DIR, "readOnly": True},
            {"name": "kubeconfig", "mountPath": KUBECONFIG_DIR, "readOnly": True},
        ],
        **_probes(CONTROLLER_MANAGER_PORT, live_path="/healthz", ready_path="/healthz"),
    }
    return _deployment(
        tenant,
        CONTROLLER_MANAGER,
        container,
        [
            _secret_volume(SERVER_CERT_SECRET, SERVER_CERT_SECRET),
            _secret_volume("kubeconfig", KUBECONFIG_CONTROLLER_MANAGER_SECRET),
        ],
    )
