"""Credential bundles persisted as Secrets in a tenant's namespace."""

import base64
import ipaddress

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from .cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    serialize_certificate,
    serialize_private_key,
    serialize_public_key,
)
from .config import AltNames, CertConfig, ControllerConfig, parse_secret_ref
from .errors import ContractViolationError
from .kubeconfig import apiserver_endpoint, new_with_client_cert
from .models import Tenant
from .object_store import KubeObject, ObjectStore
from .pki import new_ca, new_cert_and_key, new_pub_and_key

SERVER_CERT_SECRET = "server-cert"
KUBECONFIG_ADMIN_SECRET = "kubeconfig-admin"
KUBECONFIG_CONTROLLER_MANAGER_SECRET = "kubeconfig-controller-manager"

ADMIN_CONF = "admin.conf"
CONTROLLER_MANAGER_CONF = "controller-manager.conf"

SERVER_CERT_SECRET_TYPE = "tenancy.kcp.io/kube-secret"
KUBECONFIG_SECRET_TYPE = "tenancy.kcp.io/kubeconfig"

ADMIN_CLIENT = CertConfig(
    common_name="kubernetes-admin",
    organization=["system:masters"],
    usages=[ExtendedKeyUsageOID.CLIENT_AUTH],
)
CONTROLLER_MANAGER_CLIENT = CertConfig(
    common_name="system:kube-controller-manager",
    usages=[ExtendedKeyUsageOID.CLIENT_AUTH],
)


def encode_secret_data(data: dict[str, bytes]) -> dict[str, str]:
    """Base64 encode secret values for the wire."""
    return {key: base64.b64encode(value).decode("ascii") for key, value in data.items()}


def decode_secret_data(data: dict[str, str] | None) -> dict[str, bytes]:
    """Decode wire secret values to raw bytes."""
    return {key: base64.b64decode(value) for key, value in (data or {}).items()}


def build_secret(
    tenant: Tenant, name: str, data: dict[str, bytes], secret_type: str
) -> KubeObject:
    """Secret in the tenant namespace, owned by the tenant for cascading deletion."""
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {
            "name": name,
            "namespace": tenant.namespace,
            "ownerReferences": [tenant.owner_reference()],
        },
        "type": secret_type,
        "data": encode_secret_data(data),
    }


def apiserver_service_ip(service_cluster_ip_range: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """First host address of the service range, where `kubernetes.default` lands."""
    network = ipaddress.ip_network(service_cluster_ip_range, strict=False)
    return network.network_address + 1


def apiserver_cert_config(tenant_name: str, service_cluster_ip_range: str) -> CertConfig:
    return CertConfig(
        common_name="kube-apiserver",
        alt_names=AltNames(
            dns_names=[
                "kube-apiserver",
                f"kube-apiserver.{tenant_name}",
                f"kube-apiserver.{tenant_name}.svc",
                "kubernetes",
                "kubernetes.default",
                "kubernetes.default.svc",
                "localhost",
            ],
            ips=[
                ipaddress.ip_address("127.0.0.1"),
                apiserver_service_ip(service_cluster_ip_range),
            ],
        ),
        usages=[ExtendedKeyUsageOID.SERVER_AUTH],
    )


def build_server_cert_data(
    tenant_name: str, config: ControllerConfig, seed: dict[str, bytes] | None = None
) -> dict[str, bytes]:
    """Generate the full server-cert bundle.

    Two independent CAs are created: one for the apiserver trust domain and
    one for the front proxy. Seed entries are copied in first so generated
    keys take precedence on a clash.
    """
    key_size = config.key_size

    server_ca, server_ca_key = new_ca(CertConfig(common_name="kubernetes"), key_size=key_size)
    apiserver_cert, apiserver_key = new_cert_and_key(
        server_ca,
        server_ca_key,
        apiserver_cert_config(tenant_name, config.service_cluster_ip_range),
        key_size=key_size,
    )
    kubelet_cert, kubelet_key = new_cert_and_key(
        server_ca,
        server_ca_key,
        CertConfig(
            common_name="kube-apiserver-kubelet-client",
            organization=["system:masters"],
            usages=[ExtendedKeyUsageOID.CLIENT_AUTH],
        ),
        key_size=key_size,
    )

    front_ca, front_ca_key = new_ca(
        CertConfig(common_name="front-proxy-ca", alt_names=AltNames(dns_names=["front-proxy-ca"])),
        key_size=key_size,
    )
    front_cert, front_key = new_cert_and_key(
        front_ca,
        front_ca_key,
        CertConfig(common_name="front-proxy-client", usages=[ExtendedKeyUsageOID.CLIENT_AUTH]),
        key_size=key_size,
    )

    sa_pub, sa_key = new_pub_and_key(key_size=key_size)

    data: dict[str, bytes] = dict(seed or {})
    data.update(
        {
            "ca.crt": serialize_certificate(server_ca),
            "ca.key": serialize_private_key(server_ca_key),
            "apiserver.crt": serialize_certificate(apiserver_cert),
            "apiserver.key": serialize_private_key(apiserver_key),
            "apiserver-kubelet-client.crt": serialize_certificate(kubelet_cert),
            "apiserver-kubelet-client.key": serialize_private_key(kubelet_key),
            "front-proxy-ca.crt": serialize_certificate(front_ca),
            "front-proxy-ca.key": serialize_private_key(front_ca_key),
            "front-proxy-client.crt": serialize_certificate(front_cert),
            "front-proxy-client.key": serialize_private_key(front_key),
            "sa.pub": serialize_public_key(sa_pub),
            "sa.key": serialize_private_key(sa_key),
        }
    )
    return data


def read_ca(store: ObjectStore, namespace: str) -> tuple[x509.Certificate, RSAPrivateKey]:
    """Load the server CA from an existing server-cert bundle.

    Raises:
        NotFoundError: If the bundle does not exist yet
        ContractViolationError: If ca.crt/ca.key are missing or malformed
    """
    secret = store.get("Secret", namespace, SERVER_CERT_SECRET)
    data = decode_secret_data(secret.get("data"))

    for key in ("ca.crt", "ca.key"):
        if not data.get(key):
            raise ContractViolationError(
                "MissingCAMaterial", f"{key} is empty in {SERVER_CERT_SECRET} secret"
            )

    return deserialize_certificate(data["ca.crt"]), deserialize_private_key(data["ca.key"])


def build_kubeconfig_data(
    tenant_name: str,
    ca_cert: x509.Certificate,
    ca_key: RSAPrivateKey,
    client_config: CertConfig,
    key_size: int,
) -> bytes:
    """Issue a client certificate and render a kubeconfig for the tenant apiserver."""
    kubeconfig = new_with_client_cert(
        cluster_name=tenant_name,
        endpoint=apiserver_endpoint(tenant_name),
        ca_cert=ca_cert,
        ca_key=ca_key,
        client_config=client_config,
        key_size=key_size,
    )
    return kubeconfig.serialize()


def load_seed_data(store: ObjectStore, ref: str) -> dict[str, bytes]:
    """Read the externally supplied secret merged into every server-cert bundle.

    Args:
        store: Host object store
        ref: `[namespace/]name` reference to the seed secret

    Returns:
        Decoded secret data, empty when ref is empty
    """
    if not ref:
        return {}
    namespace, name = parse_secret_ref(ref)
    secret = store.get("Secret", namespace, name)
    return decode_secret_data(secret.get("data"))
