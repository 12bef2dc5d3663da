"""Kubeconfig assembly and YAML serialization."""

import base64
from dataclasses import dataclass, field
from typing import Any

import yaml
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import RSA_KEY_SIZE, serialize_certificate, serialize_private_key
from .config import CertConfig
from .pki import new_cert_and_key
from .tokens import DEFAULT_ISSUER, issue_service_account_token, service_account_subject

APISERVER_PORT = 6443


@dataclass
class Cluster:
    server: str
    certificate_authority_data: bytes


@dataclass
class AuthInfo:
    client_certificate_data: bytes | None = None
    client_key_data: bytes | None = None
    token: str | None = None


@dataclass
class Context:
    cluster: str
    user: str


@dataclass
class Kubeconfig:
    """Client kubeconfig with named clusters, contexts and users."""

    clusters: dict[str, Cluster] = field(default_factory=dict)
    contexts: dict[str, Context] = field(default_factory=dict)
    users: dict[str, AuthInfo] = field(default_factory=dict)
    current_context: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Render the clientcmd v1 structure."""
        users = []
        for name, auth in self.users.items():
            user: dict[str, str] = {}
            if auth.client_certificate_data is not None:
                user["client-certificate-data"] = _b64(auth.client_certificate_data)
            if auth.client_key_data is not None:
                user["client-key-data"] = _b64(auth.client_key_data)
            if auth.token is not None:
                user["token"] = auth.token
            users.append({"name": name, "user": user})

        return {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [
                {
                    "name": name,
                    "cluster": {
                        "server": cluster.server,
                        "certificate-authority-data": _b64(cluster.certificate_authority_data),
                    },
                }
                for name, cluster in self.clusters.items()
            ],
            "contexts": [
                {"name": name, "context": {"cluster": ctx.cluster, "user": ctx.user}}
                for name, ctx in self.contexts.items()
            ],
            "users": users,
            "current-context": self.current_context,
            "preferences": {},
        }

    def serialize(self) -> bytes:
        return yaml.safe_dump(self.to_dict(), sort_keys=False).encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Kubeconfig":
        kubeconfig = cls(current_context=data.get("current-context", ""))
        for entry in data.get("clusters") or []:
            cluster = entry["cluster"]
            kubeconfig.clusters[entry["name"]] = Cluster(
                server=cluster["server"],
                certificate_authority_data=base64.b64decode(
                    cluster.get("certificate-authority-data", "")
                ),
            )
        for entry in data.get("contexts") or []:
            ctx = entry["context"]
            kubeconfig.contexts[entry["name"]] = Context(cluster=ctx["cluster"], user=ctx["user"])
        for entry in data.get("users") or []:
            user = entry.get("user") or {}
            kubeconfig.users[entry["name"]] = AuthInfo(
                client_certificate_data=_b64decode_optional(user.get("client-certificate-data")),
                client_key_data=_b64decode_optional(user.get("client-key-data")),
                token=user.get("token"),
            )
        return kubeconfig


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _b64decode_optional(data: str | None) -> bytes | None:
    return base64.b64decode(data) if data is not None else None


def load_kubeconfig(data: bytes) -> Kubeconfig:
    """Parse kubeconfig YAML bytes."""
    parsed = yaml.safe_load(data)
    if not isinstance(parsed, dict):
        raise ValueError("kubeconfig must be a mapping")
    return Kubeconfig.from_dict(parsed)


def apiserver_endpoint(tenant_name: str) -> str:
    """In-cluster URL of a tenant's kube-apiserver service."""
    return f"https://kube-apiserver.{tenant_name}.svc:{APISERVER_PORT}"


def user_name_for(cluster_name: str, common_name: str) -> str:
    """Deterministic kubeconfig user name for a tenant and client identity."""
    return f"{cluster_name}-{common_name.removeprefix('system:')}"


def _single(
    cluster_name: str, endpoint: str, ca_cert: x509.Certificate, user_name: str, auth: AuthInfo
) -> Kubeconfig:
    context_name = f"{user_name}@{cluster_name}"
    return Kubeconfig(
        clusters={
            cluster_name: Cluster(
                server=endpoint, certificate_authority_data=serialize_certificate(ca_cert)
            )
        },
        contexts={context_name: Context(cluster=cluster_name, user=user_name)},
        users={user_name: auth},
        current_context=context_name,
    )


def new_with_client_cert(
    cluster_name: str,
    endpoint: str,
    ca_cert: x509.Certificate,
    ca_key: RSAPrivateKey,
    client_config: CertConfig,
    key_size: int = RSA_KEY_SIZE,
) -> Kubeconfig:
    """Issue a client certificate from the CA and wrap it in a kubeconfig.

    Names depend only on the cluster name and client CommonName; only the
    key material differs between calls with the same inputs.
    """
    cert, key = new_cert_and_key(ca_cert, ca_key, client_config, key_size=key_size)
    auth = AuthInfo(
        client_certificate_data=serialize_certificate(cert),
        client_key_data=serialize_private_key(key),
    )
    return _single(
        cluster_name, endpoint, ca_cert, user_name_for(cluster_name, client_config.common_name), auth
    )


def new_with_token(
    cluster_name: str,
    endpoint: str,
    ca_cert: x509.Certificate,
    subject: str,
    token: str,
) -> Kubeconfig:
    """Wrap a bearer token in a kubeconfig for the given subject."""
    return _single(
        cluster_name, endpoint, ca_cert, user_name_for(cluster_name, subject), AuthInfo(token=token)
    )


def new_with_service_account_token(
    cluster_name: str,
    endpoint: str,
    ca_cert: x509.Certificate,
    sa_key: RSAPrivateKey,
    namespace: str,
    name: str,
    audiences: list[str],
    issuer: str = DEFAULT_ISSUER,
) -> Kubeconfig:
    """Mint a service-account token with sa.key and wrap it in a kubeconfig."""
    token = issue_service_account_token(sa_key, namespace, name, audiences, issuer=issuer)
    return new_with_token(
        cluster_name, endpoint, ca_cert, service_account_subject(namespace, name), token
    )
