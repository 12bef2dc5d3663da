"""Test fixtures for tenant_operations tests."""

import copy
from collections.abc import Callable
from typing import Any

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from tenant_operations.lib.bundles import SERVER_CERT_SECRET, encode_secret_data
from tenant_operations.lib.cert_utils import serialize_certificate, serialize_private_key
from tenant_operations.lib.config import CertConfig, ControllerConfig
from tenant_operations.lib.errors import AlreadyExistsError, NotFoundError
from tenant_operations.lib.models import TENANT_FINALIZER, Tenant
from tenant_operations.lib.object_store import KubeObject, Mutator
from tenant_operations.lib.pki import new_ca
from tenant_operations.lib.registry import ResourceRegistry, default_registry


class InMemoryObjectStore:
    """ObjectStore fake keyed by (kind, namespace, name).

    Mirrors the host store closely enough for reconcile scenarios: cluster
    scoped kinds ignore the namespace, every write bumps resourceVersion, and
    an object with a deletionTimestamp and no finalizers disappears on write.
    """

    def __init__(self, registry: ResourceRegistry) -> None:
        self.registry = registry
        self.objects: dict[tuple[str, str | None, str], KubeObject] = {}
        self.created: list[tuple[str, str | None, str]] = []
        self.failures: dict[tuple[str, str], Exception] = {}
        self._version = 0

    def _key(self, kind: str, namespace: str | None, name: str) -> tuple[str, str | None, str]:
        if not self.registry.lookup(kind).namespaced:
            namespace = None
        return kind, namespace, name

    def _fail(self, operation: str, kind: str) -> None:
        error = self.failures.get((operation, kind))
        if error is not None:
            raise error

    def _bump(self, obj: KubeObject) -> None:
        self._version += 1
        obj.setdefault("metadata", {})["resourceVersion"] = str(self._version)

    def put(self, obj: KubeObject) -> None:
        """Seed an object without recording a create call."""
        metadata = obj["metadata"]
        key = self._key(obj["kind"], metadata.get("namespace"), metadata["name"])
        stored = copy.deepcopy(obj)
        self._bump(stored)
        self.objects[key] = stored

    def get(self, kind: str, namespace: str | None, name: str) -> KubeObject:
        self._fail("get", kind)
        try:
            return copy.deepcopy(self.objects[self._key(kind, namespace, name)])
        except KeyError:
            raise NotFoundError(kind, namespace, name) from None

    def create(self, obj: KubeObject) -> KubeObject:
        kind = obj["kind"]
        self._fail("create", kind)
        metadata = obj["metadata"]
        key = self._key(kind, metadata.get("namespace"), metadata["name"])
        if key in self.objects:
            raise AlreadyExistsError(kind, metadata.get("namespace"), metadata["name"])
        stored = copy.deepcopy(obj)
        self._bump(stored)
        self.objects[key] = stored
        self.created.append(key)
        return copy.deepcopy(stored)

    def patch(self, kind: str, namespace: str | None, name: str, mutator: Mutator) -> KubeObject:
        current = self.get(kind, namespace, name)
        self._fail("patch", kind)
        desired = mutator(current)
        key = self._key(kind, namespace, name)
        metadata = desired.get("metadata", {})
        if metadata.get("deletionTimestamp") and not metadata.get("finalizers"):
            del self.objects[key]
            raise NotFoundError(kind, namespace, name)
        self._bump(desired)
        self.objects[key] = desired
        return copy.deepcopy(desired)

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        key = self._key(kind, namespace, name)
        if key not in self.objects:
            raise NotFoundError(kind, namespace, name)
        obj = self.objects[key]
        if obj["metadata"].get("finalizers"):
            obj["metadata"]["deletionTimestamp"] = "2024-01-01T00:00:00Z"
            self._bump(obj)
        else:
            del self.objects[key]

    def has(self, kind: str, namespace: str | None, name: str) -> bool:
        return self._key(kind, namespace, name) in self.objects

    def set_deployment_ready(self, namespace: str, name: str, ready: bool = True) -> None:
        """Write replica counts onto a stored Deployment."""
        deployment = self.objects[self._key("Deployment", namespace, name)]
        deployment["status"] = {"replicas": 1, "readyReplicas": 1 if ready else 0}


@pytest.fixture
def registry() -> ResourceRegistry:
    """Return the default resource registry."""
    return default_registry()


@pytest.fixture
def store(registry: ResourceRegistry) -> InMemoryObjectStore:
    """Return an empty in-memory object store."""
    return InMemoryObjectStore(registry)


@pytest.fixture
def controller_config() -> ControllerConfig:
    """Return controller configuration suitable for tests."""
    return ControllerConfig(
        etcd_servers=["https://etcd-0.etcd:2379", "https://etcd-1.etcd:2379"],
        etcd_secret_ref="kube-system/etcd-client",
        key_size=2048,
    )


@pytest.fixture
def seed_data() -> dict[str, bytes]:
    """Return etcd client material merged into server-cert bundles."""
    return {
        "etcd-ca.crt": b"etcd-ca",
        "apiserver-etcd-client.crt": b"etcd-client-cert",
        "apiserver-etcd-client.key": b"etcd-client-key",
    }


@pytest.fixture
def ca_pair() -> tuple[x509.Certificate, RSAPrivateKey]:
    """Generate a test CA certificate and key."""
    return new_ca(CertConfig(common_name="kubernetes"), key_size=2048)


@pytest.fixture
def ca_cert(ca_pair: tuple[x509.Certificate, RSAPrivateKey]) -> x509.Certificate:
    return ca_pair[0]


@pytest.fixture
def ca_key(ca_pair: tuple[x509.Certificate, RSAPrivateKey]) -> RSAPrivateKey:
    return ca_pair[1]


@pytest.fixture
def make_tenant_object() -> Callable[..., KubeObject]:
    """Return a factory for stored Tenant objects."""

    def factory(
        name: str = "t1",
        finalizers: list[str] | None = None,
        deletion_timestamp: str | None = None,
        conditions: list[dict[str, Any]] | None = None,
        phase: str = "",
    ) -> KubeObject:
        metadata: dict[str, Any] = {
            "name": name,
            "uid": f"uid-{name}",
            "finalizers": list(finalizers or []),
        }
        if deletion_timestamp:
            metadata["deletionTimestamp"] = deletion_timestamp
        obj: KubeObject = {
            "apiVersion": "tenancy.kcp.io/v1alpha1",
            "kind": "Tenant",
            "metadata": metadata,
            "spec": {},
        }
        if conditions is not None or phase:
            obj["status"] = {"phase": phase, "conditions": list(conditions or [])}
        return obj

    return factory


@pytest.fixture
def tenant() -> Tenant:
    """Return a tenant carrying the controller finalizer."""
    return Tenant(name="t1", uid="uid-t1", finalizers=[TENANT_FINALIZER])


@pytest.fixture
def server_cert_secret(
    tenant: Tenant, ca_cert: x509.Certificate, ca_key: RSAPrivateKey
) -> KubeObject:
    """Return a server-cert Secret holding only the CA pair."""
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": SERVER_CERT_SECRET, "namespace": tenant.namespace},
        "data": encode_secret_data(
            {
                "ca.crt": serialize_certificate(ca_cert),
                "ca.key": serialize_private_key(ca_key),
            }
        ),
    }
