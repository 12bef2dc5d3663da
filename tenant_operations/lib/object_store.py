"""Host cluster object store: generic get/create/patch/delete by kind."""

import copy
import json
from collections.abc import Callable
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException
from kubernetes.dynamic import DynamicClient

from .errors import AlreadyExistsError, NotFoundError
from .logging_config import LOGGER
from .registry import ResourceRegistry

KubeObject = dict[str, Any]
Mutator = Callable[[KubeObject], KubeObject]


class ObjectStore(Protocol):
    """CRUD access to host cluster objects keyed by kind, namespace and name."""

    def get(self, kind: str, namespace: str | None, name: str) -> KubeObject:
        """Raises NotFoundError if the object does not exist."""
        ...

    def create(self, obj: KubeObject) -> KubeObject:
        """Raises AlreadyExistsError if an object with that name exists."""
        ...

    def patch(self, kind: str, namespace: str | None, name: str, mutator: Mutator) -> KubeObject:
        """Read, apply mutator, write back conditionally on resourceVersion."""
        ...

    def delete(self, kind: str, namespace: str | None, name: str) -> None: ...


def _status_reason(error: ApiException) -> str:
    """Return the `reason` field of a Kubernetes Status error body."""
    body = error.body
    if not body:
        return ""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    try:
        return str(json.loads(body).get("reason", ""))
    except (ValueError, AttributeError):
        return ""


class KubernetesObjectStore:
    """ObjectStore backed by the kubernetes dynamic client."""

    def __init__(self, dynamic_client: DynamicClient, registry: ResourceRegistry) -> None:
        """Initialize store.

        Args:
            dynamic_client: Configured kubernetes DynamicClient
            registry: Resource registry resolving kinds to API coordinates
        """
        self.client = dynamic_client
        self.registry = registry

    @classmethod
    def from_kubeconfig(cls, registry: ResourceRegistry) -> "KubernetesObjectStore":
        """Build a store from in-cluster config, falling back to ~/.kube/config."""
        try:
            config.load_incluster_config()
        except ConfigException:
            config.load_kube_config()
        return cls(DynamicClient(client.ApiClient()), registry)

    def _resource(self, kind: str) -> Any:
        resource_type = self.registry.lookup(kind)
        return self.client.resources.get(
            api_version=resource_type.api_version, kind=resource_type.kind
        )

    def _namespace(self, kind: str, namespace: str | None) -> str | None:
        return namespace if self.registry.lookup(kind).namespaced else None

    def get(self, kind: str, namespace: str | None, name: str) -> KubeObject:
        resource = self._resource(kind)
        try:
            return resource.get(name=name, namespace=self._namespace(kind, namespace)).to_dict()
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, namespace, name) from e
            raise

    def create(self, obj: KubeObject) -> KubeObject:
        kind = obj["kind"]
        namespace = obj["metadata"].get("namespace")
        name = obj["metadata"]["name"]
        resource = self._resource(kind)
        try:
            return resource.create(body=obj, namespace=self._namespace(kind, namespace)).to_dict()
        except ApiException as e:
            if e.status == 409 and _status_reason(e) == "AlreadyExists":
                raise AlreadyExistsError(kind, namespace, name) from e
            raise

    def patch(self, kind: str, namespace: str | None, name: str, mutator: Mutator) -> KubeObject:
        current = self.get(kind, namespace, name)
        desired = mutator(copy.deepcopy(current))
        resource = self._resource(kind)
        scoped_namespace = self._namespace(kind, namespace)

        try:
            result = resource.replace(body=desired, namespace=scoped_namespace).to_dict()
            if self.registry.lookup(kind).status_subresource and "status" in desired:
                # Main resource writes ignore status when a status subresource exists.
                result["status"] = desired["status"]
                result = self.client.replace(
                    resource.subresources["status"], body=result, namespace=scoped_namespace
                ).to_dict()
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, namespace, name) from e
            raise
        return result

    def delete(self, kind: str, namespace: str | None, name: str) -> None:
        resource = self._resource(kind)
        try:
            resource.delete(name=name, namespace=self._namespace(kind, namespace))
        except ApiException as e:
            if e.status == 404:
                raise NotFoundError(kind, namespace, name) from e
            raise


def create_if_not_exists(
    store: ObjectStore,
    kind: str,
    namespace: str | None,
    name: str,
    build: Callable[[], KubeObject],
) -> bool:
    """Create an object unless one with that name already exists.

    `build` is only invoked when the object is missing. Losing a create race
    counts as success: existence, not authorship, is what matters.

    Returns:
        True if this call created the object, False otherwise
    """
    try:
        store.get(kind, namespace, name)
        LOGGER.debug("%s %s/%s already exists, skipping", kind, namespace, name)
        return False
    except NotFoundError:
        pass

    obj = build()
    try:
        store.create(obj)
    except AlreadyExistsError:
        LOGGER.info("%s %s/%s created concurrently, treating as success", kind, namespace, name)
        return False

    LOGGER.info("Created %s %s/%s", kind, namespace, name)
    return True
