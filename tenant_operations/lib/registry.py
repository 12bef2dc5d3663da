"""Resource type registry for the host object store.

A registry is built once at process start and handed to every component
that needs to address objects by kind.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ResourceType:
    api_version: str
    kind: str
    namespaced: bool = True
    status_subresource: bool = False


@dataclass
class ResourceRegistry:
    """Maps object kind to its API coordinates."""

    _types: dict[str, ResourceType] = field(default_factory=dict)

    def register(self, resource_type: ResourceType) -> None:
        if resource_type.kind in self._types:
            raise ValueError(f"kind {resource_type.kind} already registered")
        self._types[resource_type.kind] = resource_type

    def lookup(self, kind: str) -> ResourceType:
        """Return the registered type for kind.

        Raises:
            KeyError: If kind was never registered
        """
        try:
            return self._types[kind]
        except KeyError:
            raise KeyError(
                f"kind {kind} is not registered, known kinds: {', '.join(self.kinds())}"
            ) from None

    def kinds(self) -> list[str]:
        return list(self._types)


def default_registry() -> ResourceRegistry:
    """Registry with every kind the tenant controller reads or writes."""
    registry = ResourceRegistry()
    registry.register(
        ResourceType(
            api_version="tenancy.kcp.io/v1alpha1",
            kind="Tenant",
            namespaced=False,
            status_subresource=True,
        )
    )
    registry.register(ResourceType(api_version="v1", kind="Namespace", namespaced=False))
    registry.register(ResourceType(api_version="v1", kind="Secret"))
    registry.register(ResourceType(api_version="v1", kind="Service"))
    registry.register(
        ResourceType(api_version="apps/v1", kind="Deployment", status_subresource=True)
    )
    return registry
