"""Tenant object model and reconcile result types."""

import copy
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, NotRequired, TypedDict

TENANT_FINALIZER = "tenancy.kcp.io/tenants"

CONDITION_PROVISIONED = "Provisioned"
CONDITION_READY = "Ready"


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class TenantPhase(StrEnum):
    PENDING = "Pending"
    PROVISIONING = "Provisioning"
    PROVISIONED = "Provisioned"
    READY = "Ready"
    FAILED = "Failed"
    TERMINATING = "Terminating"


class Condition(TypedDict):
    """metav1.Condition as stored in tenant status."""

    type: str
    status: str
    reason: str
    message: str
    lastTransitionTime: str
    observedGeneration: NotRequired[int]


class OwnerReference(TypedDict):
    apiVersion: str
    kind: str
    name: str
    uid: str
    controller: NotRequired[bool]
    blockOwnerDeletion: NotRequired[bool]


class TenantStatus(TypedDict, total=False):
    phase: str
    conditions: list[Condition]


@dataclass
class Tenant:
    """In-memory view of a Tenant object.

    Only the fields the controller owns are modelled; everything else in the
    stored object is left untouched on write-back.
    """

    name: str
    uid: str = ""
    api_version: str = "tenancy.kcp.io/v1alpha1"
    kind: str = "Tenant"
    finalizers: list[str] = field(default_factory=list)
    owner_references: list[OwnerReference] = field(default_factory=list)
    deletion_timestamp: str | None = None
    phase: str = ""
    conditions: list[Condition] = field(default_factory=list)

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "Tenant":
        metadata = obj.get("metadata", {})
        status = obj.get("status") or {}
        return cls(
            name=metadata["name"],
            uid=metadata.get("uid", ""),
            api_version=obj.get("apiVersion", cls.api_version),
            kind=obj.get("kind", cls.kind),
            finalizers=list(metadata.get("finalizers") or []),
            owner_references=copy.deepcopy(metadata.get("ownerReferences") or []),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            phase=status.get("phase", ""),
            conditions=copy.deepcopy(status.get("conditions") or []),
        )

    @property
    def namespace(self) -> str:
        """Host namespace holding this tenant's control plane."""
        return self.name

    @property
    def is_deleting(self) -> bool:
        return self.deletion_timestamp is not None

    def has_finalizer(self, finalizer: str = TENANT_FINALIZER) -> bool:
        return finalizer in self.finalizers

    def add_finalizer(self, finalizer: str = TENANT_FINALIZER) -> None:
        if finalizer not in self.finalizers:
            self.finalizers.append(finalizer)

    def remove_finalizer(self, finalizer: str = TENANT_FINALIZER) -> None:
        self.finalizers = [f for f in self.finalizers if f != finalizer]

    def status(self) -> TenantStatus:
        return {"phase": self.phase, "conditions": copy.deepcopy(self.conditions)}

    def apply_to(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Copy finalizers, owner references and status onto a stored object.

        The stored spec and every other metadata field are kept, so
        concurrent edits by other actors survive the write.
        """
        metadata = obj.setdefault("metadata", {})
        metadata["finalizers"] = list(self.finalizers)
        metadata["ownerReferences"] = copy.deepcopy(self.owner_references)
        obj["status"] = self.status()
        return obj

    def owner_reference(self) -> OwnerReference:
        """Owner reference linking a child object back to this tenant."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }


@dataclass
class ReconcileResult:
    """Outcome handed back to the work queue."""

    requeue_after: float | None = None

    @property
    def requeue(self) -> bool:
        return self.requeue_after is not None
