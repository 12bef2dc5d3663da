"""Tests for the tenant model."""

from tenant_operations.lib.models import TENANT_FINALIZER, ReconcileResult, Tenant


class TestTenant:
    """Tests for Tenant."""

    def test_from_object(self, make_tenant_object) -> None:
        tenant = Tenant.from_object(
            make_tenant_object(
                finalizers=[TENANT_FINALIZER],
                deletion_timestamp="2024-01-01T00:00:00Z",
                phase="Provisioning",
            )
        )

        assert tenant.name == "t1"
        assert tenant.namespace == "t1"
        assert tenant.uid == "uid-t1"
        assert tenant.has_finalizer()
        assert tenant.is_deleting
        assert tenant.phase == "Provisioning"

    def test_finalizer_add_is_idempotent(self) -> None:
        tenant = Tenant(name="t1")
        tenant.add_finalizer()
        tenant.add_finalizer()

        assert tenant.finalizers == [TENANT_FINALIZER]
        tenant.remove_finalizer()
        assert tenant.finalizers == []

    def test_apply_to_copies_owned_fields_only(self, make_tenant_object) -> None:
        stored = make_tenant_object()
        stored["spec"] = {"owner": "alice"}
        tenant = Tenant.from_object(stored)
        tenant.add_finalizer()
        tenant.phase = "Pending"

        result = tenant.apply_to(stored)

        assert result["metadata"]["finalizers"] == [TENANT_FINALIZER]
        assert result["status"] == {"phase": "Pending", "conditions": []}
        assert result["spec"] == {"owner": "alice"}

    def test_owner_reference(self) -> None:
        reference = Tenant(name="t1", uid="u").owner_reference()

        assert reference == {
            "apiVersion": "tenancy.kcp.io/v1alpha1",
            "kind": "Tenant",
            "name": "t1",
            "uid": "u",
            "controller": True,
            "blockOwnerDeletion": True,
        }


class TestReconcileResult:
    """Tests for ReconcileResult."""

    def test_requeue(self) -> None:
        assert not ReconcileResult().requeue
        assert ReconcileResult(requeue_after=10).requeue
        assert ReconcileResult(requeue_after=0).requeue
