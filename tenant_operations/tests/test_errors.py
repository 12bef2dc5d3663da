"""Tests for error types."""

from tenant_operations.lib.errors import (
    AggregateError,
    ContractViolationError,
    NotFoundError,
    ProvisioningError,
)


class TestProvisioningError:
    """Tests for ProvisioningError.reason."""

    def test_contract_violation_reason_passes_through(self) -> None:
        error = ProvisioningError("Secret", ContractViolationError("MissingCommonName", "no CN"))
        assert error.reason == "MissingCommonName"

    def test_other_causes_name_the_phase(self) -> None:
        error = ProvisioningError("Kubeconfig", NotFoundError("Secret", "t1", "server-cert"))

        assert error.reason == "KubeconfigFailed"
        assert "server-cert" in str(error)


class TestAggregateError:
    """Tests for AggregateError.of."""

    def test_nothing(self) -> None:
        assert AggregateError.of(None, None) is None

    def test_single_error_unchanged(self) -> None:
        error = RuntimeError("boom")
        assert AggregateError.of(None, error) is error

    def test_combines(self) -> None:
        first, second = RuntimeError("a"), RuntimeError("b")
        combined = AggregateError.of(first, second)

        assert isinstance(combined, AggregateError)
        assert combined.errors == [first, second]
        assert str(combined) == "a; b"


class TestNotFoundError:
    """Tests for NotFoundError messages."""

    def test_namespaced(self) -> None:
        assert str(NotFoundError("Secret", "t1", "s")) == "Secret t1/s not found"

    def test_cluster_scoped(self) -> None:
        assert str(NotFoundError("Tenant", None, "t1")) == "Tenant t1 not found"
