"""Error types raised while reconciling a tenant."""


class NotFoundError(Exception):
    """Object does not exist in the host store."""

    def __init__(self, kind: str, namespace: str | None, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location} not found")


class AlreadyExistsError(Exception):
    """Object with the same name was created by someone else first."""

    def __init__(self, kind: str, namespace: str | None, name: str) -> None:
        self.kind = kind
        self.namespace = namespace
        self.name = name
        location = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {location} already exists")


class ContractViolationError(ValueError):
    """Inputs that can never produce a usable artifact.

    `reason` is written verbatim into the failing condition.
    """

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(message)


class ProvisioningError(Exception):
    """A provisioning phase failed."""

    def __init__(self, phase: str, cause: BaseException) -> None:
        self.phase = phase
        self.cause = cause
        super().__init__(f"phase {phase} failed: {cause}")

    @property
    def reason(self) -> str:
        if isinstance(self.cause, ContractViolationError):
            return self.cause.reason
        return f"{self.phase}Failed"


class ReconcileCancelledError(Exception):
    """The caller cancelled the reconcile pass."""


class AggregateError(Exception):
    """Several independent failures from one reconcile pass."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = errors
        super().__init__("; ".join(str(e) for e in errors))

    @classmethod
    def of(cls, *errors: BaseException | None) -> BaseException | None:
        """Combine errors, dropping None. A single error is returned as is."""
        present = [e for e in errors if e is not None]
        if not present:
            return None
        if len(present) == 1:
            return present[0]
        return cls(present)
