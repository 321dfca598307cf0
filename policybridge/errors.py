from __future__ import annotations

from typing import Optional


class PolicyBridgeError(RuntimeError):
    """Base policybridge error."""


class StructuralParseError(PolicyBridgeError, ValueError):
    """A required field is absent or malformed where the wire schema guarantees it."""


class UnsupportedShapeError(StructuralParseError):
    """An action field is neither a string nor a list of strings."""


class PolicyNameTooLong(PolicyBridgeError, ValueError):
    """Raised when a fan-out policy name exceeds the vendor name limit."""

    def __init__(self, policy_name: str, max_length: int) -> None:
        super().__init__(
            f"generated policy name '{policy_name}' is {len(policy_name)} characters; "
            f"the limit is {max_length}"
        )
        self.policy_name = policy_name
        self.max_length = max_length


class EntityNotFound(PolicyBridgeError):
    """Raised when a user, group or policy addressed by id does not exist."""


class TransportError(PolicyBridgeError):
    """Base error for failures talking to the identity endpoint."""


class TransportTimeout(TransportError):
    """Raised when an identity API call exceeds the configured timeout."""


class TransportUnavailable(TransportError):
    """Raised for connection-level failures."""


class ServiceError(TransportError):
    """The endpoint answered with an error document."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        code: Optional[str] = None,
        action: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = int(status_code)
        self.code = code
        self.action = action

    @property
    def not_found(self) -> bool:
        return self.status_code == 404 or (self.code or "") == "NoSuchEntity"

    @property
    def summary(self) -> str:
        return f"{self.action or 'request'} failed: status={self.status_code} code={self.code or '-'} {self}"
