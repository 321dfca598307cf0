from __future__ import annotations

from typing import Optional, Tuple

from policybridge.config import get_provider_namespace
from policybridge.errors import StructuralParseError
from policybridge.model.types import PolicyClass


# arn:partition:service:region:account:resource
_OWNER_SEGMENT = 4


def owner_segment(policy_id: str) -> str:
    parts = str(policy_id or "").split(":")
    if len(parts) <= _OWNER_SEGMENT:
        raise StructuralParseError(
            f"policy id '{policy_id}' has {len(parts)} ':'-separated segments; at least {_OWNER_SEGMENT + 1} required"
        )
    return parts[_OWNER_SEGMENT]


def classify_policy_id(
    policy_id: str,
    *,
    provider_namespace: Optional[str] = None,
) -> Tuple[PolicyClass, str]:
    """
    Classify a managed policy ARN by its owner segment.

    ``arn:aws:iam::aws:policy/AdministratorAccess`` is provider-managed;
    ``arn:aws:iam::123456789012:policy/MyPolicy`` is account-managed.
    Inline policies never reach this function.
    """
    owner = owner_segment(policy_id)
    namespace = str(provider_namespace or get_provider_namespace()).strip().lower()
    if owner.strip().lower() == namespace:
        return PolicyClass.PROVIDER_MANAGED, owner
    return PolicyClass.ACCOUNT_MANAGED, owner
