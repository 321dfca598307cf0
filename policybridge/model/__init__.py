from policybridge.model.types import (
    WILDCARD,
    AbstractRule,
    CloudGroup,
    CloudUser,
    Effect,
    PolicyClass,
    PolicyHandle,
)

__all__ = [
    "WILDCARD",
    "AbstractRule",
    "CloudGroup",
    "CloudUser",
    "Effect",
    "PolicyClass",
    "PolicyHandle",
]
