from policybridge.errors import (
    EntityNotFound,
    PolicyBridgeError,
    PolicyNameTooLong,
    ServiceError,
    StructuralParseError,
    TransportError,
    UnsupportedShapeError,
)
from policybridge.model import AbstractRule, Effect, PolicyClass, PolicyHandle

__all__ = [
    "AbstractRule",
    "Effect",
    "EntityNotFound",
    "PolicyBridgeError",
    "PolicyClass",
    "PolicyHandle",
    "PolicyNameTooLong",
    "ServiceError",
    "StructuralParseError",
    "TransportError",
    "UnsupportedShapeError",
]
