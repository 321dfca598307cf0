from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from policybridge.config import get_service_actions_path


IAM_PREFIX = "iam:"

_BUNDLED_CATALOG = Path(__file__).with_name("service_actions.yaml")


class Operation(str, Enum):
    ANY = "IAM:ANY"
    ADD_GROUP_ACCESS = "IAM:ADD_GROUP_ACCESS"
    ADD_USER_ACCESS = "IAM:ADD_USER_ACCESS"
    CREATE_GROUP = "IAM:CREATE_GROUP"
    CREATE_USER = "IAM:CREATE_USER"
    DISABLE_API = "IAM:DISABLE_API"
    DISABLE_CONSOLE = "IAM:DISABLE_CONSOLE"
    DROP_FROM_GROUP = "IAM:DROP_FROM_GROUP"
    ENABLE_API = "IAM:ENABLE_API"
    ENABLE_CONSOLE = "IAM:ENABLE_CONSOLE"
    GET_ACCESS_KEY = "IAM:GET_ACCESS_KEY"
    GET_GROUP = "IAM:GET_GROUP"
    GET_GROUP_POLICY = "IAM:GET_GROUP_POLICY"
    GET_USER = "IAM:GET_USER"
    GET_USER_POLICY = "IAM:GET_USER_POLICY"
    JOIN_GROUP = "IAM:JOIN_GROUP"
    LIST_ACCESS_KEYS = "IAM:LIST_ACCESS_KEYS"
    LIST_GROUP = "IAM:LIST_GROUP"
    LIST_USER = "IAM:LIST_USER"
    REMOVE_GROUP = "IAM:REMOVE_GROUP"
    REMOVE_GROUP_ACCESS = "IAM:REMOVE_GROUP_ACCESS"
    REMOVE_USER = "IAM:REMOVE_USER"
    REMOVE_USER_ACCESS = "IAM:REMOVE_USER_ACCESS"
    UPDATE_GROUP = "IAM:UPDATE_GROUP"
    UPDATE_USER = "IAM:UPDATE_USER"
    # SSL certificates live in IAM but are requested through load balancer support
    LIST_SSL_CERTIFICATES = "LB:LIST_SSL_CERTIFICATES"
    GET_SSL_CERTIFICATE = "LB:GET_SSL_CERTIFICATE"
    CREATE_SSL_CERTIFICATE = "LB:CREATE_SSL_CERTIFICATE"
    DELETE_SSL_CERTIFICATE = "LB:DELETE_SSL_CERTIFICATE"


def _iam(*methods: str) -> Tuple[str, ...]:
    return tuple(IAM_PREFIX + method for method in methods)


def build_action_table(entries: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    table = {str(key): tuple(str(v) for v in values) for key, values in entries.items()}
    return MappingProxyType(table)


DEFAULT_ACTION_TABLE: Mapping[str, Tuple[str, ...]] = build_action_table(
    {
        Operation.ANY.value: _iam("*"),
        Operation.ADD_GROUP_ACCESS.value: _iam("PutGroupPolicy"),
        Operation.ADD_USER_ACCESS.value: _iam("PutUserPolicy"),
        Operation.CREATE_GROUP.value: _iam("CreateGroup"),
        Operation.CREATE_USER.value: _iam("CreateUser"),
        Operation.DISABLE_API.value: _iam("DeleteAccessKey"),
        Operation.DISABLE_CONSOLE.value: _iam("DeleteLoginProfile"),
        Operation.DROP_FROM_GROUP.value: _iam("RemoveUserFromGroup"),
        Operation.ENABLE_API.value: _iam("CreateAccessKey"),
        Operation.ENABLE_CONSOLE.value: _iam("CreateLoginProfile"),
        Operation.GET_ACCESS_KEY.value: _iam("GetAccessKey"),
        Operation.GET_GROUP.value: _iam("GetGroup"),
        Operation.GET_GROUP_POLICY.value: _iam("GetGroupPolicy", "ListGroupPolicies"),
        Operation.GET_USER.value: _iam("GetUser"),
        Operation.GET_USER_POLICY.value: _iam("GetUserPolicy", "ListUserPolicies"),
        Operation.JOIN_GROUP.value: _iam("AddUserToGroup"),
        Operation.LIST_ACCESS_KEYS.value: _iam("ListAccessKeys"),
        Operation.LIST_GROUP.value: _iam("ListGroups*"),
        Operation.LIST_USER.value: _iam("ListUsers"),
        Operation.REMOVE_GROUP.value: _iam("DeleteGroup"),
        Operation.REMOVE_GROUP_ACCESS.value: _iam("PutGroupPolicy"),
        Operation.REMOVE_USER.value: _iam("DeleteUser"),
        Operation.REMOVE_USER_ACCESS.value: _iam("PutUserPolicy"),
        Operation.UPDATE_GROUP.value: _iam("UpdateGroup"),
        Operation.UPDATE_USER.value: _iam("UpdateUser"),
        Operation.LIST_SSL_CERTIFICATES.value: _iam("ListServerCertificates"),
        Operation.GET_SSL_CERTIFICATE.value: _iam("GetServerCertificate"),
        Operation.CREATE_SSL_CERTIFICATE.value: _iam("UploadServerCertificate"),
        Operation.DELETE_SSL_CERTIFICATE.value: _iam("DeleteServerCertificate"),
    }
)


class ActionMapper:
    """Maps abstract operations to IAM action ids through an immutable table."""

    def __init__(self, table: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._table = DEFAULT_ACTION_TABLE if table is None else build_action_table(table)

    def map(self, operation: Any) -> Tuple[str, ...]:
        key = operation.value if isinstance(operation, Operation) else str(operation or "")
        return self._table.get(key, ())

    def operations(self) -> Tuple[str, ...]:
        return tuple(self._table.keys())


def load_service_actions(path: Optional[str] = None) -> Dict[str, Tuple[str, ...]]:
    """
    Load the ``service -> [action, ...]`` catalog.
    Resolution order: explicit path, POLICYBRIDGE_SERVICE_ACTIONS_PATH, bundled file.
    """
    source = Path(path or get_service_actions_path() or _BUNDLED_CATALOG)
    if not source.exists():
        raise FileNotFoundError(f"Service action catalog not found: {os.fspath(source)}")
    with source.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Service action catalog must be a mapping: {os.fspath(source)}")
    catalog: Dict[str, Tuple[str, ...]] = {}
    for service, actions in data.items():
        if not isinstance(actions, list):
            raise ValueError(f"Actions for service '{service}' must be a list")
        catalog[str(service)] = tuple(str(a).strip() for a in actions if str(a or "").strip())
    return catalog


class ServiceActionCatalog:
    def __init__(self, catalog: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        raw = load_service_actions() if catalog is None else catalog
        self._catalog = build_action_table(raw)

    def list_services(self) -> Tuple[str, ...]:
        return tuple(self._catalog.keys())

    def list_service_actions(self, service: Optional[str] = None) -> Tuple[str, ...]:
        if service is None:
            return tuple(f"{name}:{action}" for name, actions in self._catalog.items() for action in actions)
        return tuple(f"{service}:{action}" for action in self._catalog.get(service, ()))
