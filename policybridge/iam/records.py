"""
Typed views over IAM Query API response nodes.

Each record is populated in one validating pass over the children of a
response element. Missing required fields raise ``StructuralParseError``;
optional ones come back as ``None``.
"""
from __future__ import annotations

from typing import Dict, Optional, Type, TypeVar
from xml.etree.ElementTree import Element

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from policybridge.errors import StructuralParseError
from policybridge.iam.documents import extract_first, local_name
from policybridge.model.types import CloudGroup, CloudUser, PolicyHandle


RecordT = TypeVar("RecordT", bound=BaseModel)


class _NodeRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ManagedPolicyRecord(_NodeRecord):
    arn: str = Field(validation_alias="arn", min_length=1)
    policy_name: str = Field(validation_alias="policyname", min_length=1)
    description: Optional[str] = Field(default=None, validation_alias="description")
    default_version_id: Optional[str] = Field(default=None, validation_alias="defaultversionid")
    policy_id: Optional[str] = Field(default=None, validation_alias="policyid")

    def to_handle(self, *, provider_namespace: Optional[str] = None) -> PolicyHandle:
        return PolicyHandle.managed(
            self.arn,
            self.policy_name,
            self.description,
            provider_namespace=provider_namespace,
        )


class UserRecord(_NodeRecord):
    user_id: str = Field(validation_alias="userid", min_length=1)
    user_name: str = Field(validation_alias="username", min_length=1)
    path: str = Field(default="/", validation_alias="path")
    arn: Optional[str] = Field(default=None, validation_alias="arn")

    def to_user(self) -> CloudUser:
        return CloudUser(user_id=self.user_id, user_name=self.user_name, path=self.path, arn=self.arn)


class GroupRecord(_NodeRecord):
    group_id: str = Field(validation_alias="groupid", min_length=1)
    group_name: str = Field(validation_alias="groupname", min_length=1)
    path: str = Field(default="/", validation_alias="path")
    arn: Optional[str] = Field(default=None, validation_alias="arn")

    def to_group(self) -> CloudGroup:
        return CloudGroup(group_id=self.group_id, group_name=self.group_name, path=self.path, arn=self.arn)


def node_fields(node: Element) -> Dict[str, str]:
    """First non-empty text per child, keyed by lower-cased local name."""
    fields: Dict[str, str] = {}
    for child in node:
        value = (child.text or "").strip()
        if value:
            fields.setdefault(local_name(child).lower(), value)
    return fields


def parse_record(model: Type[RecordT], node: Element) -> RecordT:
    try:
        return model.model_validate(node_fields(node))
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]) for err in exc.errors() if err.get("loc")})
        raise StructuralParseError(
            f"{local_name(node) or 'node'} is missing or has invalid fields: {', '.join(missing)}"
        ) from exc


def try_parse_record(model: Type[RecordT], node: Element) -> Optional[RecordT]:
    try:
        return parse_record(model, node)
    except StructuralParseError:
        return None


def next_marker(root: Element) -> Optional[str]:
    return extract_first(root, "Marker")
