from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, TypeVar
from xml.etree.ElementTree import Element

from policybridge.config import get_max_policy_name_length, get_provider_namespace
from policybridge.errors import EntityNotFound, ServiceError, StructuralParseError
from policybridge.iam.actions import ActionMapper
from policybridge.iam.codec import encode_rule, rules_from_document, serialize_document
from policybridge.iam.documents import extract_embedded_document, extract_field, find_all, iter_members
from policybridge.iam.pagination import Page, PageCursor, paginate
from policybridge.iam.records import (
    GroupRecord,
    ManagedPolicyRecord,
    UserRecord,
    next_marker,
    parse_record,
    try_parse_record,
)
from policybridge.iam.transport import Transport
from policybridge.model.types import (
    WILDCARD,
    AbstractRule,
    CloudGroup,
    CloudUser,
    Effect,
    PolicyClass,
    PolicyHandle,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

MANAGED_SCOPES = ("All", "AWS", "Local")


def _member_names(root: Element) -> List[str]:
    names: List[str] = []
    for member in iter_members(root):
        name = (member.text or "").strip()
        if name:
            names.append(name)
    return names


class IdentityClient:
    """
    Policy-facing view of an IAM account.

    Reads and writes go through ``transport``; listing calls follow the
    ``Marker`` cursor lazily. Inline policies are addressed by the owning
    user or group id plus the policy name.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        action_mapper: Optional[ActionMapper] = None,
        provider_namespace: Optional[str] = None,
        max_policy_name_length: Optional[int] = None,
    ) -> None:
        self.transport = transport
        self.action_mapper = action_mapper or ActionMapper()
        self.provider_namespace = str(provider_namespace or get_provider_namespace()).strip()
        self.max_policy_name_length = max_policy_name_length or get_max_policy_name_length()

    def _list(
        self,
        action: str,
        parameters: Dict[str, str],
        parse_page: Callable[[Element], List[T]],
    ) -> Iterator[T]:
        def fetch_page(cursor: PageCursor) -> Page[T]:
            request = dict(parameters)
            if cursor:
                request["Marker"] = cursor
            root = self.transport.invoke(action, request)
            return Page(items=parse_page(root), next_cursor=next_marker(root))

        return paginate(fetch_page)

    # users and groups

    def list_users(self, path_prefix: Optional[str] = None) -> Iterator[CloudUser]:
        parameters = {"PathPrefix": path_prefix} if path_prefix else {}

        def parse_page(root: Element) -> List[CloudUser]:
            records = (try_parse_record(UserRecord, member) for member in iter_members(root))
            return [record.to_user() for record in records if record is not None]

        return self._list("ListUsers", parameters, parse_page)

    def list_groups(self, path_prefix: Optional[str] = None) -> Iterator[CloudGroup]:
        parameters = {"PathPrefix": path_prefix} if path_prefix else {}

        def parse_page(root: Element) -> List[CloudGroup]:
            records = (try_parse_record(GroupRecord, member) for member in iter_members(root))
            return [record.to_group() for record in records if record is not None]

        return self._list("ListGroups", parameters, parse_page)

    def get_user(self, user_id: str) -> Optional[CloudUser]:
        for user in self.list_users():
            if user.user_id == user_id:
                return user
        return None

    def get_group(self, group_id: str) -> Optional[CloudGroup]:
        for group in self.list_groups():
            if group.group_id == group_id:
                return group
        return None

    def _require_user(self, user_id: str) -> CloudUser:
        user = self.get_user(user_id)
        if user is None:
            raise EntityNotFound(f"No such user: {user_id}")
        return user

    def _require_group(self, group_id: str) -> CloudGroup:
        group = self.get_group(group_id)
        if group is None:
            raise EntityNotFound(f"No such group: {group_id}")
        return group

    # policy listing

    def get_policy(self, policy_arn: str) -> Optional[PolicyHandle]:
        try:
            root = self.transport.invoke("GetPolicy", {"PolicyArn": policy_arn})
        except ServiceError as exc:
            if exc.not_found:
                return None
            raise
        for node in find_all(root, "Policy"):
            record = parse_record(ManagedPolicyRecord, node)
            return record.to_handle(provider_namespace=self.provider_namespace)
        return None

    def list_managed_policies(self, scope: str = "All") -> Iterator[PolicyHandle]:
        if scope not in MANAGED_SCOPES:
            raise ValueError(f"Unsupported managed policy scope '{scope}'. Supported: {', '.join(MANAGED_SCOPES)}")

        def parse_page(root: Element) -> List[PolicyHandle]:
            return [
                parse_record(ManagedPolicyRecord, member).to_handle(provider_namespace=self.provider_namespace)
                for member in iter_members(root)
            ]

        return self._list("ListPolicies", {"Scope": scope}, parse_page)

    def list_policies_for_user(self, user_id: str) -> List[PolicyHandle]:
        user = self._require_user(user_id)
        names = self._list("ListUserPolicies", {"UserName": user.user_name}, _member_names)
        policies = [PolicyHandle.inline_for_user(name, user.user_id, user.user_name) for name in names]
        logger.debug(
            "Found %s inline policies for user %s",
            len(policies),
            user_id,
            extra={"owner": user.user_name, "items": len(policies)},
        )
        return policies

    def list_policies_for_group(self, group_id: str) -> List[PolicyHandle]:
        group = self._require_group(group_id)
        names = self._list("ListGroupPolicies", {"GroupName": group.group_name}, _member_names)
        policies = [PolicyHandle.inline_for_group(name, group.group_id, group.group_name) for name in names]
        logger.debug(
            "Found %s inline policies for group %s",
            len(policies),
            group_id,
            extra={"owner": group.group_name, "items": len(policies)},
        )
        return policies

    def list_policies(
        self,
        policy_classes: Iterable[Any],
        *,
        user_id: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> List[PolicyHandle]:
        classes = {PolicyClass(c) for c in policy_classes}
        include_provider = PolicyClass.PROVIDER_MANAGED in classes
        include_account = PolicyClass.ACCOUNT_MANAGED in classes

        policies: List[PolicyHandle] = []
        if include_provider and include_account:
            policies.extend(self.list_managed_policies("All"))
        elif include_provider:
            policies.extend(self.list_managed_policies("AWS"))
        elif include_account:
            policies.extend(self.list_managed_policies("Local"))
        if PolicyClass.INLINE in classes:
            if group_id:
                policies.extend(self.list_policies_for_group(group_id))
            if user_id:
                policies.extend(self.list_policies_for_user(user_id))
        return policies

    # policy documents

    def _inline_rules(self, action: str, parameters: Dict[str, str], result_tag: str) -> List[AbstractRule]:
        try:
            root = self.transport.invoke(action, parameters)
        except ServiceError as exc:
            if exc.not_found:
                raise EntityNotFound(f"No such policy: {parameters.get('PolicyName')}") from exc
            raise
        for node in find_all(root, result_tag):
            document = extract_embedded_document(node, "PolicyDocument")
            if document is not None:
                return rules_from_document(document)
        return []

    def get_user_policy_rules(self, user_id: str, policy_name: str) -> List[AbstractRule]:
        user = self._require_user(user_id)
        return self._inline_rules(
            "GetUserPolicy",
            {"UserName": user.user_name, "PolicyName": policy_name},
            "GetUserPolicyResult",
        )

    def get_group_policy_rules(self, group_id: str, policy_name: str) -> List[AbstractRule]:
        group = self._require_group(group_id)
        return self._inline_rules(
            "GetGroupPolicy",
            {"GroupName": group.group_name, "PolicyName": policy_name},
            "GetGroupPolicyResult",
        )

    def get_managed_policy_rules(self, policy_arn: str) -> List[AbstractRule]:
        try:
            root = self.transport.invoke("GetPolicy", {"PolicyArn": policy_arn})
            version_id = None
            for node in find_all(root, "Policy"):
                version_id = extract_field(node, "DefaultVersionId")
                if version_id:
                    break
            if not version_id:
                raise StructuralParseError(f"policy {policy_arn} has no DefaultVersionId")
            root = self.transport.invoke("GetPolicyVersion", {"PolicyArn": policy_arn, "VersionId": version_id})
        except ServiceError as exc:
            if exc.not_found:
                raise EntityNotFound(f"No such policy: {policy_arn}") from exc
            raise
        for node in find_all(root, "PolicyVersion"):
            document = extract_embedded_document(node, "Document")
            if document is not None:
                return rules_from_document(document)
        return []

    # policy writes

    def _rule_for(self, effect: Any, operation: Any, resource: Optional[str]) -> Optional[AbstractRule]:
        actions = (WILDCARD,) if operation is None else self.action_mapper.map(operation)
        if not actions:
            logger.warning("Operation %s has no IAM actions; nothing to write", operation)
            return None
        return AbstractRule.build(Effect(effect), actions, resource=resource)

    def _put_rule(self, action: str, owner: Dict[str, str], name: str, rule: AbstractRule) -> List[str]:
        names: List[str] = []
        for encoded in encode_rule(name, rule, max_name_length=self.max_policy_name_length):
            parameters = dict(owner)
            parameters["PolicyName"] = encoded.policy_name
            parameters["PolicyDocument"] = serialize_document(encoded.document())
            owner_name = next(iter(owner.values()))
            logger.info(
                "%s %s for %s",
                action,
                encoded.policy_name,
                owner_name,
                extra={"iam_action": action, "policy_name": encoded.policy_name, "owner": owner_name},
            )
            self.transport.invoke(action, parameters)
            names.append(encoded.policy_name)
        return names

    def put_user_rule(self, user_id: str, name: str, rule: AbstractRule) -> List[str]:
        user = self._require_user(user_id)
        return self._put_rule("PutUserPolicy", {"UserName": user.user_name}, name, rule)

    def put_group_rule(self, group_id: str, name: str, rule: AbstractRule) -> List[str]:
        group = self._require_group(group_id)
        return self._put_rule("PutGroupPolicy", {"GroupName": group.group_name}, name, rule)

    def put_user_policy(
        self,
        user_id: str,
        name: str,
        effect: Any,
        operation: Any = None,
        resource: Optional[str] = None,
    ) -> List[str]:
        """
        Grant or deny ``operation`` (every action when ``None``) to a user.
        Returns the generated policy names, one per mapped IAM action.
        """
        user = self._require_user(user_id)
        rule = self._rule_for(effect, operation, resource)
        if rule is None:
            return []
        return self._put_rule("PutUserPolicy", {"UserName": user.user_name}, name, rule)

    def put_group_policy(
        self,
        group_id: str,
        name: str,
        effect: Any,
        operation: Any = None,
        resource: Optional[str] = None,
    ) -> List[str]:
        group = self._require_group(group_id)
        rule = self._rule_for(effect, operation, resource)
        if rule is None:
            return []
        return self._put_rule("PutGroupPolicy", {"GroupName": group.group_name}, name, rule)

    def remove_user_policy(self, user_id: str, policy_name: str) -> None:
        user = self._require_user(user_id)
        logger.info(
            "Removing policy %s for user %s",
            policy_name,
            user_id,
            extra={"iam_action": "DeleteUserPolicy", "policy_name": policy_name, "owner": user.user_name},
        )
        self.transport.invoke("DeleteUserPolicy", {"UserName": user.user_name, "PolicyName": policy_name})

    def remove_group_policy(self, group_id: str, policy_name: str) -> None:
        group = self._require_group(group_id)
        logger.info(
            "Removing policy %s for group %s",
            policy_name,
            group_id,
            extra={"iam_action": "DeleteGroupPolicy", "policy_name": policy_name, "owner": group.group_name},
        )
        self.transport.invoke("DeleteGroupPolicy", {"GroupName": group.group_name, "PolicyName": policy_name})

    def map_service_action(self, operation: Any) -> Tuple[str, ...]:
        return self.action_mapper.map(operation)
