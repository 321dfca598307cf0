from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional, Tuple


WILDCARD = "*"


class Effect(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


class PolicyClass(str, Enum):
    INLINE = "INLINE"
    ACCOUNT_MANAGED = "ACCOUNT_MANAGED"
    PROVIDER_MANAGED = "PROVIDER_MANAGED"


@dataclass(frozen=True)
class AbstractRule:
    """
    Provider-neutral permission rule.

    An empty ``actions`` tuple on a non-negated rule means every action.
    With ``negated`` set, ``actions`` lists the actions the rule does not cover.
    """

    effect: Effect
    actions: Tuple[str, ...] = ()
    negated: bool = False
    resource: str = WILDCARD

    @classmethod
    def build(
        cls,
        effect: Effect,
        actions: Iterable[str] = (),
        *,
        negated: bool = False,
        resource: Optional[str] = None,
    ) -> "AbstractRule":
        items = tuple(str(a).strip() for a in actions if str(a or "").strip())
        return cls(
            effect=Effect(effect),
            actions=items,
            negated=bool(negated),
            resource=str(resource or "").strip() or WILDCARD,
        )

    @property
    def all_actions(self) -> bool:
        return not self.negated and (not self.actions or self.actions == (WILDCARD,))


@dataclass(frozen=True)
class PolicyHandle:
    id: str
    name: str
    policy_class: PolicyClass
    description: Optional[str] = None
    owner_user_id: Optional[str] = None
    owner_group_id: Optional[str] = None
    # namespace the managed class was derived with; None means the configured one
    provider_namespace: Optional[str] = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        owners = [o for o in (self.owner_user_id, self.owner_group_id) if o]
        if self.policy_class == PolicyClass.INLINE:
            if len(owners) != 1:
                raise ValueError("inline policies must have exactly one owning user or group")
            return
        if owners:
            raise ValueError("managed policies are attached, not owned")
        from policybridge.iam.arn import classify_policy_id

        derived, _ = classify_policy_id(self.id, provider_namespace=self.provider_namespace)
        if derived != self.policy_class:
            raise ValueError(f"policy {self.id} is {derived.value}, not {PolicyClass(self.policy_class).value}")

    @classmethod
    def managed(
        cls,
        policy_arn: str,
        name: str,
        description: Optional[str] = None,
        *,
        provider_namespace: Optional[str] = None,
    ) -> "PolicyHandle":
        from policybridge.iam.arn import classify_policy_id

        policy_class, _ = classify_policy_id(policy_arn, provider_namespace=provider_namespace)
        return cls(
            id=policy_arn,
            name=name,
            policy_class=policy_class,
            description=description,
            provider_namespace=provider_namespace,
        )

    @classmethod
    def inline_for_user(cls, policy_name: str, user_id: str, user_name: str) -> "PolicyHandle":
        return cls(
            id=policy_name,
            name=policy_name,
            policy_class=PolicyClass.INLINE,
            description=f"Inline policy for user {user_name}",
            owner_user_id=user_id,
        )

    @classmethod
    def inline_for_group(cls, policy_name: str, group_id: str, group_name: str) -> "PolicyHandle":
        return cls(
            id=policy_name,
            name=policy_name,
            policy_class=PolicyClass.INLINE,
            description=f"Inline policy for group {group_name}",
            owner_group_id=group_id,
        )


@dataclass(frozen=True)
class CloudUser:
    user_id: str
    user_name: str
    path: str = "/"
    arn: Optional[str] = None


@dataclass(frozen=True)
class CloudGroup:
    group_id: str
    group_name: str
    path: str = "/"
    arn: Optional[str] = None
