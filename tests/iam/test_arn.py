import pytest

from policybridge.errors import StructuralParseError
from policybridge.iam.arn import classify_policy_id, owner_segment
from policybridge.model.types import PolicyClass


def test_provider_managed_policy():
    assert classify_policy_id("arn:aws:iam::aws:policy:AdministratorAccess") == (
        PolicyClass.PROVIDER_MANAGED,
        "aws",
    )
    assert classify_policy_id("arn:aws:iam::aws:policy/ReadOnlyAccess")[0] == PolicyClass.PROVIDER_MANAGED


def test_account_managed_policy():
    assert classify_policy_id("arn:aws:iam::123456789012:policy:MyPolicy") == (
        PolicyClass.ACCOUNT_MANAGED,
        "123456789012",
    )


def test_owner_segment_match_is_case_insensitive():
    assert classify_policy_id("arn:aws:iam::AWS:policy/ReadOnlyAccess")[0] == PolicyClass.PROVIDER_MANAGED


def test_classification_is_repeatable():
    policy_id = "arn:aws:iam::123456789012:policy/team/Deploy"
    assert classify_policy_id(policy_id) == classify_policy_id(policy_id)


def test_malformed_id_is_a_structural_error():
    with pytest.raises(StructuralParseError, match="segments"):
        classify_policy_id("MyInlinePolicy")
    with pytest.raises(StructuralParseError):
        owner_segment("arn:aws:iam:")


def test_provider_namespace_override(monkeypatch):
    monkeypatch.setenv("POLICYBRIDGE_PROVIDER_NAMESPACE", "vendor")
    assert classify_policy_id("arn:aws:iam::vendor:policy/X")[0] == PolicyClass.PROVIDER_MANAGED
    assert classify_policy_id("arn:aws:iam::aws:policy/X")[0] == PolicyClass.ACCOUNT_MANAGED
    assert (
        classify_policy_id("arn:aws:iam::aws:policy/X", provider_namespace="aws")[0]
        == PolicyClass.PROVIDER_MANAGED
    )
