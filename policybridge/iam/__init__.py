from policybridge.iam.actions import (
    DEFAULT_ACTION_TABLE,
    ActionMapper,
    Operation,
    ServiceActionCatalog,
    load_service_actions,
)
from policybridge.iam.arn import classify_policy_id
from policybridge.iam.client import IdentityClient
from policybridge.iam.codec import (
    EncodedStatement,
    decode_statements,
    encode_rule,
    encode_statement,
    policy_document,
    rules_from_document,
    serialize_document,
)
from policybridge.iam.documents import extract_embedded_document, extract_field
from policybridge.iam.pagination import Page, paginate
from policybridge.iam.transport import QueryTransport, Transport

__all__ = [
    "DEFAULT_ACTION_TABLE",
    "ActionMapper",
    "EncodedStatement",
    "IdentityClient",
    "Operation",
    "Page",
    "QueryTransport",
    "ServiceActionCatalog",
    "Transport",
    "classify_policy_id",
    "decode_statements",
    "encode_rule",
    "encode_statement",
    "extract_embedded_document",
    "extract_field",
    "load_service_actions",
    "paginate",
    "policy_document",
    "rules_from_document",
    "serialize_document",
]
