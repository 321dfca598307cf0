import os
from dotenv import load_dotenv

# Load params from .env file
load_dotenv()

# IAM Query API
DEFAULT_IAM_ENDPOINT = "https://iam.amazonaws.com/"
DEFAULT_IAM_API_VERSION = "2010-05-08"
DEFAULT_TIMEOUT_SECONDS = 10.0

# Owner segment of provider-managed policy ARNs (arn:aws:iam::aws:policy/...)
DEFAULT_PROVIDER_NAMESPACE = "aws"

# IAM rejects inline policy names longer than this
DEFAULT_MAX_POLICY_NAME_LENGTH = 128


def _env_str(name: str, default: str) -> str:
    return str(os.getenv(name) or default).strip() or default


def _env_int(name: str, default: int) -> int:
    raw = str(os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'")


def _env_float(name: str, default: float) -> float:
    raw = str(os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'")


def get_iam_endpoint() -> str:
    return _env_str("POLICYBRIDGE_IAM_ENDPOINT", DEFAULT_IAM_ENDPOINT)


def get_iam_api_version() -> str:
    return _env_str("POLICYBRIDGE_IAM_API_VERSION", DEFAULT_IAM_API_VERSION)


def get_timeout_seconds() -> float:
    return max(0.1, _env_float("POLICYBRIDGE_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))


def get_provider_namespace() -> str:
    """
    Owner segment that marks a managed policy as provider-supplied.
    Partitions other than the commercial one still use "aws" here.
    """
    return _env_str("POLICYBRIDGE_PROVIDER_NAMESPACE", DEFAULT_PROVIDER_NAMESPACE)


def get_max_policy_name_length() -> int:
    return max(1, _env_int("POLICYBRIDGE_MAX_POLICY_NAME_LENGTH", DEFAULT_MAX_POLICY_NAME_LENGTH))


def get_service_actions_path() -> str:
    return str(os.getenv("POLICYBRIDGE_SERVICE_ACTIONS_PATH") or "").strip()


def get_log_level() -> str:
    return _env_str("POLICYBRIDGE_LOG_LEVEL", "INFO").upper()


def get_log_format() -> str:
    return _env_str("POLICYBRIDGE_LOG_FORMAT", "json").lower()
