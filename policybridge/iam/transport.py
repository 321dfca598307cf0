from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Protocol
from xml.etree import ElementTree
from xml.etree.ElementTree import Element

import requests

from policybridge.config import get_iam_api_version, get_iam_endpoint, get_timeout_seconds
from policybridge.errors import (
    ServiceError,
    StructuralParseError,
    TransportTimeout,
    TransportUnavailable,
)
from policybridge.iam.documents import extract_first


logger = logging.getLogger(__name__)


class Transport(Protocol):
    def invoke(self, action: str, parameters: Optional[Mapping[str, str]] = None) -> Element:
        ...


def parse_response(body: bytes) -> Element:
    try:
        return ElementTree.fromstring(body)
    except ElementTree.ParseError as exc:
        raise StructuralParseError(f"response is not well-formed XML: {exc}") from exc


class QueryTransport:
    """
    POSTs IAM Query API actions and returns the parsed XML response.

    Request signing is not done here: pass a ``requests`` auth object (or a
    pre-configured session) that signs outgoing requests.
    """

    def __init__(
        self,
        *,
        endpoint: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        auth: Any = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.endpoint = str(endpoint or get_iam_endpoint()).strip()
        self.api_version = str(api_version or get_iam_api_version()).strip()
        self.timeout = float(timeout) if timeout is not None else get_timeout_seconds()
        self.auth = auth
        self._session = session or requests.Session()

    def _form(self, action: str, parameters: Optional[Mapping[str, str]]) -> Dict[str, str]:
        form = {"Action": action, "Version": self.api_version}
        for key, value in (parameters or {}).items():
            if value is not None:
                form[str(key)] = str(value)
        return form

    def invoke(self, action: str, parameters: Optional[Mapping[str, str]] = None) -> Element:
        try:
            resp = self._session.post(
                self.endpoint,
                data=self._form(action, parameters),
                auth=self.auth,
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            raise TransportTimeout(f"IAM {action} timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise TransportUnavailable(f"IAM {action} request failed: {exc}") from exc

        if resp.status_code >= 400:
            code: Optional[str] = None
            message = resp.reason or "request failed"
            try:
                error_doc = parse_response(resp.content)
            except StructuralParseError:
                error_doc = None
            if error_doc is not None:
                code = extract_first(error_doc, "Code")
                message = extract_first(error_doc, "Message") or message
            error = ServiceError(message, status_code=resp.status_code, code=code, action=action)
            context = {"iam_action": action, "status_code": error.status_code, "error_code": code}
            if error.not_found:
                logger.debug(error.summary, extra=context)
            else:
                logger.error(error.summary, extra=context)
            raise error

        return parse_response(resp.content)
