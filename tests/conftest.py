from urllib.parse import urlsplit

import httpx
import pytest
from starlette.requests import Request

from casauth.strategy import Strategy

SSO_BASE = "https://cas.example.com/cas"
SERVER_BASE = "https://app.example.com"

CAS3_SUCCESS = """<cas:serviceResponse xmlns:cas='http://www.yale.edu/tp/cas'>
    <cas:authenticationSuccess>
        <cas:user>bob</cas:user>
        <cas:attributes>
            <cas:email>bob@example.com</cas:email>
            <cas:memberOf>staff</cas:memberOf>
            <cas:memberOf>faculty</cas:memberOf>
        </cas:attributes>
    </cas:authenticationSuccess>
</cas:serviceResponse>"""

CAS3_FAILURE = """<cas:serviceResponse xmlns:cas='http://www.yale.edu/tp/cas'>
    <cas:authenticationFailure code="INVALID_TICKET">
        Ticket ST-1856339-aA5Yuvrxzpv8Tau1cYQ7 not recognized
    </cas:authenticationFailure>
</cas:serviceResponse>"""

SAML_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<SOAP-ENV:Envelope xmlns:SOAP-ENV="http://schemas.xmlsoap.org/soap/envelope/">
  <SOAP-ENV:Header/>
  <SOAP-ENV:Body>
    <saml1p:Response xmlns:saml1p="urn:oasis:names:tc:SAML:1.0:protocol" IssueInstant="2024-01-31T12:00:00.000Z"
        MajorVersion="1" MinorVersion="1" Recipient="https://app.example.com/login/cas" ResponseID="_abc">
      <saml1p:Status>
        <saml1p:StatusCode Value="{status}"/>
      </saml1p:Status>
      <saml1:Assertion xmlns:saml1="urn:oasis:names:tc:SAML:1.0:assertion" AssertionID="_def"
          IssueInstant="2024-01-31T12:00:00.000Z" Issuer="localhost" MajorVersion="1" MinorVersion="1">
        <saml1:AttributeStatement>
          <saml1:Subject>
            <saml1:NameIdentifier>carol</saml1:NameIdentifier>
          </saml1:Subject>
          <saml1:Attribute AttributeName="eduPersonPrincipalName" AttributeNamespace="http://www.ja-sig.org/products/cas/">
            <saml1:AttributeValue>carol</saml1:AttributeValue>
          </saml1:Attribute>
          <saml1:Attribute AttributeName="memberOf" AttributeNamespace="http://www.ja-sig.org/products/cas/">
            <saml1:AttributeValue>staff</saml1:AttributeValue>
            <saml1:AttributeValue>faculty</saml1:AttributeValue>
          </saml1:Attribute>
        </saml1:AttributeStatement>
        <saml1:AuthenticationStatement AuthenticationInstant="2024-01-31T11:59:00.000Z"
            AuthenticationMethod="urn:oasis:names:tc:SAML:1.0:am:password">
          <saml1:Subject>
            <saml1:NameIdentifier>carol</saml1:NameIdentifier>
          </saml1:Subject>
        </saml1:AuthenticationStatement>
      </saml1:Assertion>
    </saml1p:Response>
  </SOAP-ENV:Body>
</SOAP-ENV:Envelope>"""


def saml_response(status="saml1p:Success"):
    return SAML_TEMPLATE.replace("{status}", status)


def make_request(target: str, host: str = "app.example.com") -> Request:
    """A bare Starlette request for `target` (path plus query)."""
    parts = urlsplit(target)
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "https",
        "path": parts.path or "/",
        "query_string": parts.query.encode(),
        "headers": [(b"host", host.encode())],
    }
    return Request(scope)


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it answered."""

    def __init__(self, text="", status_code=200, exc=None):
        self.requests = []

        def handler(request: httpx.Request):
            self.requests.append(request)
            if exc is not None:
                raise exc
            return httpx.Response(status_code, text=text)

        super().__init__(handler)


@pytest.fixture(name="verify_calls")
def verify_calls_fixture():
    return []


@pytest.fixture(name="verify")
def verify_fixture(verify_calls):
    def verify(principal):
        verify_calls.append(principal)
        return principal, {"source": "cas"}
    return verify


@pytest.fixture(name="make_strategy")
def make_strategy_fixture(verify):
    def factory(transport=None, verify_fn=None, **options):
        options.setdefault("sso_base_url", SSO_BASE)
        options.setdefault("server_base_url", SERVER_BASE)
        return Strategy(verify_fn or verify, transport=transport, **options)
    return factory
