import logging
from datetime import datetime, timezone
from typing import Mapping, Optional
from urllib.parse import urlencode, urlsplit
from uuid import uuid4
from xml.sax.saxutils import escape

import httpx

from ..errors import TransportError
from ..models import CAS1, CAS3, StrategyOptions

log = logging.getLogger(__name__)

VALIDATE_URIS = {
    CAS1: "/validate",
    CAS3: "/p3/serviceValidate",
}
SAML_VALIDATE_URI = "/samlValidate"

SOAP_ENVELOPE = (
    '<SOAP-ENV:Envelope xmlns:SOAP-ENV="http://schemas.xmlsoap.org/soap/envelope/">'
    '<SOAP-ENV:Header/><SOAP-ENV:Body>'
    '<samlp:Request xmlns:samlp="urn:oasis:names:tc:SAML:1.0:protocol" MajorVersion="1" '
    'MinorVersion="1" RequestID="{request_id}" IssueInstant="{issue_instant}">'
    '<samlp:AssertionArtifact>{ticket}</samlp:AssertionArtifact>'
    '</samlp:Request></SOAP-ENV:Body></SOAP-ENV:Envelope>'
)


def issue_instant(now: Optional[datetime] = None) -> str:
    """UTC timestamp like 2024-01-31T12:00:00.000Z."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _short(ticket: str) -> str:
    return ticket[:8] + "..." if len(ticket) > 8 else ticket


class CASClient:
    def __init__(
        self,
        server_url: str,
        validate_uri: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.server_url = server_url.rstrip('/')
        self.validate_uri = validate_uri
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_options(cls, options: StrategyOptions, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Pick the client flavour for the configured protocol.
        SAML posts a SOAP envelope, everything else is a plain GET.
        """
        if options.use_saml:
            client_cls = SamlCASClient
            uri = options.validate_url or SAML_VALIDATE_URI
        else:
            client_cls = cls
            uri = options.validate_url or VALIDATE_URIS[options.version]
        return client_cls(options.sso_base_url, uri, timeout=options.timeout, transport=transport)

    @property
    def validation_url(self) -> str:
        """SSO base (scheme, host, port and path) followed by the validation URI."""
        parts = urlsplit(self.server_url)
        return f"{parts.scheme}://{parts.netloc}{parts.path.rstrip('/')}{self.validate_uri}"

    def get_login_url(self, service_url: str, extra_params: Optional[Mapping[str, str]] = None) -> str:
        """
        Generate the CAS login URL with the service parameter.
        Extra parameters (renew, gateway, ...) are only sent when truthy.
        """
        params = {'service': service_url}
        for key, value in (extra_params or {}).items():
            if value:
                params[key] = value
        return f"{self.server_url}/login?{urlencode(params)}"

    def get_logout_url(self, service_url: str = None) -> str:
        """
        Generate the CAS logout URL.
        """
        url = f"{self.server_url}/logout"
        if service_url:
            params = {'service': service_url}
            url += f"?{urlencode(params)}"
        return url

    def get_relay_logout_url(self, relay_state: str) -> str:
        """Logout URL that hands the user agent back along a SAML RelayState."""
        params = {'_eventId': 'next', 'RelayState': relay_state}
        return f"{self.server_url}/logout?{urlencode(params)}"

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _send(self, method: str, url: str, **kwargs) -> str:
        async with self._http_client() as client:
            try:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                log.warning("CAS validation failed: HTTP %s", e.response.status_code)
                raise TransportError(f"HTTP {e.response.status_code} from {url}") from e
            except httpx.HTTPError as e:
                log.warning("CAS validation error: %r", e)
                raise TransportError(str(e) or "Unknown error") from e
            return response.text

    async def validate_ticket(self, ticket: str, service_url: str) -> str:
        """
        Validate the Service Ticket (ST) against the CAS server.
        Returns the raw response body; parsing is the caller's business.
        """
        params = {
            'ticket': ticket,
            'service': service_url,
        }
        log.info("Validating ticket %s at %s", _short(ticket), self.validation_url)
        return await self._send("GET", self.validation_url, params=params)


class SamlCASClient(CASClient):
    def build_envelope(self, ticket: str) -> str:
        return SOAP_ENVELOPE.format(
            request_id=uuid4(),
            issue_instant=issue_instant(),
            ticket=escape(ticket),
        )

    async def validate_ticket(self, ticket: str, service_url: str) -> str:
        """
        Validate through /samlValidate: POST a SAML 1.1 request with the
        ticket as assertion artifact, service passed as TARGET.
        """
        log.info("Validating ticket %s at %s (SAML)", _short(ticket), self.validation_url)
        return await self._send(
            "POST",
            self.validation_url,
            params={'TARGET': service_url},
            content=self.build_envelope(ticket).encode("utf-8"),
            headers={'Content-Type': 'text/xml; charset=utf-8'},
        )
