"""
CAS authentication strategy.

One call to `Strategy.authenticate` is one authentication attempt: it either
sends the user agent to the CAS login (or logout) page, or validates the
ticket it came back with and reports Success, Fail or Error.

    strategy = Strategy(verify, version="CAS3.0", sso_base_url="https://cas.example.com/cas",
                        server_base_url="https://app.example.com")
    outcome = await strategy.authenticate(request, login_params={"renew": "true"})

`verify(principal)` (or `verify(request, principal)` with
`pass_req_to_callback=True`) may be a plain function or a coroutine function.
It returns a `(user, info)` pair: a falsy user is a rejection, raising is an
error.
"""
import inspect
import logging
from typing import Any, Callable, Mapping, Optional

import httpx
from pydantic import ValidationError

from .core.cas_client import CASClient
from .core.parsers import select_parser
from .core.service_url import request_path, resolve_service_url
from .errors import ConfigurationError, MalformedResponseError, ProtocolRejection, TransportError
from .models import Error, Fail, Outcome, Redirect, StrategyOptions, Success, ValidationRequest

log = logging.getLogger(__name__)


class _Attempt:
    """Single-shot outcome holder; a second settle is a bug, not an update."""

    def __init__(self):
        self.outcome: Optional[Outcome] = None

    def settle(self, outcome: Outcome) -> Outcome:
        if self.outcome is not None:
            raise RuntimeError(f"authentication attempt already settled as {self.outcome.kind}")
        self.outcome = outcome
        return outcome

    def redirect(self, url: str, logout: bool = False) -> Outcome:
        return self.settle(Redirect(url=url, logout=logout))

    def success(self, user, info=None) -> Outcome:
        return self.settle(Success(user=user, info=info))

    def fail(self, info=None) -> Outcome:
        return self.settle(Fail(info=info))

    def error(self, cause: BaseException) -> Outcome:
        return self.settle(Error(cause=cause))


class Strategy:
    name = "cas"

    def __init__(
        self,
        verify: Callable[..., Any],
        options: Optional[StrategyOptions] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ):
        if verify is None:
            raise ConfigurationError("cas authentication strategy requires a verify function")
        if options is None:
            try:
                options = StrategyOptions(**kwargs)
            except ValidationError as e:
                raise ConfigurationError(str(e)) from e
        elif kwargs:
            raise ConfigurationError("pass either an options object or keyword options, not both")

        self.options = options
        self.client = CASClient.from_options(options, transport=transport)
        self.parser = select_parser(options.version, options.use_saml)

        if options.pass_req_to_callback:
            self._call_verify = lambda request, principal: verify(request, principal)
        else:
            self._call_verify = lambda request, principal: verify(principal)

    def service(self, request) -> str:
        path = self.options.service_url or request_path(request)
        # Without a configured server base, the request's own origin is the base.
        base = self.options.server_base_url or str(request.base_url)
        return resolve_service_url(base, path)

    async def authenticate(self, request, login_params: Optional[Mapping[str, str]] = None) -> Outcome:
        attempt = _Attempt()

        relay_state = request.query_params.get("RelayState")
        if relay_state:
            return attempt.redirect(self.client.get_relay_logout_url(relay_state), logout=True)

        service = self.service(request)
        ticket = request.query_params.get("ticket")
        if not ticket:
            return attempt.redirect(self.client.get_login_url(service, login_params))

        validation = ValidationRequest(ticket=ticket, service=service)
        try:
            body = await self.client.validate_ticket(validation.ticket, validation.service)
            principal = self.parser.parse(body)
        except ProtocolRejection as e:
            return attempt.fail(e)
        except (TransportError, MalformedResponseError) as e:
            return attempt.error(e)

        try:
            user, info = await self._verify(request, principal)
        except Exception as e:
            log.exception("verify callback failed")
            return attempt.error(e)

        if not user:
            return attempt.fail(info)
        return attempt.success(user, info)

    async def _verify(self, request, principal):
        result = self._call_verify(request, principal)
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, tuple) or len(result) != 2:
            raise TypeError(f"verify must return a (user, info) pair, got {type(result).__name__}")
        return result
