from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..auth import COOKIE_NAME, create_access_token
from ..core.service_url import resolve_service_url
from ..errors import ProtocolRejection, ValidationFailure
from ..strategy import Strategy

# Query parameters passed through to the CAS login page
LOGIN_PARAMS = ("renew", "gateway", "locale")


def outcome_response(outcome, success_url: str = "/"):
    """Map an authentication outcome onto an HTTP response."""
    if outcome.kind == "redirect":
        resp = RedirectResponse(outcome.url, status_code=status.HTTP_302_FOUND)
        if outcome.logout:
            resp.delete_cookie(COOKIE_NAME)
        return resp

    if outcome.kind == "success":
        access_token = create_access_token(data={"sub": outcome.user})
        resp = RedirectResponse(url=success_url, status_code=status.HTTP_302_FOUND)
        resp.set_cookie(key=COOKIE_NAME, value=access_token, httponly=True, max_age=1800)
        return resp

    if outcome.kind == "fail":
        info = outcome.info
        detail = {"detail": str(info) if info else "Authentication failed"}
        if isinstance(info, ProtocolRejection) and info.code:
            detail["code"] = info.code
        return JSONResponse(detail, status_code=status.HTTP_401_UNAUTHORIZED)

    cause = outcome.cause
    detail = str(cause) if isinstance(cause, ValidationFailure) else "Authentication error"
    return JSONResponse({"detail": detail}, status_code=status.HTTP_502_BAD_GATEWAY)


def build_router(strategy: Strategy) -> APIRouter:
    router = APIRouter()

    @router.get("/login/cas")
    async def cas_login(request: Request):
        """
        No ticket: redirect to CAS login. Ticket: validate it and open a session.
        """
        login_params = {key: request.query_params.get(key) for key in LOGIN_PARAMS}
        outcome = await strategy.authenticate(request, login_params=login_params)
        return outcome_response(outcome)

    @router.get("/logout/cas")
    async def cas_logout(request: Request):
        """
        Logout locally and from CAS.
        """
        base = strategy.options.server_base_url or str(request.base_url)
        service_url = resolve_service_url(base, "/")
        response = RedirectResponse(strategy.client.get_logout_url(service_url))
        response.delete_cookie(COOKIE_NAME)
        return response

    return router
