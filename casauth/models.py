from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


CAS1 = "CAS1.0"
CAS3 = "CAS3.0"
SUPPORTED_VERSIONS = (CAS1, CAS3)


class StrategyOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = CAS1
    sso_base_url: str
    server_base_url: Optional[str] = None
    validate_url: Optional[str] = None  # URI appended to the SSO base path
    service_url: Optional[str] = None
    use_saml: bool = False
    pass_req_to_callback: bool = False
    timeout: float = 10.0

    @model_validator(mode="after")
    def check_version(self):
        if self.version not in SUPPORTED_VERSIONS:
            raise ValueError(f"unsupported version {self.version}")
        if self.use_saml and self.version != CAS3:
            raise ValueError("SAML validation requires version CAS3.0")
        return self


class ValidationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    ticket: str = Field(min_length=1)
    service: str


class SamlProfile(BaseModel):
    user: str
    attributes: Dict[str, Any] = Field(default_factory=dict)


# Outcomes. Redirect is not an authentication result, the other three are.

class Redirect(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["redirect"] = "redirect"
    url: str
    logout: bool = False


class Success(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["success"] = "success"
    user: Any
    info: Any = None


class Fail(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["fail"] = "fail"
    info: Any = None


class Error(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: Literal["error"] = "error"
    cause: BaseException


Outcome = Union[Redirect, Success, Fail, Error]


def principal_user(principal) -> Optional[str]:
    """
    Pull the user identifier out of any principal shape:
    CAS1.0 string, CAS3.0 success mapping, or SamlProfile.
    """
    if isinstance(principal, SamlProfile):
        return principal.user
    if isinstance(principal, dict):
        user = principal.get("user")
        if isinstance(user, dict):
            return user.get("#text")
        return user
    return principal
