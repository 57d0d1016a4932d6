"""Security Schemes and Requirements

Typed OpenAPI 3.1 security schemes: API key, HTTP, OAuth2, OpenID Connect
and mutual TLS. Each scheme validates its own structure and projects to a
Security Scheme Object.

Requirements are disjunctive across alternatives and conjunctive within one:
    SecurityRequirements().require("bearerAuth")           # bearer
    SecurityRequirements().any({"apiKey": []}, {"oauth2": ["read"]})
    SecurityRequirements().all({"apiKey": []}, {"mtls": []})
    SecurityRequirements.none()                            # explicitly public
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Mapping, Protocol
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from apiforge.core.errors import AppError, Ok, Result, security_scheme_error

SCHEME_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9.\-_]+$")


class SecuritySchemeType(str, Enum):
    API_KEY = "apiKey"
    HTTP = "http"
    OAUTH2 = "oauth2"
    OPENID_CONNECT = "openIdConnect"
    MUTUAL_TLS = "mutualTLS"


class APIKeyLocation(str, Enum):
    HEADER = "header"
    QUERY = "query"
    COOKIE = "cookie"


class OAuth2FlowType(str, Enum):
    IMPLICIT = "implicit"
    PASSWORD = "password"
    CLIENT_CREDENTIALS = "clientCredentials"
    AUTHORIZATION_CODE = "authorizationCode"


# ============================================================================
# OpenAPI Objects
# ============================================================================

class OAuthFlowObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    
    authorization_url: str | None = Field(default=None, alias="authorizationUrl")
    token_url: str | None = Field(default=None, alias="tokenUrl")
    refresh_url: str | None = Field(default=None, alias="refreshUrl")
    scopes: dict[str, str] = Field(default_factory=dict)


class OAuthFlowsObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    
    implicit: OAuthFlowObject | None = None
    password: OAuthFlowObject | None = None
    client_credentials: OAuthFlowObject | None = Field(default=None, alias="clientCredentials")
    authorization_code: OAuthFlowObject | None = Field(default=None, alias="authorizationCode")


class SecuritySchemeObject(BaseModel):
    """OpenAPI 3.1 Security Scheme Object."""
    model_config = ConfigDict(populate_by_name=True)
    
    type: str
    description: str | None = None
    name: str | None = None
    in_: str | None = Field(default=None, alias="in")
    scheme: str | None = None
    bearer_format: str | None = Field(default=None, alias="bearerFormat")
    flows: OAuthFlowsObject | None = None
    open_id_connect_url: str | None = Field(default=None, alias="openIdConnectUrl")
    
    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


# ============================================================================
# Schemes
# ============================================================================

def _is_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


class SecurityScheme(Protocol):
    @property
    def type(self) -> SecuritySchemeType: ...
    
    def validate(self) -> Result[None, AppError]: ...
    
    def project(self) -> SecuritySchemeObject: ...


@dataclass(frozen=True, slots=True)
class APIKeyScheme:
    name: str
    in_: str = APIKeyLocation.HEADER.value
    description: str = ""
    
    @property
    def type(self) -> SecuritySchemeType: return SecuritySchemeType.API_KEY
    
    def validate(self) -> Result[None, AppError]:
        if not self.name:
            return security_scheme_error("apiKey security scheme requires 'name' field", scheme="apiKey")
        if self.in_ not in {loc.value for loc in APIKeyLocation}:
            return security_scheme_error(
                f"apiKey 'in' field must be 'header', 'query', or 'cookie', got: {self.in_}", scheme="apiKey")
        return Ok(None)
    
    def project(self) -> SecuritySchemeObject:
        return SecuritySchemeObject(type=self.type.value, name=self.name, in_=self.in_,
            description=self.description or None)


@dataclass(frozen=True, slots=True)
class HTTPScheme:
    """HTTP authentication (``basic``, ``bearer``, ``digest`` or any registered scheme)."""
    scheme: str
    bearer_format: str = ""
    description: str = ""
    
    @property
    def type(self) -> SecuritySchemeType: return SecuritySchemeType.HTTP
    
    def validate(self) -> Result[None, AppError]:
        if not self.scheme:
            return security_scheme_error("http security scheme requires 'scheme' field", scheme="http")
        return Ok(None)
    
    def project(self) -> SecuritySchemeObject:
        return SecuritySchemeObject(type=self.type.value, scheme=self.scheme,
            bearer_format=self.bearer_format or None, description=self.description or None)


@dataclass(frozen=True, slots=True)
class OAuth2Flow:
    authorization_url: str = ""
    token_url: str = ""
    refresh_url: str = ""
    scopes: Mapping[str, str] | None = None
    
    def validate(self, flow_type: OAuth2FlowType) -> Result[None, AppError]:
        if self.scopes is None:
            return security_scheme_error("oauth2 flow requires 'scopes' field", scheme="oauth2")
        needs_auth = flow_type in (OAuth2FlowType.IMPLICIT, OAuth2FlowType.AUTHORIZATION_CODE)
        needs_token = flow_type in (OAuth2FlowType.PASSWORD, OAuth2FlowType.CLIENT_CREDENTIALS,
            OAuth2FlowType.AUTHORIZATION_CODE)
        if needs_auth and not self.authorization_url:
            return security_scheme_error(f"{flow_type.value} flow requires 'authorizationUrl'", scheme="oauth2")
        if needs_token and not self.token_url:
            return security_scheme_error(f"{flow_type.value} flow requires 'tokenUrl'", scheme="oauth2")
        for url in (self.authorization_url, self.token_url, self.refresh_url):
            if url and not _is_url(url):
                return security_scheme_error(f"invalid URL '{url}'", scheme="oauth2")
        return Ok(None)
    
    def project(self) -> OAuthFlowObject:
        return OAuthFlowObject(authorization_url=self.authorization_url or None, token_url=self.token_url or None,
            refresh_url=self.refresh_url or None, scopes=dict(self.scopes or {}))


@dataclass(frozen=True, slots=True)
class OAuth2Scheme:
    flows: Mapping[OAuth2FlowType, OAuth2Flow] = field(default_factory=dict)
    description: str = ""
    
    @property
    def type(self) -> SecuritySchemeType: return SecuritySchemeType.OAUTH2
    
    def validate(self) -> Result[None, AppError]:
        if not self.flows:
            return security_scheme_error("oauth2 security scheme requires at least one flow", scheme="oauth2")
        for flow_type in OAuth2FlowType:
            flow = self.flows.get(flow_type)
            if flow is None:
                continue
            result = flow.validate(flow_type)
            if result.is_err():
                return security_scheme_error(
                    f"{flow_type.value} flow validation failed: {result.unwrap_err().message}", scheme="oauth2")
        return Ok(None)
    
    def project(self) -> SecuritySchemeObject:
        flows = {flow_type.value: flow.project() for flow_type, flow in self.flows.items()}
        return SecuritySchemeObject(type=self.type.value, flows=OAuthFlowsObject(**flows),
            description=self.description or None)


@dataclass(frozen=True, slots=True)
class OpenIDConnectScheme:
    open_id_connect_url: str
    description: str = ""
    
    @property
    def type(self) -> SecuritySchemeType: return SecuritySchemeType.OPENID_CONNECT
    
    def validate(self) -> Result[None, AppError]:
        if not self.open_id_connect_url:
            return security_scheme_error("openIdConnect security scheme requires 'openIdConnectUrl' field",
                scheme="openIdConnect")
        if not _is_url(self.open_id_connect_url):
            return security_scheme_error(f"invalid openIdConnectUrl '{self.open_id_connect_url}'",
                scheme="openIdConnect")
        return Ok(None)
    
    def project(self) -> SecuritySchemeObject:
        return SecuritySchemeObject(type=self.type.value, open_id_connect_url=self.open_id_connect_url,
            description=self.description or None)


@dataclass(frozen=True, slots=True)
class MutualTLSScheme:
    description: str = ""
    
    @property
    def type(self) -> SecuritySchemeType: return SecuritySchemeType.MUTUAL_TLS
    
    def validate(self) -> Result[None, AppError]: return Ok(None)
    
    def project(self) -> SecuritySchemeObject:
        return SecuritySchemeObject(type=self.type.value, description=self.description or None)


def validate_scheme_name(name: str) -> Result[None, AppError]:
    """Component names must match ``^[a-zA-Z0-9.\\-_]+$``."""
    if not SCHEME_NAME_PATTERN.fullmatch(name):
        return security_scheme_error(
            f"security scheme name '{name}' must match pattern ^[a-zA-Z0-9\\.\\-_]+$", scheme=name)
    return Ok(None)


# ============================================================================
# Requirements
# ============================================================================

SecurityRequirement = dict[str, list[str]]


@dataclass(frozen=True, slots=True)
class SecurityRequirements:
    """Ordered alternatives (OR); each alternative maps scheme names to scopes (AND)."""
    alternatives: tuple[tuple[tuple[str, tuple[str, ...]], ...], ...] = ()
    
    @staticmethod
    def _freeze(requirement: Mapping[str, Any]) -> tuple[tuple[str, tuple[str, ...]], ...]:
        return tuple((name, tuple(scopes or ())) for name, scopes in requirement.items())
    
    def require(self, scheme: str, *scopes: str) -> SecurityRequirements:
        """Append one alternative requiring ``scheme`` with ``scopes``."""
        return SecurityRequirements(self.alternatives + (((scheme, tuple(scopes)),),))
    
    def any(self, *requirements: Mapping[str, Any]) -> SecurityRequirements:
        """Append each requirement as its own alternative."""
        return SecurityRequirements(self.alternatives + tuple(self._freeze(r) for r in requirements))
    
    def all(self, *requirements: Mapping[str, Any]) -> SecurityRequirements:
        """Merge the requirements into one alternative. Later scopes for the same scheme win."""
        if not requirements:
            return self
        merged: dict[str, Any] = {}
        for requirement in requirements:
            merged.update(requirement)
        return SecurityRequirements(self.alternatives + (self._freeze(merged),))
    
    @classmethod
    def none(cls) -> SecurityRequirements:
        """A single empty alternative: clears inherited authentication."""
        return cls(((),))
    
    @property
    def is_no_auth(self) -> bool: return self.alternatives == ((),)
    
    def to_list(self) -> list[SecurityRequirement]:
        return [{name: list(scopes) for name, scopes in alt} for alt in self.alternatives]
    
    def __iter__(self) -> Iterator[SecurityRequirement]: return iter(self.to_list())
    
    def __len__(self) -> int: return len(self.alternatives)
    
    def __bool__(self) -> bool: return bool(self.alternatives)


# ============================================================================
# Convenience Constructors
# ============================================================================

def api_key_header(name: str, description: str = "") -> APIKeyScheme:
    return APIKeyScheme(name=name, in_=APIKeyLocation.HEADER.value, description=description)


def api_key_query(name: str, description: str = "") -> APIKeyScheme:
    return APIKeyScheme(name=name, in_=APIKeyLocation.QUERY.value, description=description)


def bearer_auth(bearer_format: str = "JWT", description: str = "") -> HTTPScheme:
    return HTTPScheme(scheme="bearer", bearer_format=bearer_format, description=description)


def basic_auth(description: str = "") -> HTTPScheme:
    return HTTPScheme(scheme="basic", description=description)


def oauth2_authorization_code(authorization_url: str, token_url: str, scopes: Mapping[str, str], *,
                              refresh_url: str = "", description: str = "") -> OAuth2Scheme:
    flow = OAuth2Flow(authorization_url=authorization_url, token_url=token_url, refresh_url=refresh_url,
        scopes=dict(scopes))
    return OAuth2Scheme(flows={OAuth2FlowType.AUTHORIZATION_CODE: flow}, description=description)


def oauth2_client_credentials(token_url: str, scopes: Mapping[str, str], *,
                              refresh_url: str = "", description: str = "") -> OAuth2Scheme:
    flow = OAuth2Flow(token_url=token_url, refresh_url=refresh_url, scopes=dict(scopes))
    return OAuth2Scheme(flows={OAuth2FlowType.CLIENT_CREDENTIALS: flow}, description=description)
