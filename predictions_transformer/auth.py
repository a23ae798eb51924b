"""AppSync authorization configuration.

This module provides:
- Authorization type variants (API key, Cognito user pool, IAM, OpenID Connect)
- Parsing of directive/CLI-style settings into those variants
- Merging a primary and additional types into one advanced-settings descriptor
- Conflict detection settings
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import ConfigError, DuplicateAuthTypeError

API_KEY_MIN_EXPIRATION_DAYS = 1
API_KEY_MAX_EXPIRATION_DAYS = 365
API_KEY_DEFAULT_EXPIRATION_DAYS = 7


class AuthType(str, Enum):
    API_KEY = "API_KEY"
    AMAZON_COGNITO_USER_POOLS = "AMAZON_COGNITO_USER_POOLS"
    AWS_IAM = "AWS_IAM"
    OPENID_CONNECT = "OPENID_CONNECT"


class ConflictResolutionStrategy(str, Enum):
    AUTOMERGE = "AUTOMERGE"
    OPTIMISTIC_CONCURRENCY = "OPTIMISTIC_CONCURRENCY"
    LAMBDA = "LAMBDA"


@dataclass(frozen=True)
class ApiKeyConfig:
    auth_type: ClassVar[AuthType] = AuthType.API_KEY

    description: str = ""
    expiration_days: int = API_KEY_DEFAULT_EXPIRATION_DAYS

    def validate(self) -> None:
        if not API_KEY_MIN_EXPIRATION_DAYS <= self.expiration_days <= API_KEY_MAX_EXPIRATION_DAYS:
            raise ConfigError(
                f"API key expiration must be between {API_KEY_MIN_EXPIRATION_DAYS} and "
                f"{API_KEY_MAX_EXPIRATION_DAYS} days, got {self.expiration_days}",
                variant=self.auth_type.value,
            )

    def to_dict(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {"apiKeyExpirationDays": self.expiration_days}
        if self.description:
            config["description"] = self.description
        return {"authenticationType": self.auth_type.value, "apiKeyConfig": config}


@dataclass(frozen=True)
class UserPoolConfig:
    auth_type: ClassVar[AuthType] = AuthType.AMAZON_COGNITO_USER_POOLS

    # None means the project's default auth resource
    user_pool_id: Optional[str] = None

    def validate(self) -> None:
        return None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"authenticationType": self.auth_type.value}
        if self.user_pool_id:
            result["userPoolConfig"] = {"userPoolId": self.user_pool_id}
        return result


@dataclass(frozen=True)
class IamConfig:
    auth_type: ClassVar[AuthType] = AuthType.AWS_IAM

    def validate(self) -> None:
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"authenticationType": self.auth_type.value}


@dataclass(frozen=True)
class OpenIDConnectConfig:
    auth_type: ClassVar[AuthType] = AuthType.OPENID_CONNECT

    provider_name: str
    issuer_url: str
    client_id: str
    iat_ttl: int
    auth_ttl: int

    def validate(self) -> None:
        missing = [
            name
            for name, value in (
                ("oidcProviderName", self.provider_name),
                ("oidcProviderDomain", self.issuer_url),
                ("oidcClientId", self.client_id),
                ("ttlaIssueInMillisecond", self.iat_ttl),
                ("ttlaAuthInMillisecond", self.auth_ttl),
            )
            if value is None or value == ""
        ]
        if missing:
            raise ConfigError(
                f"OpenID Connect configuration missing: {', '.join(missing)}",
                variant=self.auth_type.value,
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "authenticationType": self.auth_type.value,
            "openIDConnectConfig": {
                "name": self.provider_name,
                "issuerUrl": self.issuer_url,
                "clientId": self.client_id,
                "iatTTL": self.iat_ttl,
                "authTTL": self.auth_ttl,
            },
        }


AuthTypeConfig = Union[ApiKeyConfig, UserPoolConfig, IamConfig, OpenIDConnectConfig]


@dataclass(frozen=True)
class AuthConfig:
    primary: AuthTypeConfig
    additional: Tuple[AuthTypeConfig, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "defaultAuthentication": self.primary.to_dict(),
            "additionalAuthenticationProviders": [config.to_dict() for config in self.additional],
        }


@dataclass(frozen=True)
class ConflictResolutionConfig:
    strategy: ConflictResolutionStrategy
    lambda_function_arn: Optional[str] = None

    def validate(self) -> None:
        if self.strategy is ConflictResolutionStrategy.LAMBDA and not self.lambda_function_arn:
            raise ConfigError("LAMBDA conflict resolution requires a function ARN", variant=self.strategy.value)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"defaultResolutionStrategy": {"type": self.strategy.value}}
        if self.lambda_function_arn:
            result["defaultResolutionStrategy"]["resolver"] = {"lambdaFunctionArn": self.lambda_function_arn}
        return result


@dataclass(frozen=True)
class AdvancedSettings:
    """Merged authorization plus optional conflict detection."""

    auth: AuthConfig
    conflict_resolution: Optional[ConflictResolutionConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"authConfig": self.auth.to_dict()}
        if self.conflict_resolution is not None:
            result["conflictResolution"] = self.conflict_resolution.to_dict()
        return result


# Accepted spellings of each variant in directive arguments
_AUTH_TYPE_ALIASES = {
    "API_KEY": AuthType.API_KEY,
    "API Key": AuthType.API_KEY,
    "AMAZON_COGNITO_USER_POOLS": AuthType.AMAZON_COGNITO_USER_POOLS,
    "Amazon Cognito User Pool": AuthType.AMAZON_COGNITO_USER_POOLS,
    "AWS_IAM": AuthType.AWS_IAM,
    "IAM": AuthType.AWS_IAM,
    "OPENID_CONNECT": AuthType.OPENID_CONNECT,
    "OpenID Connect": AuthType.OPENID_CONNECT,
}


def parse_auth_type(value: str) -> AuthType:
    try:
        return _AUTH_TYPE_ALIASES[value]
    except KeyError:
        raise ConfigError(f"Unknown authorization type: {value}", variant=value) from None


def _int_setting(settings: Mapping[str, Any], key: str, variant: AuthType) -> Optional[int]:
    value = settings.get(key)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}", variant=variant.value) from None


def parse_auth_type_config(settings: Mapping[str, Any]) -> AuthTypeConfig:
    """
    Build an authorization variant from its settings.

    Args:
        settings: Mapping with ``type`` plus the variant's settings, e.g.
            {"type": "OPENID_CONNECT", "oidcProviderName": "...", ...}

    Returns:
        The validated variant

    Raises:
        ConfigError: If the type is unknown or mandatory settings are missing
    """
    if "type" not in settings:
        raise ConfigError("Authorization settings need a type")
    auth_type = parse_auth_type(settings["type"])

    config: AuthTypeConfig
    if auth_type is AuthType.API_KEY:
        days = _int_setting(settings, "apiExpirationDays", auth_type)
        config = ApiKeyConfig(
            description=settings.get("description") or "",
            expiration_days=API_KEY_DEFAULT_EXPIRATION_DAYS if days is None else days,
        )
    elif auth_type is AuthType.AMAZON_COGNITO_USER_POOLS:
        config = UserPoolConfig(user_pool_id=settings.get("userPoolId"))
    elif auth_type is AuthType.AWS_IAM:
        config = IamConfig()
    else:
        config = OpenIDConnectConfig(
            provider_name=settings.get("oidcProviderName") or "",
            issuer_url=settings.get("oidcProviderDomain") or "",
            client_id=settings.get("oidcClientId") or "",
            iat_ttl=_int_setting(settings, "ttlaIssueInMillisecond", auth_type),  # type: ignore[arg-type]
            auth_ttl=_int_setting(settings, "ttlaAuthInMillisecond", auth_type),  # type: ignore[arg-type]
        )
    config.validate()
    return config


def parse_conflict_resolution(settings: Mapping[str, Any]) -> ConflictResolutionConfig:
    strategy_name = settings.get("strategy", ConflictResolutionStrategy.AUTOMERGE.value)
    try:
        strategy = ConflictResolutionStrategy(strategy_name)
    except ValueError:
        raise ConfigError(f"Unknown conflict resolution strategy: {strategy_name}", variant=strategy_name) from None
    config = ConflictResolutionConfig(strategy=strategy, lambda_function_arn=settings.get("lambdaFunctionArn"))
    config.validate()
    return config


class AuthTypeMerger:
    """Merges a primary and additional authorization types."""

    def candidates(self, primary: AuthTypeConfig) -> List[AuthType]:
        """Variants that may be configured as additional types, in prompt order."""
        return [auth_type for auth_type in AuthType if auth_type is not primary.auth_type]

    def merge(self, primary: AuthTypeConfig, additional: Sequence[AuthTypeConfig] = ()) -> AuthConfig:
        """
        Merge authorization types.

        Args:
            primary: Default authorization type
            additional: Additional types, in caller-declared order

        Returns:
            The merged configuration, ``additional`` order preserved

        Raises:
            DuplicateAuthTypeError: If a variant repeats, or repeats the primary
            ConfigError: If a variant is missing mandatory settings
        """
        primary.validate()
        allowed = set(self.candidates(primary))
        seen = set()
        for config in additional:
            if config.auth_type not in allowed or config.auth_type in seen:
                raise DuplicateAuthTypeError(config.auth_type.value)
            seen.add(config.auth_type)
            config.validate()
        return AuthConfig(primary=primary, additional=tuple(additional))

    def merge_settings(
        self, auth: AuthConfig, conflict_resolution: Optional[ConflictResolutionConfig] = None
    ) -> AdvancedSettings:
        if conflict_resolution is not None:
            conflict_resolution.validate()
        return AdvancedSettings(auth=auth, conflict_resolution=conflict_resolution)

    def from_settings(self, settings: Mapping[str, Any]) -> AdvancedSettings:
        """
        Parse and merge ``{"primary": {...}, "additional": [...], "conflictResolution": {...}}``.
        """
        if "primary" not in settings:
            raise ConfigError("Authorization settings need a primary type")
        primary = parse_auth_type_config(settings["primary"])
        additional = [parse_auth_type_config(entry) for entry in settings.get("additional") or []]
        conflict = settings.get("conflictResolution")
        return self.merge_settings(
            self.merge(primary, additional),
            parse_conflict_resolution(conflict) if conflict is not None else None,
        )
