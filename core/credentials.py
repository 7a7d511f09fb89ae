"""
core/credentials.py

Credential resolution for the weather upstream.

Given a caller id, the resolver picks which weather API key to present on the
caller's behalf. The choice is an explicit, ordered policy: a list of
`CredentialRule`s evaluated top-down, where the first rule that yields a
non-empty key wins. The policy shipped with the service is:

1. user-override  - a key configured for this exact caller
2. premium        - the premium key, if the caller is flagged premium
3. role-based     - the key configured for the caller's role: first the role
                    configured for the caller id, then the roles forwarded by
                    the authentication layer, in the order given
4. default       - the configured default key, unconditionally

The last step always succeeds, so `resolve` is total. Rules read from an
immutable `CredentialConfig` snapshot and never mutate anything, which makes a
single resolver safe to share between concurrent requests and lets the rules be
unit-tested without any configuration file.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config.logging_config import get_logger
from monitoring.metrics import CREDENTIAL_DECISION_COUNT
from provider_api.base import FREE_API_KEY
from shared.models import CredentialDecision, CredentialSource

logger = get_logger(__name__)


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class CredentialConfig:
    """
    Read-only snapshot of the credential settings.

    Attributes:
        default_api_key: Key used when no other rule applies.
        premium_api_key: Key shared by all premium callers.
        user_api_keys: caller id -> key.
        premium_users: caller id -> premium flag.
        role_api_keys: role -> key.
        user_roles: caller id -> role.
    """
    default_api_key: str = FREE_API_KEY
    premium_api_key: str = ""
    user_api_keys: Mapping[str, str] = field(default_factory=dict)
    premium_users: Mapping[str, bool] = field(default_factory=dict)
    role_api_keys: Mapping[str, str] = field(default_factory=dict)
    user_roles: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # frozen dataclass: bypass __setattr__ to store read-only views
        for name in ("user_api_keys", "premium_users", "role_api_keys", "user_roles"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))

    @classmethod
    def from_mapping(cls, weather_cfg: Dict[str, Any]) -> "CredentialConfig":
        """Build a snapshot from the `weather` section of CONFIG."""
        weather_cfg = weather_cfg or {}
        return cls(
            default_api_key=weather_cfg.get("default_api_key") or FREE_API_KEY,
            premium_api_key=weather_cfg.get("premium_api_key") or "",
            user_api_keys=weather_cfg.get("user_api_keys") or {},
            premium_users=weather_cfg.get("premium_users") or {},
            role_api_keys=weather_cfg.get("role_api_keys") or {},
            user_roles=weather_cfg.get("user_roles") or {},
        )

    def __repr__(self) -> str:
        return (
            f"CredentialConfig(user_api_keys={len(self.user_api_keys)}, "
            f"premium_users={len(self.premium_users)}, role_api_keys={len(self.role_api_keys)}, "
            f"user_roles={len(self.user_roles)})"
        )


@dataclass(frozen=True)
class CredentialRule:
    """
    One tier of the credential policy.

    `select` receives the caller id, the config snapshot and the caller's forwarded
    roles, and returns a key, or None / "" when the rule does not apply to that caller.
    """
    source: CredentialSource
    select: Callable[[str, CredentialConfig, Tuple[str, ...]], Optional[str]]


def _user_override(caller_id: str, config: CredentialConfig, roles: Tuple[str, ...]) -> Optional[str]:
    return config.user_api_keys.get(caller_id)


def _premium(caller_id: str, config: CredentialConfig, roles: Tuple[str, ...]) -> Optional[str]:
    if config.premium_users.get(caller_id) is True:
        return config.premium_api_key
    return None


def _role_based(caller_id: str, config: CredentialConfig, roles: Tuple[str, ...]) -> Optional[str]:
    # the configured role outranks the forwarded ones
    for role in (config.user_roles.get(caller_id), *roles):
        if role and config.role_api_keys.get(role):
            return config.role_api_keys[role]
    return None


DEFAULT_RULES: Sequence[CredentialRule] = (
    CredentialRule(CredentialSource.USER_OVERRIDE, _user_override),
    CredentialRule(CredentialSource.PREMIUM, _premium),
    CredentialRule(CredentialSource.ROLE_BASED, _role_based),
)


class CredentialResolver:
    """
    Evaluates an ordered list of credential rules for a caller.

    Args:
        config (CredentialConfig): Immutable settings snapshot.
        rules (Sequence[CredentialRule], optional): Rules to evaluate before the default
            fallback; defaults to user-override, premium, role-based.
    """

    def __init__(self, config: CredentialConfig, rules: Optional[Sequence[CredentialRule]] = None):
        self.config = config
        self.rules: List[CredentialRule] = list(DEFAULT_RULES if rules is None else rules)

    def resolve(self, caller_id: Optional[str], roles: Iterable[str] = ()) -> CredentialDecision:
        """
        Pick the weather key for `caller_id`.

        Args:
            caller_id (Optional[str]): Caller identity. Empty ids skip straight to the default.
            roles (Iterable[str]): Roles forwarded by the authentication layer, most
                significant first. Only the role-based tier reads them.

        Returns:
            CredentialDecision: The key and the tier that produced it. Always returns.
        """
        decision = None
        roles = tuple(roles or ())
        if caller_id:
            for rule in self.rules:
                key = rule.select(caller_id, self.config, roles)
                if key:
                    decision = CredentialDecision(key=key, source=rule.source)
                    break
        if decision is None:
            decision = CredentialDecision(
                key=self.config.default_api_key or FREE_API_KEY,
                source=CredentialSource.DEFAULT,
            )

        CREDENTIAL_DECISION_COUNT.labels(source=decision.source.value).inc()
        logger.debug(
            "[resolve] caller=%s -> source=%s", caller_id or "<none>", decision.source.value,
            extra={"caller_id": caller_id, "credential_source": decision.source.value},
        )
        return decision
