"""Capability-based authorization: feature checks, ownership rules and field projections.

Policies are lookup tables keyed by feature name:

- ``OWNERSHIP_RULES`` decide whether a resource-bound feature applies to a
  given resource (owner match or an overriding feature).
- ``INPUT_POLICIES`` whitelist the fields a caller may submit per feature.
- ``OUTPUT_POLICIES`` whitelist the fields a caller may see per feature,
  optionally extended by predicates over the record and restricted to
  records the caller owns.

``can``/``filter_input``/``filter_output`` are synchronous and side-effect
free; ``can_request`` is the coarse per-endpoint gate used as a FastAPI
dependency.
"""

import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from fastapi import Depends

from tuitter.constants import TUIT_STATUS_DISABLED
from tuitter.errors import ForbiddenError, ValidationError

AVAILABLE_FEATURES = frozenset({
    # USER
    "create:user",
    "read:user",
    "read:user:self",
    "update:user",
    # ACTIVATION_TOKEN
    "read:activation_token",
    # SESSION
    "create:session",
    "read:session",
    # TUIT
    "read:tuit",
    "read:tuit:list",
    "update:tuit",
    "update:tuit:others",
    "create:tuit",
    "create:tuit:feedback",
    # MODERATION
    "update:user:others",
    "ban:user",
})

ANONYMOUS_FEATURES = ("create:session", "create:user", "read:tuit")

DEFAULT_USER_FEATURES = (
    "read:session",
    "create:session",
    "read:user",
    "read:user:self",
    "update:user",
    "read:tuit",
    "read:tuit:list",
    "create:tuit",
    "update:tuit",
    "create:tuit:feedback",
)


def get_field(record: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from a mapping or an object (ORM row, dataclass)."""
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def has_field(record: Any, name: str) -> bool:
    if isinstance(record, Mapping):
        return name in record
    return hasattr(record, name)


@dataclass(frozen=True)
class OwnershipRule:
    owner_field: str
    override: str | None = None

    def allows(self, user: Any, features: Any, resource: Any) -> bool:
        if self.override and self.override in features:
            return True
        if resource is None or get_field(resource, "id") is None:
            return False
        user_id = get_field(user, "id")
        return user_id is not None and user_id == get_field(resource, self.owner_field)


@dataclass(frozen=True)
class OutputPolicy:
    fields: tuple[str, ...]
    conditional: tuple[tuple[Callable[[Any], bool], tuple[str, ...]], ...] = ()
    owner_field: str | None = None


def _is_visible(record: Any) -> bool:
    return get_field(record, "status") != TUIT_STATUS_DISABLED


OWNERSHIP_RULES: dict[str, OwnershipRule] = {
    "update:user": OwnershipRule(owner_field="id"),
    "update:tuit": OwnershipRule(owner_field="owner_id", override="update:tuit:others"),
}

INPUT_POLICIES: dict[str, tuple[str, ...]] = {
    "create:session": ("email", "password"),
    "create:user": ("tag", "username", "email", "password"),
    "update:user": ("tag", "username", "email", "password", "description", "picture"),
    "update:user:others": ("description", "picture"),
    "create:tuit": ("body", "parent_id", "quote_id"),
    "update:tuit": ("tuit_id",),
    "ban:user": ("ban_type",),
    "create:tuit:feedback": ("feedback_type",),
}

OUTPUT_POLICIES: dict[str, OutputPolicy] = {
    "read:user:self": OutputPolicy(
        fields=(
            "id", "tag", "username", "email", "features",
            "description", "picture", "created_at", "updated_at",
        ),
        owner_field="id",
    ),
    "read:user": OutputPolicy(
        fields=("id", "tag", "username", "features", "description", "picture", "created_at", "updated_at"),
    ),
    "create:session": OutputPolicy(
        fields=("id", "token", "expires_at", "created_at", "updated_at"),
        owner_field="user_id",
    ),
    "read:session": OutputPolicy(
        fields=("id", "expires_at", "created_at", "updated_at"),
        owner_field="user_id",
    ),
    "read:tuit": OutputPolicy(
        fields=("id", "owner_id", "parent_id", "quote_id", "status", "created_at", "updated_at"),
        conditional=(
            (_is_visible, ("body", "views", "likes", "retuits", "bookmarks", "comments", "quotes")),
        ),
    ),
    "create:tuit:feedback": OutputPolicy(
        fields=("id", "owner_id", "tuit_id", "created_at"),
        owner_field="owner_id",
    ),
}


class AuthorizationEngine:
    """Evaluates features against an immutable registry and the policy tables."""

    def __init__(
        self,
        features: frozenset[str] = AVAILABLE_FEATURES,
        ownership_rules: Mapping[str, OwnershipRule] = OWNERSHIP_RULES,
        input_policies: Mapping[str, tuple[str, ...]] = INPUT_POLICIES,
        output_policies: Mapping[str, OutputPolicy] = OUTPUT_POLICIES,
    ):
        self.features = frozenset(features)
        self._ownership_rules = ownership_rules
        self._input_policies = input_policies
        self._output_policies = output_policies

    def can(self, user: Any, feature: str, resource: Any = None) -> bool:
        self.validate_user(user)
        self.validate_feature(feature)

        features = get_field(user, "features")
        if feature not in features:
            return False

        rule = self._ownership_rules.get(feature)
        if rule is not None:
            return rule.allows(user, features, resource)

        # A resource handed to a feature without a resource rule is a misuse.
        return resource is None

    def filter_input(self, user: Any, feature: str, raw_input: Any, target: Any = None) -> dict[str, Any]:
        self.validate_user(user)
        self.validate_feature(feature)
        if raw_input is None:
            raise ValidationError(
                'No "input" was given to the filter action.',
                "Contact support and quote the error_id.",
                error_location_code="MODEL:AUTHORIZATION:VALIDATE_INPUT:MISSING",
            )

        allowed = self._input_policies.get(feature)
        if not allowed or not self.can(user, feature, target):
            return {}

        projected = {name: get_field(raw_input, name) for name in allowed if has_field(raw_input, name)}
        return copy.deepcopy(projected)

    def filter_output(self, user: Any, feature: str, raw_output: Any) -> dict[str, Any]:
        self.validate_user(user)
        self.validate_feature(feature)
        if raw_output is None:
            raise ValidationError(
                'No "output" was given to the filter action.',
                "Contact support and quote the error_id.",
                error_location_code="MODEL:AUTHORIZATION:VALIDATE_OUTPUT:MISSING",
            )

        policy = self._output_policies.get(feature)
        if policy is None or not self.can(user, feature):
            return {}

        if policy.owner_field is not None:
            user_id = get_field(user, "id")
            if user_id is None or user_id != get_field(raw_output, policy.owner_field):
                return {}

        fields = list(policy.fields)
        for predicate, extra in policy.conditional:
            if predicate(raw_output):
                fields.extend(extra)

        projected = {name: get_field(raw_output, name) for name in fields}
        return copy.deepcopy(projected)

    def validate_user(self, user: Any) -> None:
        if user is None:
            raise ValidationError(
                'No "user" was given to the authorization action.',
                "Contact support and quote the error_id.",
                error_location_code="MODEL:AUTHORIZATION:VALIDATE_USER:MISSING",
            )
        if not isinstance(get_field(user, "features"), (list, tuple, set, frozenset)):
            raise ValidationError(
                '"user" has no "features" or they are not a list.',
                "Contact support and quote the error_id.",
                error_location_code="MODEL:AUTHORIZATION:VALIDATE_USER:INVALID_FEATURES",
            )

    def validate_feature(self, feature: str) -> None:
        if not feature:
            raise ValidationError(
                'No "feature" was given to the authorization action.',
                "Contact support and quote the error_id.",
                error_location_code="MODEL:AUTHORIZATION:VALIDATE_FEATURE:MISSING",
            )
        if feature not in self.features:
            raise ValidationError(
                "The feature is not in the list of available features.",
                "Contact support and quote the error_id.",
                error_location_code="MODEL:AUTHORIZATION:VALIDATE_FEATURE:NOT_AVAILABLE",
                context={"feature": feature},
            )


authorization = AuthorizationEngine()


def can_request(feature: str) -> Callable:
    """Build a FastAPI dependency rejecting requests whose user lacks ``feature``."""
    from tuitter.services.authentication import RequestContext, get_request_context

    authorization.validate_feature(feature)

    async def dependency(context: RequestContext = Depends(get_request_context)) -> RequestContext:
        if feature not in context.user.features:
            raise ForbiddenError(
                "User cannot perform this operation.",
                f'Check that this user has the feature "{feature}".',
                error_location_code="MODEL:AUTHORIZATION:CAN_REQUEST:FEATURE_NOT_FOUND",
            )
        return context

    return dependency
