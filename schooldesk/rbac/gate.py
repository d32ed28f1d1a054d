"""
Authorization gate — the single decision point for every domain operation.

``authorize`` is pure: no I/O, no caching, deterministic in its inputs. It
decides from the principal's own fields and the resource reference, so
callers never need to fetch data to learn whether access is allowed.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, TypeVar

from schooldesk.core.errors import AccessDenied, UnknownCapability
from schooldesk.rbac.capabilities import Capability
from schooldesk.rbac.decision import UNKNOWN_CAPABILITY, AuthorizationDecision
from schooldesk.rbac.principal import Principal
from schooldesk.rbac.registry import RESOURCE_FREE, resolve
from schooldesk.rbac.resources import ResourceRef
from schooldesk.rbac.scoping import assigned_to_class, teaches_subject

logger = logging.getLogger(__name__)

T = TypeVar("T")


def authorize(
    principal: Principal,
    capability: Capability | str,
    resource: Optional[ResourceRef] = None,
) -> AuthorizationDecision:
    try:
        rule = resolve(capability)
    except UnknownCapability as exc:
        logger.error("Authorization requested for unknown capability %r by %s", exc.name, principal.id)
        return AuthorizationDecision.deny(UNKNOWN_CAPABILITY, exc.reason)
    return rule(principal, resource)


def require(
    principal: Principal,
    capability: Capability | str,
    resource: Optional[ResourceRef] = None,
) -> None:
    """Raise ``AccessDenied`` (or ``UnknownCapability``) unless allowed."""
    decision = authorize(principal, capability, resource)
    if decision.allowed:
        return
    if decision.code == UNKNOWN_CAPABILITY:
        raise UnknownCapability(str(capability))
    logger.info("Denied %s to %s (%s): %s", capability, principal.id, principal.role, decision.reason)
    raise AccessDenied(decision.reason, code=decision.code)


def feature_flags(principal: Principal) -> dict[str, bool]:
    """Visibility of resource-free capabilities, for hiding UI elements."""
    return {cap.value: authorize(principal, cap).allowed for cap in Capability if cap in RESOURCE_FREE}


def filter_classes(principal: Principal, classes: Iterable[Mapping[str, T]]) -> list[Mapping[str, T]]:
    if principal.is_admin:
        return list(classes)
    return [c for c in classes if assigned_to_class(principal, c.get("id"))]


def filter_subjects(principal: Principal, subjects: Iterable[Mapping[str, T]]) -> list[Mapping[str, T]]:
    if principal.is_admin:
        return list(subjects)
    return [s for s in subjects if teaches_subject(principal, s.get("id"))]
