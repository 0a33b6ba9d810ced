"""Casbin RBAC enforcer for role-based permission checks.

Provides a lazy Enforcer singleton loaded from two files shipped alongside
this module:

- ``rbac_model.conf``  : request ``(role, resource, action)`` matched with
  role inheritance, ``keyMatch`` on the resource and a ``*`` action wildcard
- ``rbac_policy.csv``  : grants per role plus the role hierarchy
  (admin inherits editor, editor inherits author)

Roles are the ``profiles.role`` strings; there are no per-user policies.
"""

from __future__ import annotations

import logging
import pathlib

import casbin

logger = logging.getLogger(__name__)

# Module-level lazy singleton, initialised on first call to get_enforcer().
_enforcer: casbin.Enforcer | None = None

_MODEL_PATH = pathlib.Path(__file__).parent / "rbac_model.conf"
_POLICY_PATH = pathlib.Path(__file__).parent / "rbac_policy.csv"


def init_enforcer() -> casbin.Enforcer:
    """Load the model and policy files and store the enforcer singleton."""
    global _enforcer
    _enforcer = casbin.Enforcer(str(_MODEL_PATH), str(_POLICY_PATH))
    logger.debug("RBAC policies loaded from %s", _POLICY_PATH)
    return _enforcer


def get_enforcer() -> casbin.Enforcer:
    """Return the module-level Enforcer, initialising it on first call."""
    if _enforcer is None:
        return init_enforcer()
    return _enforcer


def enforce(role: str, resource: str, action: str) -> bool:
    """Check whether *role* may perform *action* on *resource*.

    Args:
        role:     A ``profiles.role`` value such as ``"editor"``.
        resource: Resource name, e.g. ``"news_duplicates"``.
        action:   Requested operation, e.g. ``"manage"``.
    """
    return get_enforcer().enforce(role, resource, action)


def get_implicit_roles(role: str) -> list[str]:
    """Roles inherited by *role*, e.g. ``["editor", "author"]`` for admin."""
    return get_enforcer().get_implicit_roles_for_user(role)
