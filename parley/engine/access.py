"""
parley.engine.access — Role → Action Access Gate
=================================================

Static, read-only mapping from role name to the set of actions that role
may call.  The request layer asks :func:`is_allowed` before dispatching to
a service.  Unknown roles carry no rights.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

__all__ = ["ROLES", "ROLE_RIGHTS", "AccessGate", "is_allowed"]


def _freeze(table: Mapping[str, Iterable[str]]) -> Mapping[str, frozenset[str]]:
    return MappingProxyType({role: frozenset(actions) for role, actions in table.items()})


ROLE_RIGHTS: Mapping[str, frozenset[str]] = _freeze({
    "user": [
        "createMessage",
        "userTopics",
        "createTopic",
        "createThread",
        "userThreads",
        "ping",
        "followThread",
        "getThread",
        "publicTopics",
        "publicThreads",
    ],
    "admin": ["getUsers", "manageUsers"],
})

ROLES: tuple[str, ...] = tuple(ROLE_RIGHTS)


class AccessGate:
    """Lookup over an injected role table (defaults to :data:`ROLE_RIGHTS`)."""

    def __init__(self, rights: Mapping[str, Iterable[str]] = ROLE_RIGHTS) -> None:
        self._rights = _freeze(rights)

    @property
    def rights(self) -> Mapping[str, frozenset[str]]:
        return self._rights

    def rights_for(self, role: str | None) -> frozenset[str]:
        return self._rights.get(role or "", frozenset())

    def is_allowed(self, role: str | None, action: str) -> bool:
        return action in self.rights_for(role)


_default_gate = AccessGate()


def is_allowed(role: str | None, action: str) -> bool:
    """Module-level shortcut over the default gate."""
    return _default_gate.is_allowed(role, action)
