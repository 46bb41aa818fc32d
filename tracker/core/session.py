"""
Session context: who is acting, held explicitly instead of in globals.

Login is self-asserted (there is no identity provider): the dashboard asks
for a name, e-mail, role and department and trusts the answer. The session
keeps that Actor for the engines and remembers it in the local cache so a
restart resumes the same user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from tracker.core.exceptions import PermissionDenied, ValidationError

logger = logging.getLogger(__name__)

SESSION_CACHE_KEY = "fmsc_user"


class Role(str, Enum):
    ADMIN = "ADMIN"
    HOD = "HOD"
    LECTURER = "LECTURER"

    @classmethod
    def parse(cls, value: str) -> "Role":
        # Older clients stored every department user as DEPT_USER
        if value == "DEPT_USER":
            return cls.LECTURER
        try:
            return cls(value)
        except ValueError as exc:
            raise ValidationError(f"Unknown role '{value}'", details={"role": value}) from exc


@dataclass(frozen=True)
class Actor:
    id: str
    name: str
    role: Role
    email: str = ""
    department_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "departmentId": self.department_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Actor":
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=Role.parse(data.get("role") or ""),
            department_id=data.get("departmentId"),
        )


class SessionContext:
    """Current actor for one client session.

    Args:
        cache: Optional LocalCache; when given, login/logout are remembered.
    """

    def __init__(self, cache=None) -> None:
        self._cache = cache
        self._actor: Actor | None = None

    @classmethod
    def restore(cls, cache) -> "SessionContext":
        """Build a session and re-login the actor remembered in ``cache``."""
        session = cls(cache)
        data = cache.get(SESSION_CACHE_KEY)
        if data:
            try:
                session._actor = Actor.from_dict(data)
            except (KeyError, ValidationError) as exc:
                logger.warning("Discarding unreadable cached session: %s", exc)
                cache.delete(SESSION_CACHE_KEY)
        return session

    @property
    def actor(self) -> Actor | None:
        return self._actor

    @property
    def is_authenticated(self) -> bool:
        return self._actor is not None

    def login(self, actor: Actor) -> Actor:
        if actor.role is not Role.ADMIN and not actor.department_id:
            raise ValidationError(
                "Department users must select a department",
                details={"departmentId": None},
            )
        self._actor = actor
        if self._cache is not None:
            self._cache.set(SESSION_CACHE_KEY, actor.to_dict())
        logger.info("Session started for %s (%s)", actor.id, actor.role.value)
        return actor

    def logout(self) -> None:
        if self._actor is not None:
            logger.info("Session ended for %s", self._actor.id)
        self._actor = None
        if self._cache is not None:
            self._cache.delete(SESSION_CACHE_KEY)

    def require_actor(self) -> Actor:
        if self._actor is None:
            raise PermissionDenied(None, "use_session", "not logged in")
        return self._actor
