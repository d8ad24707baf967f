# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Identity attached to subsequent error reports.

Exactly one identity claim is active per execution context. Each setter
replaces the previous claim; claims are never merged. The claim lives in a
context variable so concurrent requests (threads or asyncio tasks) never see
each other's identity. It is mirrored into the Sentry scope as the user, and
events captured here are attributed from the context variable through
``attributed_scope``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any

import sentry_sdk

AUTH_TYPE_PROPERTY = "auth_type"

AUTH_TYPE_JWT = "jwt"
AUTH_TYPE_APPLICATION_SECRET = "application_secret"
AUTH_TYPE_TOKEN = "token"


@dataclass(frozen=True)
class IdentityClaim:
    """The principal that subsequent reports are attributed to."""

    auth_type: str
    subject_id: str

    @classmethod
    def from_jwt(cls, subject_id: str) -> "IdentityClaim":
        return cls(AUTH_TYPE_JWT, subject_id)

    @classmethod
    def from_application_secret(cls, application_id: str) -> "IdentityClaim":
        return cls(AUTH_TYPE_APPLICATION_SECRET, application_id)

    @classmethod
    def from_token(cls, token_id: str) -> "IdentityClaim":
        return cls(AUTH_TYPE_TOKEN, token_id)

    def as_sentry_user(self) -> dict[str, Any]:
        """Sentry user payload carrying the auth type discriminator."""
        return {"id": self.subject_id, AUTH_TYPE_PROPERTY: self.auth_type}


_current_identity: ContextVar[IdentityClaim | None] = ContextVar(
    "sentry_integration_identity", default=None
)


def current_identity() -> IdentityClaim | None:
    """Return the claim active in the current context, if any."""
    return _current_identity.get()


def set_identity(claim: IdentityClaim) -> None:
    """Make ``claim`` the only active identity for the current context."""
    _current_identity.set(claim)
    sentry_sdk.set_user(claim.as_sentry_user())


def clear_identity() -> None:
    """Drop the active identity for the current context."""
    _current_identity.set(None)
    sentry_sdk.set_user(None)


def set_identity_from_jwt(subject_id: str) -> None:
    """Use JWT claims to set the user to be used in reports."""
    set_identity(IdentityClaim.from_jwt(subject_id))


def set_identity_from_application_secret(application_id: str) -> None:
    """Use an application secret to set the user to be used in reports."""
    set_identity(IdentityClaim.from_application_secret(application_id))


def set_identity_from_token(token_id: str) -> None:
    """Use a token ID to set the user to be used in reports."""
    set_identity(IdentityClaim.from_token(token_id))


@contextmanager
def identity_scope(claim: IdentityClaim) -> Iterator[IdentityClaim]:
    """Activate ``claim`` for the duration of a block.

    The block runs in a forked Sentry isolation scope, so the Sentry user set
    here never reaches other requests. The previous claim (or its absence) is
    restored on exit, which makes this suitable for wrapping a single request
    or job.

    Example:
        with identity_scope(IdentityClaim.from_jwt(user_id)):
            handle_request()
    """
    with sentry_sdk.isolation_scope():
        token = _current_identity.set(claim)
        sentry_sdk.set_user(claim.as_sentry_user())
        try:
            yield claim
        finally:
            _current_identity.reset(token)


@contextmanager
def attributed_scope() -> Iterator[sentry_sdk.Scope]:
    """Fork the Sentry scopes and attribute them to the current claim only.

    The isolation scope may be shared by concurrent tasks, and a user set by
    one of them would otherwise end up on events captured by another. The
    fork carries the claim of the current context, or no user at all.
    """
    with sentry_sdk.isolation_scope() as scope:
        claim = current_identity()
        scope.set_user(claim.as_sentry_user() if claim is not None else None)
        yield scope
