# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""One-time setup of local logging and the Sentry backend."""

import logging
import threading
from types import TracebackType
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.utils import BadDsn

from .config import BackendConfig
from .local_logging import create_stdout_handler
from .log_handler import SentryLogHandler
from .severity import TRACE

logger = logging.getLogger(__name__)

_install_lock = threading.Lock()
_installed = False


class ReportingInvariantError(AssertionError):
    """The Sentry client was constructed but reports itself disabled."""


class ReportingGuard:
    """Lifetime of an active Sentry session.

    Closing the guard flushes buffered events and shuts the client down.
    Usable as a context manager around the application's main loop.
    """

    def __init__(self, client: Any):
        self.client = client
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self, timeout: float | None = None) -> None:
        """Flush pending events and close the client. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.client.flush(timeout=timeout)
        self.client.close(timeout=timeout)

    def __enter__(self) -> "ReportingGuard":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


def _claim_installation() -> None:
    global _installed
    with _install_lock:
        if _installed:
            raise RuntimeError("Error reporting is already initialized for this process")
        _installed = True


def _release_installation() -> None:
    global _installed
    with _install_lock:
        _installed = False


def _install_root_handler(handler: logging.Handler, level: int) -> None:
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)


def _init_local_only(destination: logging.Handler) -> None:
    _install_root_handler(destination, destination.level)
    logger.warning("Could not initialize Sentry integration")


def initialize(
    home_origin: str,
    backend_config: BackendConfig | None = None,
    *,
    log_level: str | None = None,
) -> ReportingGuard | None:
    """Initialize error reporting for the process.

    Without a backend config only the local stdout logger is installed and a
    warning is logged; startup never fails for lack of Sentry settings.
    With a config, log records are routed to Sentry through SentryLogHandler
    and the Sentry client is started.

    Args:
        home_origin: Logger name of the integrating component. Its own
            records are always kept as breadcrumbs.
        backend_config: Sentry settings, or None for local-only logging
        log_level: Minimum level of the local sink. Defaults to LOG_LEVEL
            env or INFO.

    Returns:
        A ReportingGuard when Sentry is active, otherwise None

    Raises:
        RuntimeError: If called more than once per process
        ReportingInvariantError: If the Sentry client starts disabled
    """
    destination = create_stdout_handler(log_level)
    _claim_installation()

    if backend_config is None:
        _init_local_only(destination)
        return None

    try:
        sentry_sdk.init(
            dsn=backend_config.dsn,
            environment=backend_config.environment,
            send_default_pii=True,
            attach_stacktrace=True,
            debug=True,
            traces_sample_rate=backend_config.effective_sample_rate,
            # Routing is owned by SentryLogHandler
            integrations=[LoggingIntegration(level=None, event_level=None)],
        )
    except BadDsn as e:
        _init_local_only(destination)
        logger.warning(f"Sentry DSN rejected, reporting locally only: {e}")
        return None
    except Exception:
        _release_installation()
        raise

    _install_root_handler(SentryLogHandler(home_origin, destination), TRACE)

    client = sentry_sdk.get_client()
    if not client.is_active():
        raise ReportingInvariantError("Sentry client initialized but not enabled")

    logger.info("Sentry integration initialized")
    return ReportingGuard(client)


def initialize_from_env(home_origin: str, *, log_level: str | None = None) -> ReportingGuard | None:
    """Initialize using SENTRY_* environment variables."""
    return initialize(home_origin, BackendConfig.from_env(), log_level=log_level)
