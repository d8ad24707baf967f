# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Sentry integration helpers.

Routes log records to Sentry as events or breadcrumbs, attributes reports to
the acting principal, and reports errors with a static Sentry grouping
message plus a detailed local log line.

Example:
    >>> from sentry_integration import BackendConfig, initialize, report_error
    >>>
    >>> guard = initialize("my_service", BackendConfig.from_env())
    >>> report_error("Failed to fetch archive", error_chain="timeout: read")
    >>> if guard:
    ...     guard.close()
"""

__version__ = "0.1.0"

from .config import BackendConfig
from .identity import (
    IdentityClaim,
    attributed_scope,
    clear_identity,
    current_identity,
    identity_scope,
    set_identity,
    set_identity_from_application_secret,
    set_identity_from_jwt,
    set_identity_from_token,
)
from .lifecycle import ReportingGuard, ReportingInvariantError, initialize, initialize_from_env
from .log_handler import SentryLogHandler
from .reporter import (
    CallSite,
    build_detail_line,
    format_error_chain,
    report_error,
    report_object_storage_error,
)
from .severity import RoutingDecision, Severity, classify

__all__ = [
    "__version__",
    # Configuration and lifecycle
    "BackendConfig",
    "ReportingGuard",
    "ReportingInvariantError",
    "initialize",
    "initialize_from_env",
    # Routing
    "RoutingDecision",
    "SentryLogHandler",
    "Severity",
    "classify",
    # Identity
    "IdentityClaim",
    "attributed_scope",
    "clear_identity",
    "current_identity",
    "identity_scope",
    "set_identity",
    "set_identity_from_application_secret",
    "set_identity_from_jwt",
    "set_identity_from_token",
    # Reporting
    "CallSite",
    "build_detail_line",
    "format_error_chain",
    "report_error",
    "report_object_storage_error",
]
