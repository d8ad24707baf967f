# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Severity routing policy for log records.

Decides whether a log record becomes a Sentry event, a breadcrumb attached
to future events, or is dropped.
"""

import logging
from enum import Enum, IntEnum

TRACE = 5


class Severity(IntEnum):
    """Ordered severity scale used by the router."""

    TRACE = TRACE
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR

    @classmethod
    def from_levelno(cls, levelno: int) -> "Severity":
        """Map a stdlib logging level number onto the severity scale.

        CRITICAL folds into ERROR; anything below DEBUG is TRACE.
        """
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARN
        if levelno >= logging.INFO:
            return cls.INFO
        if levelno >= logging.DEBUG:
            return cls.DEBUG
        return cls.TRACE


class RoutingDecision(Enum):
    """What to do with a classified record."""

    EVENT = "event"
    BREADCRUMB = "breadcrumb"
    IGNORE = "ignore"


def classify(origin: str, severity: Severity, home_origin: str) -> RoutingDecision:
    """Classify a record by origin and severity.

    Args:
        origin: Name of the emitting component (logger name)
        severity: Severity of the record
        home_origin: Name of the integrating component itself

    Returns:
        The routing decision. Rules are evaluated in order:
        errors are always events, the home origin is always kept as
        breadcrumbs, warnings and info from elsewhere are breadcrumbs,
        and debug/trace from elsewhere is ignored.
    """
    if severity == Severity.ERROR:
        return RoutingDecision.EVENT
    if origin == home_origin:
        return RoutingDecision.BREADCRUMB
    if severity in (Severity.WARN, Severity.INFO):
        return RoutingDecision.BREADCRUMB
    return RoutingDecision.IGNORE


def classify_record(record: logging.LogRecord, home_origin: str) -> RoutingDecision:
    """Classify a stdlib log record."""
    return classify(record.name, Severity.from_levelno(record.levelno), home_origin)
