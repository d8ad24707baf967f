# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Logging handler that routes records to Sentry before writing them locally."""

import logging

from sentry_sdk.integrations.logging import BreadcrumbHandler, EventHandler

from .identity import attributed_scope
from .severity import RoutingDecision, classify_record


class SentryLogHandler(logging.Handler):
    """Wraps a destination handler and feeds Sentry along the way.

    Every record is classified with the severity router. Events are captured
    by Sentry, breadcrumbs are attached to the current Sentry scope, and
    ignored records are not sent. The record is then always handed to the
    destination handler, which applies its own level filter.
    """

    def __init__(
        self,
        home_origin: str,
        destination: logging.Handler,
        event_handler: logging.Handler | None = None,
        breadcrumb_handler: logging.Handler | None = None,
    ):
        """Initialize the handler.

        Args:
            home_origin: Logger name of the integrating component
            destination: Handler writing the local log line
            event_handler: Handler turning records into Sentry events
            breadcrumb_handler: Handler turning records into Sentry breadcrumbs
        """
        super().__init__(level=logging.NOTSET)
        self.home_origin = home_origin
        self.destination = destination
        self.event_handler = event_handler or EventHandler(level=logging.NOTSET)
        self.breadcrumb_handler = breadcrumb_handler or BreadcrumbHandler(level=logging.NOTSET)

    def route(self, record: logging.LogRecord) -> RoutingDecision:
        decision = classify_record(record, self.home_origin)
        if decision is RoutingDecision.EVENT:
            with attributed_scope():
                self.event_handler.handle(record)
        elif decision is RoutingDecision.BREADCRUMB:
            self.breadcrumb_handler.handle(record)
        return decision

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.route(record)
        except Exception:
            self.handleError(record)
        if record.levelno >= self.destination.level:
            self.destination.handle(record)

    def setFormatter(self, fmt: logging.Formatter | None) -> None:
        self.destination.setFormatter(fmt)

    def flush(self) -> None:
        self.destination.flush()

    def close(self) -> None:
        self.destination.close()
        super().close()
