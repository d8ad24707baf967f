# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Dual-sink error reporting.

Sentry receives a static message so that occurrences group into a small,
stable set of issues. The local log receives one warning line with every
detail of the concrete occurrence.

Example:
    >>> report_error(
    ...     "Failed to upload object",
    ...     error_chain=format_error_chain(exc),
    ...     attributes={"object_key": key, "prefix": prefix},
    ... )
    # Sentry: "Failed to upload object" (level error, extras attached)
    # Log:    "Failed to upload object [object_key=a/b, prefix=a/, error_chain=...]"
"""

import logging
import sys
from collections.abc import Mapping
from dataclasses import dataclass

import sentry_sdk

from .identity import attributed_scope

logger = logging.getLogger(__name__)

ERROR_CHAIN_FIELD = "error_chain"


@dataclass(frozen=True)
class CallSite:
    """Source location a report is attributed to in the local log."""

    module: str
    filename: str
    lineno: int
    function: str

    @classmethod
    def capture(cls, stacklevel: int = 1) -> "CallSite":
        """Capture the location of the caller of the calling function.

        Args:
            stacklevel: 1 means the direct caller of the function that
                invokes ``capture``; higher values walk further out.
        """
        frame = sys._getframe(stacklevel + 1)
        return cls(
            module=frame.f_globals.get("__name__", "__main__"),
            filename=frame.f_code.co_filename,
            lineno=frame.f_lineno,
            function=frame.f_code.co_name,
        )


def format_error_chain(error: BaseException) -> str:
    """Render an exception and its causes as ``outer: inner: root``."""
    parts = []
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        parts.append(str(current) or type(current).__name__)
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__
    return ": ".join(parts)


def build_detail_line(
    static_message: str,
    error_chain: str,
    attributes: Mapping[str, str | None] | None = None,
) -> str:
    """Build ``"<message> [k1=v1, ..., error_chain=<chain>]"``.

    Attributes keep their mapping order; None values are left out.
    """
    detail_parts = [f"{key}={value}" for key, value in (attributes or {}).items() if value is not None]
    detail_parts.append(f"{ERROR_CHAIN_FIELD}={error_chain}")
    return f"{static_message} [{', '.join(detail_parts)}]"


def _capture_in_sentry(
    static_message: str,
    error_chain: str,
    attributes: Mapping[str, str | None],
) -> None:
    with attributed_scope() as scope:
        scope.set_extra(ERROR_CHAIN_FIELD, error_chain)
        for key, value in attributes.items():
            if value is not None:
                scope.set_extra(key, value)
        sentry_sdk.capture_message(static_message, level="error")


def _log_detail(detail: str, location: CallSite) -> None:
    origin_logger = logging.getLogger(location.module)
    if not origin_logger.isEnabledFor(logging.WARNING):
        return
    record = origin_logger.makeRecord(
        origin_logger.name,
        logging.WARNING,
        location.filename,
        location.lineno,
        detail,
        None,
        None,
        func=location.function,
    )
    origin_logger.handle(record)


def report_error(
    static_message: str,
    error_chain: str,
    attributes: Mapping[str, str | None] | None = None,
    *,
    location: CallSite | None = None,
) -> None:
    """Report an error to Sentry and to the local log.

    Never raises: a failure in one sink does not affect the other.

    Args:
        static_message: Fixed message used by Sentry for grouping. Must not
            contain interpolated values.
        error_chain: Full causal chain of the error
        attributes: Optional ordered context fields; None values are omitted
        location: Call site for the local log line. Defaults to the caller.
    """
    attributes = attributes or {}
    location = location or CallSite.capture()

    try:
        _capture_in_sentry(static_message, error_chain, attributes)
    except Exception as e:
        logger.warning(f"Failed to send error report to Sentry: {e}")

    try:
        _log_detail(build_detail_line(static_message, error_chain, attributes), location)
    except Exception as e:
        print(f"WARNING: {static_message} (local log write failed: {e})", file=sys.stderr, flush=True)


def report_object_storage_error(
    static_message: str,
    error_chain: str,
    object_key: str | None = None,
    prefix: str | None = None,
    *,
    location: CallSite | None = None,
) -> None:
    """Report an object storage error with its object key and prefix.

    Example:
        >>> report_object_storage_error(
        ...     "Failed to read archive",
        ...     error_chain=format_error_chain(exc),
        ...     object_key=key,
        ... )
    """
    report_error(
        static_message,
        error_chain,
        {"object_key": object_key, "prefix": prefix},
        location=location or CallSite.capture(),
    )
