"""
``@traced_engine``: one STORE_CREDIT_ENGINE_TRACE record per engine call.

The record names the engine and its version, fingerprints the arguments
listed in ``fingerprint_fields`` and reports how the call ended:

    ok        returned a result (or a result whose ``is_valid`` is true)
    invalid   returned a result with ``is_valid`` false
    error     raised; the exception propagates unchanged

Fingerprints are the first 16 hex chars of a SHA-256 over canonical JSON
(sorted keys, dataclasses as dicts, enums by value), so equal inputs give
equal fingerprints across processes.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import json
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from credit_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

TRACE_EVENT = "STORE_CREDIT_ENGINE_TRACE"

F = TypeVar("F", bound=Callable[..., Any])


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return repr(value)


def fingerprint(values: Mapping[str, Any]) -> str:
    """Stable 16-char digest of ``values``."""
    canonical = json.dumps(values, sort_keys=True, separators=(",", ":"), default=_plain)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def _outcome(result: Any) -> str:
    if getattr(result, "is_valid", True) is False:
        return "invalid"
    return "ok"


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[F], F]:
    """
    Args:
        engine_name: e.g. "discount".
        engine_version: Bumped when the engine's arithmetic changes.
        fingerprint_fields: Parameter names to hash; arguments left at their
            defaults are hashed with the default value.
    """

    def decorator(func: F) -> F:
        signature = inspect.signature(func)
        unknown = set(fingerprint_fields) - set(signature.parameters)
        if unknown:
            raise TypeError(f"{func.__qualname__} has no parameter(s) {sorted(unknown)}")

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            digest = ""
            if fingerprint_fields:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                digest = fingerprint({name: bound.arguments[name] for name in fingerprint_fields})

            trace = {
                "trace_type": TRACE_EVENT,
                "engine_name": engine_name,
                "engine_version": engine_version,
                "input_fingerprint": digest,
                "function": func.__qualname__,
            }
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                trace.update(
                    outcome="error",
                    error_type=type(exc).__name__,
                    duration_ms=round((time.perf_counter() - started) * 1000, 3),
                )
                logger.warning(TRACE_EVENT, extra=trace)
                raise

            trace.update(
                outcome=_outcome(result),
                duration_ms=round((time.perf_counter() - started) * 1000, 3),
            )
            logger.info(TRACE_EVENT, extra=trace)
            return result

        wrapper.engine_name = engine_name  # type: ignore[attr-defined]
        wrapper.engine_version = engine_version  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
