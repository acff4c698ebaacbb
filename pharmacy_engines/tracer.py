"""
pharmacy_engines.tracer -- invocation tracer emitting PHARMACY_ENGINE_TRACE.

Responsibility:
    ``@traced_engine`` wraps a pure engine call with one structured log
    record: engine name, engine version, a fingerprint of selected inputs,
    and the duration.  Engines stay free of I/O; the decorator only reads
    the call's arguments and logs.

Invariants enforced:
    - Inputs are matched to parameter names through the function
      signature, so ``compute_tax(base, regime)`` and
      ``compute_tax(taxable_amount=base, regime=regime)`` fingerprint the
      same.  Defaults are applied before fingerprinting.
    - The fingerprint is deterministic: dict keys are sorted, Decimals are
      normalized, tax regimes and other dataclasses are rendered field by
      field, and the digest is a 16-character SHA-256 prefix.
    - Iterators are never consumed; only materialized sequences are
      rendered element by element.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("pharmacy_engine.engines.tracer")


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return str(value.normalize()) if value.is_finite() else str(value)
    if isinstance(value, (bool, int, str)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}:{_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}({body})"
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return f"<{type(value).__name__}>"


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: Mapping[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the named arguments (missing ones are "null")."""
    canonical = "|".join(
        f"{name}={_canonicalize(arguments.get(name))}" for name in fingerprint_fields
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits PHARMACY_ENGINE_TRACE after each successful call."""

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)
        unknown = set(fingerprint_fields) - set(signature.parameters)
        if unknown:
            raise TypeError(
                f"{func.__qualname__} has no parameters named {sorted(unknown)}"
            )

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind(*args, **kwargs)
                bound.apply_defaults()
                fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.debug(
                "PHARMACY_ENGINE_TRACE",
                extra={
                    "trace_type": "PHARMACY_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
