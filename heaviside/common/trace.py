from __future__ import annotations

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Opaque identifier for peers and other bridge-side records."""
    return uuid.uuid4().hex


def new_trace_id() -> str:
    """Generate trace_id (same format as IDs)."""
    return new_id()


def utc_now_iso() -> str:
    """返回 UTC 时间的 ISO-8601 字符串（带 Z）。"""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
