from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class HeavisideError(Exception):
    """误用错误：接收器重复挂载、无法封装的频道键等。"""


@dataclass
class ApiError(Exception):
    """统一的业务错误，用于转换成 HTTP 错误响应结构。"""
    code: str
    message: str
    http_status: int = 400
    data: Optional[dict[str, Any]] = None
