# routers/common.py
from typing import Any, Dict, List


def ok(data: Any = None, **extra: Any) -> Dict[str, Any]:
    """Success envelope: {"success": true, "data": ..., **extra}."""
    out: Dict[str, Any] = {"success": True}
    out.update(extra)
    out["data"] = data if data is not None else {}
    return out


def listing(items: List[Any], **extra: Any) -> Dict[str, Any]:
    return ok(items, count=len(items), **extra)
