import re
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import AfterValidator
from pydantic.alias_generators import to_camel
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

_ID_RE = re.compile(r"^[0-9a-f]{24}$")


# ---------------------------
# Helper: identifiers
# ---------------------------
def new_id() -> str:
    """Generate a 24-char lowercase hex identifier"""
    return uuid.uuid4().hex[:24]


def is_valid_id(value) -> bool:
    return isinstance(value, str) and bool(_ID_RE.match(value))


def strip_required(v: Optional[str], label: str) -> Optional[str]:
    """Trim a text field that may be omitted but never blank."""
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError(f"{label} must not be blank")
    return v


# ---------------------------
# Helper: timestamps (always timezone-aware UTC)
# ---------------------------
def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to aware UTC; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_field(**kwargs: Any) -> Any:
    """Table column holding a timezone-aware datetime."""
    return Field(sa_type=DateTime(timezone=True), **kwargs)


# schema fields: whatever the driver hands back is normalised to aware UTC
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


# ---------------------------
# Config for API schemas: camelCase on the wire, snake_case in Python
# ---------------------------
class ConfiguredBase(SQLModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
        "arbitrary_types_allowed": True,
    }
