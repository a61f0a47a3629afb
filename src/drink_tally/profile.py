from __future__ import annotations

from dataclasses import replace

from drink_tally.errors import ValidationError
from drink_tally.models import UserRecord


def rename(record: UserRecord, new_name: str | None) -> UserRecord:
    name = (new_name or "").strip()
    if not name:
        raise ValidationError("Display name cannot be empty")
    return replace(record, display_name=name)
