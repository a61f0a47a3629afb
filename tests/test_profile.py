from __future__ import annotations

from datetime import datetime

import pytest

from drink_tally.errors import ValidationError
from drink_tally.profile import rename
from drink_tally.quests import new_user_record

NOW = datetime(2024, 5, 1, 18, 0)


def test_rename_trims() -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    assert rename(record, "  Party Pete  ").display_name == "Party Pete"


@pytest.mark.parametrize("name", ["", "   ", "\t\n", None])
def test_rename_rejects_blank(name) -> None:
    record = new_user_record("u1", "2024-05-01", NOW)
    with pytest.raises(ValidationError):
        rename(record, name)
    assert record.display_name == "Anonymous User u1"
