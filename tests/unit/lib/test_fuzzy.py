from datetime import date, datetime

import pytest

from zenith.core.errors import AmbiguousError
from zenith.core.models import Task
from zenith.lib.fuzzy import find_in_pool, find_in_pool_exact


def _task(task_id: str, name: str) -> Task:
    return Task(id=task_id, name=name, date=date(2024, 1, 10), created_at=datetime(2024, 1, 10))


POOL = [
    _task("aaaa1111-0000", "write report"),
    _task("aaaa2222-0000", "read book"),
    _task("bbbb3333-0000", "review pull request"),
]


def test_matches_id_prefix():
    assert find_in_pool("bbbb", POOL).name == "review pull request"


def test_full_id_matches():
    assert find_in_pool("aaaa2222-0000", POOL).name == "read book"


def test_shared_id_prefix_is_ambiguous():
    with pytest.raises(AmbiguousError):
        find_in_pool("aaaa", POOL)


def test_exact_name_beats_substring():
    assert find_in_pool("READ BOOK", POOL).id == "aaaa2222-0000"


def test_unique_substring():
    assert find_in_pool("pull", POOL).id == "bbbb3333-0000"


def test_substring_across_names_is_ambiguous():
    with pytest.raises(AmbiguousError):
        find_in_pool("re", POOL)


def test_series_instances_share_a_name():
    series = [_task(f"cccc{i}-0000", "stretch") for i in range(3)]
    assert find_in_pool("stre", series).id == "cccc0-0000"


def test_fuzzy_match_only_in_loose_mode():
    assert find_in_pool("wrte report", POOL).id == "aaaa1111-0000"
    assert find_in_pool_exact("wrte report", POOL) is None


def test_empty_inputs():
    assert find_in_pool("", POOL) is None
    assert find_in_pool("x", []) is None
