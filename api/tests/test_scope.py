import pytest
from fastapi import HTTPException

from bugflow.utils.scope import ALL_PROJECTS, SingleProject, parse_project_scope


@pytest.mark.parametrize("raw", [None, "", "null", "undefined", "all", " NULL "])
def test_missing_or_sentinel_values_mean_all_projects(raw):
    assert parse_project_scope(raw) == ALL_PROJECTS


def test_numeric_value_is_single_project():
    assert parse_project_scope("17") == SingleProject(17)


@pytest.mark.parametrize("raw", ["abc", "1.5", "-3", "0"])
def test_invalid_values_are_rejected(raw):
    with pytest.raises(HTTPException) as exc_info:
        parse_project_scope(raw)
    assert exc_info.value.status_code == 400
