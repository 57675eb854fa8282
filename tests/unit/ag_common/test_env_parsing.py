from pathlib import Path

import pytest

from ag_common.config import parse_bool_env, parse_float_env, parse_int_env, parse_path_env

pytestmark = pytest.mark.unit_common


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, None), ("1", True), ("Yes", True), (" on ", True), ("0", False), ("", False)],
)
def test_parse_bool_env(raw, expected):
    assert parse_bool_env(raw) is expected


def test_parse_numbers_ignore_garbage():
    assert parse_int_env("4096") == 4096
    assert parse_int_env("many") is None
    assert parse_int_env(None) is None
    assert parse_float_env("2.5") == 2.5
    assert parse_float_env("soon") is None


def test_parse_path_env_treats_blank_as_unset():
    assert parse_path_env("") is None
    assert parse_path_env("   ") is None
    assert parse_path_env(" /data/fixtures ") == Path("/data/fixtures")
