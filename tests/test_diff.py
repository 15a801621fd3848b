# ABOUTME: Tests for the structural diff engine
# ABOUTME: Covers key-order independence, list-order significance and the diff laws
from uac.models import ServerDiff, SkillMaterialized
from uac.utils.diff import canonicalize, diff_maps, has_diff, stable_dumps


def test_canonicalize_sorts_nested_keys():
    """Test mapping keys are sorted at every depth."""
    value = {"b": {"y": 1, "x": 2}, "a": [{"d": 1, "c": 2}]}
    assert list(canonicalize(value)) == ["a", "b"]
    assert list(canonicalize(value)["b"]) == ["x", "y"]
    assert list(canonicalize(value)["a"][0]) == ["c", "d"]


def test_stable_dumps_key_order_independent():
    """Test serialization ignores key order."""
    assert stable_dumps({"a": 1, "b": 2}) == stable_dumps({"b": 2, "a": 1})


def test_stable_dumps_list_order_significant():
    """Test args order changes the serialization."""
    assert stable_dumps({"args": ["a", "b"]}) != stable_dumps({"args": ["b", "a"]})


def test_identical_maps_have_no_diff():
    """Test diff(x, x) is empty."""
    servers = {"fs": {"command": "npx", "args": ["-y"]}, "api": {"url": "https://x"}}
    diff = diff_maps(servers, servers)

    assert diff == ServerDiff(unchanged=2)
    assert not has_diff(diff)


def test_added_removed_changed():
    """Test each category and sorted output."""
    current = {"keep": {"a": 1}, "edit": {"a": 1}, "zold": {}, "gone": {}}
    desired = {"keep": {"a": 1}, "edit": {"a": 2}, "new": {}, "another": {}}

    diff = diff_maps(current, desired)

    assert diff.added == ["another", "new"]
    assert diff.removed == ["gone", "zold"]
    assert diff.changed == ["edit"]
    assert diff.unchanged == 1


def test_empty_to_desired_is_all_added():
    """Test diff({}, D) adds every id."""
    diff = diff_maps({}, {"b": {}, "a": {}})
    assert diff.added == ["a", "b"]
    assert diff.removed == []


def test_current_to_empty_is_all_removed():
    """Test diff(C, {}) removes every id."""
    diff = diff_maps({"b": {}, "a": {}}, {})
    assert diff.removed == ["a", "b"]
    assert diff.added == []


def test_reordered_keys_are_unchanged():
    """Test a native record with reordered keys is not a change."""
    current = {"fs": {"args": ["-y"], "command": "npx"}}
    desired = {"fs": {"command": "npx", "args": ["-y"]}}
    assert diff_maps(current, desired).unchanged == 1


def test_works_on_materialized_skills():
    """Test the diff is generic over dataclass values."""
    current = {"s": SkillMaterialized(file_name="s.md", content="old")}
    desired = {"s": SkillMaterialized(file_name="s.md", content="new")}
    assert diff_maps(current, desired).changed == ["s"]
