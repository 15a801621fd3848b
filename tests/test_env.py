# Tests for env:// secret resolution
import pytest

from uac.errors import InvalidSecretReferenceError, MissingSecretError
from uac.models import McpServerSpec
from uac.utils.env import (
    find_secret_references,
    is_env_reference,
    make_env_reference,
    resolve_server_secrets,
)


def test_is_env_reference():
    """Test only the exact prefix form is a reference."""
    assert is_env_reference("env://TOKEN")
    assert not is_env_reference("Bearer env://TOKEN")
    assert not is_env_reference("${TOKEN}")
    assert not is_env_reference(None)
    assert make_env_reference("X") == "env://X"


def test_strict_resolves_headers(monkeypatch):
    """Test a header reference is replaced with the variable value."""
    monkeypatch.setenv("API_TOKEN", "Bearer abc")
    server = McpServerSpec(transport="http", url="https://x", headers={"Authorization": "env://API_TOKEN"})

    resolved = resolve_server_secrets("api", server, strict=True)

    assert resolved.headers == {"Authorization": "Bearer abc"}
    assert server.headers == {"Authorization": "env://API_TOKEN"}


def test_strict_resolves_args_and_env(monkeypatch):
    """Test references inside args and env."""
    monkeypatch.setenv("ROOT_DIR", "/data")
    monkeypatch.setenv("GH", "ghp_1")
    server = McpServerSpec(
        transport="stdio",
        command="npx",
        args=["-y", "fs", "env://ROOT_DIR"],
        env={"GITHUB_TOKEN": "env://GH"},
    )

    resolved = resolve_server_secrets("fs", server, strict=True)

    assert resolved.args == ["-y", "fs", "/data"]
    assert resolved.env == {"GITHUB_TOKEN": "ghp_1"}


def test_strict_missing_reports_field_path(monkeypatch):
    """Test a missing variable names the key and the dotted path."""
    monkeypatch.delenv("API_TOKEN", raising=False)
    server = McpServerSpec(transport="http", url="https://x", headers={"Authorization": "env://API_TOKEN"})

    with pytest.raises(MissingSecretError) as exc_info:
        resolve_server_secrets("api", server, strict=True)

    assert exc_info.value.key == "API_TOKEN"
    assert exc_info.value.field_path == "mcp.servers.api.headers.Authorization"


def test_strict_missing_in_args_uses_index(monkeypatch):
    """Test list elements appear as [index] in the field path."""
    monkeypatch.delenv("NOPE", raising=False)
    server = McpServerSpec(transport="stdio", command="npx", args=["a", "b", "env://NOPE"])

    with pytest.raises(MissingSecretError) as exc_info:
        resolve_server_secrets("fs", server, strict=True)

    assert exc_info.value.field_path == "mcp.servers.fs.args[2]"


def test_non_strict_keeps_reference(monkeypatch):
    """Test previews keep unresolved references verbatim."""
    monkeypatch.delenv("API_TOKEN", raising=False)
    server = McpServerSpec(transport="http", url="https://x", headers={"Authorization": "env://API_TOKEN"})

    resolved = resolve_server_secrets("api", server, strict=False)

    assert resolved.headers == {"Authorization": "env://API_TOKEN"}


def test_non_strict_is_idempotent(monkeypatch):
    """Test resolving twice gives the same result as once."""
    monkeypatch.setenv("SET_VAR", "value")
    monkeypatch.delenv("UNSET_VAR", raising=False)
    server = McpServerSpec(
        transport="stdio",
        command="npx",
        env={"A": "env://SET_VAR", "B": "env://UNSET_VAR", "C": "literal"},
    )

    once = resolve_server_secrets("x", server)
    twice = resolve_server_secrets("x", once)

    assert once == twice
    assert once.env == {"A": "value", "B": "env://UNSET_VAR", "C": "literal"}


@pytest.mark.parametrize("strict", [True, False])
def test_empty_key_is_invalid(strict):
    """Test a bare env:// is rejected in both modes."""
    server = McpServerSpec(transport="stdio", command="npx", env={"TOKEN": "env://"})

    with pytest.raises(InvalidSecretReferenceError, match="mcp.servers.s.env.TOKEN"):
        resolve_server_secrets("s", server, strict=strict)


def test_enabled_in_survives_resolution(monkeypatch):
    """Test per-agent overrides are not lost by resolution."""
    server = McpServerSpec(transport="stdio", command="npx", enabled_in={"codex": False})
    assert resolve_server_secrets("s", server).enabled_in == {"codex": False}


def test_find_secret_references():
    """Test every reference is listed with its path."""
    server = McpServerSpec(
        transport="stdio",
        command="npx",
        args=["env://ARG_KEY"],
        env={"TOKEN": "env://TOKEN_KEY", "PLAIN": "x"},
    )

    refs = find_secret_references("s", server)

    assert ("mcp.servers.s.args[0]", "ARG_KEY") in refs
    assert ("mcp.servers.s.env.TOKEN", "TOKEN_KEY") in refs
    assert len(refs) == 2
