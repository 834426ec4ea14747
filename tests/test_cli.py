"""Tests for the credvault command line."""

import json

import pytest

from credvault.cli import build_parser, file_passphrase_prompt, main
from credvault.secrets import CredentialKeyring, OIDCTokenKeyring, SessionKeyring
from credvault.secrets.backends import BACKENDS, FileBackend, MemoryBackend

PASSPHRASE = "cli-test-passphrase"


class KeychainBackend(MemoryBackend):
    backend_type = "keychain"
    supports_access_control = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in [
        "CREDVAULT_BACKEND",
        "CREDVAULT_CONFIG",
        "CREDVAULT_FILE_DIR",
        "CREDVAULT_OP_VAULT",
        "CREDVAULT_OP_TOKEN_ENV",
        "CREDVAULT_ACCESS_CONTROL",
        "CREDVAULT_ACCESS_CONSTRAINT",
    ]:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CREDVAULT_FILE_PASSPHRASE", PASSPHRASE)


@pytest.fixture
def stores(tmp_path):
    """Two file backends, "main" and "backup", defined in a config file."""
    options = {"adapter": "file", "kdf_iterations": 1000}
    dirs = {"main": tmp_path / "main", "backup": tmp_path / "backup"}
    path = tmp_path / "backends.json"
    path.write_text(json.dumps({
        "backends": {name: dict(options, dir=str(d)) for name, d in dirs.items()}
    }))

    keyrings = {
        name: FileBackend(dict(options, dir=str(d), password=PASSPHRASE))
        for name, d in dirs.items()
    }
    return str(path), keyrings


# ── Parser ────────────────────────────────────────────────────────────


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["backends"])
        assert args.backend == "file"
        assert args.access_control == "UserPresence"
        assert args.access_constraint == ""
        assert args.debug is False

    def test_copy_requires_two_backends(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["copy", "file"])

    def test_copy_rejects_unknown_backend(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["copy", "file", "nope"])
        assert exc_info.value.code == 2

    def test_rejects_unknown_access_constraint(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--access-constraint", "Sometimes", "backends"])

    def test_backend_from_environment(self, monkeypatch):
        monkeypatch.setenv("CREDVAULT_BACKEND", "onepassword")
        assert build_parser().parse_args(["backends"]).backend == "onepassword"

    def test_invalid_backend_from_environment(self, monkeypatch):
        monkeypatch.setenv("CREDVAULT_BACKEND", "nope")
        with pytest.raises(SystemExit) as exc_info:
            main(["backends"])
        assert exc_info.value.code == 2

    def test_passphrase_from_environment(self):
        assert file_passphrase_prompt("Enter passphrase") == PASSPHRASE


# ── Global Validation ─────────────────────────────────────────────────


class TestAccessControlFlags:
    @pytest.fixture
    def keychain_config(self, tmp_path, monkeypatch):
        monkeypatch.setitem(BACKENDS, "keychain", KeychainBackend)
        path = tmp_path / "backends.json"
        path.write_text(json.dumps({"backends": {"keychain": {"adapter": "keychain"}}}))
        return str(path)

    def test_valid_input(self, keychain_config, capsys):
        code = main([
            "--config", keychain_config, "--backend", "keychain",
            "--access-control", "UserPresenceAndBiometryAnySet", "backends",
        ])
        assert code == 0
        assert "keychain (selected, access control)" in capsys.readouterr().out

    def test_default_on_other_backend(self, keychain_config):
        assert main(["--config", keychain_config, "--backend", "file", "backends"]) == 0

    @pytest.mark.parametrize(
        "value",
        [
            "UserPresenceAndInvalid",
            "AndUserPresence",
            "UserPresenceAnd",
            "userpresence",
            "UserPresence,Watch",
            "UserPresenceAndUserPresence",
            "UserPresenceAndAndWatch",
        ],
    )
    def test_invalid_blocks_startup(self, keychain_config, capsys, value):
        code = main(["--config", keychain_config, "--backend", "keychain", "--access-control", value, "backends"])
        captured = capsys.readouterr()
        assert code == 1
        assert captured.out == ""
        assert "access control" in captured.err

    def test_unsupported_backend(self, capsys):
        code = main(["--backend", "file", "--access-control", "Watch", "backends"])
        assert code == 1
        assert "not supported with the backend 'file'" in capsys.readouterr().err


# ── Commands ──────────────────────────────────────────────────────────


class TestCommands:
    def test_backends(self, stores, capsys):
        config_path, _ = stores
        assert main(["--config", config_path, "backends"]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "file (selected)",
            "onepassword",
            "main (file)",
            "backup (file)",
        ]

    def test_copy(self, stores, capsys):
        config_path, keyrings = stores
        CredentialKeyring(keyrings["main"]).set("a", b"x")
        CredentialKeyring(keyrings["main"]).set("b", b"y")
        OIDCTokenKeyring(keyrings["main"]).set("sso", b"t")

        code = main(["--config", config_path, "copy", "main", "backup"])

        assert code == 0
        assert capsys.readouterr().out.splitlines() == [
            "Copying credentials from main to backup",
            "Copied 2 credentials, 1 OIDC tokens, and 0 sessions.",
        ]
        backup = FileBackend(dict(keyrings["backup"].config))
        assert CredentialKeyring(backup).keys() == ["a", "b"]
        assert CredentialKeyring(backup).get("b") == b"y"
        assert OIDCTokenKeyring(backup).get("sso") == b"t"

    def test_copy_wrong_passphrase(self, stores, capsys, monkeypatch):
        config_path, keyrings = stores
        CredentialKeyring(keyrings["main"]).set("a", b"x")
        monkeypatch.setenv("CREDVAULT_FILE_PASSPHRASE", "wrong")

        code = main(["--config", config_path, "copy", "main", "backup"])

        assert code == 1
        err = capsys.readouterr().err
        assert "Failed to read credential 'a'" in err
        assert "wrong passphrase" in err

    def test_list(self, stores, capsys):
        config_path, keyrings = stores
        CredentialKeyring(keyrings["main"]).set("work", b"x")
        SessionKeyring(keyrings["main"]).set("work", b"s")

        assert main(["--config", config_path, "--backend", "main", "list"]) == 0
        assert capsys.readouterr().out.splitlines() == [
            "Credentials:",
            "  work",
            "OIDC tokens:",
            "  (none)",
            "Sessions:",
            "  work",
        ]

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage: credvault" in capsys.readouterr().out

    def test_commands_close_backends(self, tmp_path, monkeypatch, capsys):
        closed = []

        class ClosingBackend(MemoryBackend):
            backend_type = "closing"

            def close(self):
                closed.append(self)

        monkeypatch.setitem(BACKENDS, "closing", ClosingBackend)
        path = tmp_path / "backends.json"
        path.write_text(json.dumps({
            "backends": {"src": {"adapter": "closing"}, "dst": {"adapter": "closing"}}
        }))

        assert main(["--config", str(path), "copy", "src", "dst"]) == 0
        assert len(closed) == 2
        assert main(["--config", str(path), "--backend", "src", "list"]) == 0
        assert len(closed) == 3
