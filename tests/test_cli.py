"""Tests for CLI plumbing, config loading, errors and output helpers."""

import json
from decimal import Decimal

import pytest
from rich.console import Console

from balance_checker.__main__ import main
from balance_checker.audit_log import AuditLog
from balance_checker.config import DEFAULT_BASE_URL, Settings
from balance_checker.errors import ConfigError, EmptyInputError, friendly_error, wrap_main
from balance_checker.models import CredentialRecord
from balance_checker.classifier import classify
from balance_checker.output import export_tokens, render_buckets, write_json
from balance_checker.security import check_output_permissions, redact_key

_ENV_KEYS = ("SILICONFLOW_BASE_URL", "CHECKER_HOST", "CHECKER_PORT",
             "CHECKER_TIMEOUT", "CHECKER_PROBE", "CHECKER_AUDIT_LOG")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _buckets():
    return classify([
        CredentialRecord(token="sk-aaaa1111", is_valid=True, balance=Decimal("5")),
        CredentialRecord(token="sk-bbbb2222", is_valid=True, balance=Decimal("0.1")),
        CredentialRecord(token="sk-cccc3333", is_valid=False, message="[bold]invalid token", status=401),
    ], Decimal("0.5"), duplicates=["sk-aaaa1111"])


class TestSettings:
    def test_defaults(self):
        s = Settings.load()
        assert s.base_url == DEFAULT_BASE_URL
        assert s.port == 8000
        assert s.probe is False
        assert s.audit_log is None

    def test_env_file_then_environment(self, tmp_path, monkeypatch):
        env = tmp_path / ".env"
        env.write_text("CHECKER_PORT=9000\nCHECKER_PROBE=true\nSILICONFLOW_BASE_URL=https://x.test/\n")
        monkeypatch.setenv("CHECKER_PORT", "9100")
        s = Settings.load(env)
        assert s.port == 9100
        assert s.probe is True
        assert s.base_url == "https://x.test"

    @pytest.mark.parametrize("key,value", [
        ("CHECKER_PORT", "eighty"), ("CHECKER_PORT", "70000"),
        ("CHECKER_TIMEOUT", "soon"), ("CHECKER_TIMEOUT", "0"),
    ])
    def test_bad_values(self, key, value):
        with pytest.raises(ConfigError):
            Settings.from_mapping({key: value})

    def test_missing_env_file(self, tmp_path):
        with pytest.raises(ConfigError):
            Settings.load(tmp_path / "nope.env")

    def test_override_skips_none(self):
        s = Settings().override(port=None, timeout=5.0)
        assert s.port == 8000
        assert s.timeout == 5.0


class TestMain:
    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert "balance_checker" in capsys.readouterr().out

    def test_empty_input_raises(self, tmp_path):
        f = tmp_path / "empty.txt"
        f.write_text(" \n,\n")
        with pytest.raises(EmptyInputError):
            main(["--tokens", str(f)])

    def test_empty_input_exit_code(self):
        assert wrap_main(lambda: main([" , "]), console=Console(quiet=True)) == 2


class TestErrors:
    def test_friendly_error_known(self):
        text = friendly_error(EmptyInputError(), "checking tokens")
        assert "No tokens were found" in text
        assert "(while checking tokens)" in text

    def test_friendly_error_walks_mro(self):
        text = friendly_error(FileNotFoundError("tokens.txt"))
        assert "couldn't find the token file" in text

    def test_wrap_main_codes(self):
        quiet = Console(quiet=True)

        def boom():
            raise RuntimeError("x")

        def interrupted():
            raise KeyboardInterrupt

        assert wrap_main(lambda: 0, console=quiet) == 0
        assert wrap_main(boom, console=quiet) == 1
        assert wrap_main(interrupted, console=quiet) == 130


class TestOutput:
    def test_render_lists_every_bucket(self):
        console = Console(record=True, width=200)
        render_buckets(_buckets(), console)
        text = console.export_text()
        for token in ("sk-aaaa1111", "sk-bbbb2222", "sk-cccc3333"):
            assert token in text
        assert "[bold]invalid token" in text
        assert "1 valid" in text

    def test_export_separators(self):
        b = _buckets()
        assert export_tokens(b, "valid", "newline") == "sk-aaaa1111"
        assert export_tokens(b, "zero_balance", "comma") == "sk-bbbb2222"

    def test_write_json(self, tmp_path):
        tmp_path.chmod(0o700)
        out = tmp_path / "results.json"
        assert write_json(_buckets(), out, console=Console(quiet=True))
        data = json.loads(out.read_text())
        assert data["counts"]["invalid"] == 1
        assert oct(out.stat().st_mode & 0o777) == "0o600"

    def test_write_json_refuses_symlink(self, tmp_path):
        target = tmp_path / "real.json"
        target.write_text("")
        link = tmp_path / "link.json"
        link.symlink_to(target)
        assert not write_json(_buckets(), link, force_insecure=True, console=Console(quiet=True))


class TestSecurity:
    def test_redaction(self):
        key = "sk-abcdefghijkl"
        assert redact_key(key) == "sk-a...ijkl"
        assert redact_key("short") == "*****"

    def test_world_readable_parent(self, tmp_path):
        tmp_path.chmod(0o755)
        target = tmp_path / "out.json"
        assert not check_output_permissions(target)
        assert check_output_permissions(target, force=True)


class TestAuditLog:
    def test_rotation(self, tmp_path, monkeypatch):
        path = tmp_path / "audit.log"
        monkeypatch.setattr(AuditLog, "MAX_SIZE", 10)
        path.write_text("x" * 50)
        alog = AuditLog(path)
        alog.log("check", token="sk-abcdefghijkl", bucket="valid")
        alog.flush()
        assert path.with_suffix(".log.1").exists()
        entry = json.loads(path.read_text())
        assert entry["token"] == "sk-a...ijkl"

    def test_refuses_symlink(self, tmp_path):
        real = tmp_path / "real.log"
        real.write_text("")
        link = tmp_path / "audit.log"
        link.symlink_to(real)
        alog = AuditLog(link)
        alog.log("check_start")
        alog.flush()
        assert real.read_text() == ""
