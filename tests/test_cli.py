import io
import json

from bridge_guard.cli import main
from bridge_guard.auth import TokenAuthority


def test_token_command(token_dir, capsys):
    assert main(["--token-dir", str(token_dir), "token"]) == 0
    out = capsys.readouterr().out
    auth = TokenAuthority(token_dir)
    assert f"Token: {auth.token}" in out
    assert str(auth.token_file) in out


def test_check_prompt_ok(capsys):
    assert main(["check-prompt", "Analyze AAPL"]) == 0
    assert "<user_request>\nAnalyze AAPL\n</user_request>" in capsys.readouterr().out


def test_check_prompt_blocked(capsys):
    assert main(["check-prompt", "$(rm -rf /)"]) == 1
    assert "shell command patterns" in capsys.readouterr().err


def test_sanitize_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("token ghp_" + "a" * 36))
    assert main(["sanitize"]) == 0
    assert capsys.readouterr().out == "token [REDACTED:TOKEN]"


def test_encrypt_then_decrypt(token_dir, tmp_path, capsys):
    assert main(["--token-dir", str(token_dir), "encrypt", "分析 TSLA"]) == 0
    envelope = json.loads(capsys.readouterr().out)

    env_file = tmp_path / "env.json"
    env_file.write_text(json.dumps(envelope), encoding="utf-8")
    assert main(["--token-dir", str(token_dir), "decrypt", str(env_file)]) == 0
    assert capsys.readouterr().out.strip() == "分析 TSLA"


def test_decrypt_tampered_fails(token_dir, tmp_path, capsys):
    env_file = tmp_path / "env.json"
    env_file.write_text(json.dumps({"iv": "AAAAAAAAAAAAAAAA", "ciphertext": "AAAAAAAAAAAAAAAAAAAAAA=="}), encoding="utf-8")
    assert main(["--token-dir", str(token_dir), "decrypt", str(env_file)]) == 1
    assert "BRG_E_INTEGRITY" in capsys.readouterr().err


def test_config_command(monkeypatch, capsys):
    monkeypatch.setenv("BRIDGE_RATE_CAPACITY", "9")
    assert main(["config"]) == 0
    assert json.loads(capsys.readouterr().out)["rate_capacity"] == 9


def test_no_command_prints_help(capsys):
    assert main([]) == 1
