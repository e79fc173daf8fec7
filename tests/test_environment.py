from bridge_guard.environment import ALLOWED_ENV_KEYS, sanitize_env


def test_only_allowlisted_keys_survive():
    env = {
        "PATH": "/usr/bin",
        "HOME": "/home/alice",
        "OPENAI_API_KEY": "sk-xxxxxxxxxxxxxxxxxxxxxxxx",
        "AWS_SECRET_ACCESS_KEY": "abc",
        "LANG": "en_US.UTF-8",
    }
    clean = sanitize_env(env)
    assert clean == {"PATH": "/usr/bin", "HOME": "/home/alice", "LANG": "en_US.UTF-8"}


def test_missing_keys_are_not_invented():
    assert sanitize_env({}) == {}


def test_allowlist_contents():
    assert ALLOWED_ENV_KEYS == {"PATH", "HOME", "LANG", "TERM", "SHELL", "USER", "TMPDIR"}


def test_sanitize_env_is_a_top_level_export():
    import bridge_guard

    assert bridge_guard.sanitize_env is sanitize_env
    assert "sanitize_env" in dir(bridge_guard)
