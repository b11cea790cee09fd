import json

import pytest

from core.errors import ConfigError
from nameregistry.config import FeeDefaults, NameRules, RegistryConfig, load_config
from nameregistry.engine import RegistryEngine
from nameregistry.events import FanoutSink, JsonlSink


def test_defaults():
    cfg = load_config()
    assert cfg == RegistryConfig()
    assert cfg.db_uri == "memory://"
    assert cfg.fees == FeeDefaults(0, 0)
    assert cfg.names == NameRules(100)


def test_yaml_file_with_sections(tmp_path, owner):
    path = tmp_path / "namereg.yaml"
    path.write_text(
        f"""
db_uri: sqlite:///{tmp_path}/reg.db
owner: "{owner.address.lower()}"
fees:
  user_fee: 5
  application_fee: 7
names:
  max_name_bytes: 32
""",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.owner == owner.address.lower()
    assert cfg.fees == FeeDefaults(user_fee=5, application_fee=7)
    assert cfg.names.max_name_bytes == 32


def test_env_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "namereg.json"
    path.write_text(json.dumps({"user_fee": 5, "log_level": "DEBUG"}), encoding="utf-8")
    monkeypatch.setenv("NAMEREG_CONFIG_FILE", str(path))
    monkeypatch.setenv("NAMEREG_USER_FEE", "9")

    cfg = load_config()
    assert cfg.fees.user_fee == 9
    assert cfg.log_level == "DEBUG"


def test_explicit_overrides_win_and_none_is_ignored(monkeypatch):
    monkeypatch.setenv("NAMEREG_DB_URI", "sqlite:///from-env.db")
    cfg = load_config(overrides={"db_uri": "memory://", "owner": None, "application_fee": 3})
    assert cfg.db_uri == "memory://"
    assert cfg.owner is None
    assert cfg.fees.application_fee == 3


@pytest.mark.parametrize(
    "overrides",
    [
        {"user_fee": -1},
        {"user_fee": 2**256},
        {"application_fee": True},
        {"user_fee": "5"},
        {"max_name_bytes": 0},
        {"max_name_bytes": "100"},
        {"fees": 5},
        {"owner": "0x1234"},
        {"log_format": "xml"},
        {"surprise": 1},
    ],
)
def test_invalid_config(overrides):
    with pytest.raises(ConfigError):
        load_config(overrides=overrides)


def test_bad_env_integer(monkeypatch):
    monkeypatch.setenv("NAMEREG_MAX_NAME_BYTES", "lots")
    with pytest.raises(ConfigError):
        load_config()


def test_yaml_string_values_are_config_errors(tmp_path):
    path = tmp_path / "quoted.yaml"
    path.write_text('names:\n  max_name_bytes: "100"\n', encoding="utf-8")
    with pytest.raises(ConfigError, match="max_name_bytes"):
        load_config(path)

    path.write_text(f"fees:\n  user_fee: {2**256}\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="user_fee"):
        load_config(path)


def test_missing_or_unparseable_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(bad)
    listy = tmp_path / "list.yaml"
    listy.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(listy)


def test_engine_from_config(tmp_path, owner, alice):
    events = tmp_path / "events.jsonl"
    cfg = load_config(
        overrides={
            "db_uri": f"sqlite:///{tmp_path / 'reg.db'}",
            "owner": owner.address,
            "user_fee": 4,
            "max_name_bytes": 16,
            "events_path": str(events),
        }
    )
    eng = RegistryEngine.from_config(cfg)
    try:
        assert eng.unofficial_user_signup_fee == 4
        assert eng.max_name_bytes == 16
        assert isinstance(eng.sink, FanoutSink)
        eng.official_application_signup(owner.address, "hydro")
        eng.unofficial_user_signup(alice.address, "alice", 4)
        assert eng.custody.balance == 4
    finally:
        eng.close()

    assert [e.kind for e in JsonlSink(events).read()] == ["ApplicationSignUp", "UserSignUp"]
