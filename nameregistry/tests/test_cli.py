from __future__ import annotations

import json
from typing import Any, Dict

import pytest
from typer.testing import CliRunner

from nameregistry.cli import app

runner = CliRunner()


@pytest.fixture
def cli(tmp_path, owner):
    """Run a command against one on-disk store; returns (exit_code, parsed JSON)."""
    base = ["--db", f"sqlite:///{tmp_path / 'cli.db'}", "--owner", owner.address, "--log-level", "WARNING"]

    def run(*args: str):
        r = runner.invoke(app, [*base, *args])
        out: Dict[str, Any] = json.loads(r.stdout) if r.stdout.strip() else {}
        return r.exit_code, out

    return run


def test_application_flow(cli, owner, alice):
    code, out = cli("set-fee", "application", "10", "--caller", owner.address)
    assert code == 0 and out == {"ok": True, "kind": "application", "fee": 10}

    code, out = cli("signup-app", "hydro", "--caller", owner.address, "--official")
    assert code == 0
    assert out["application"] == {"name": "hydro", "official": True}

    code, out = cli("signup-app", "hydro", "--caller", alice.address, "--payment", "10")
    assert code == 0
    assert out["application"] == {"name": "hydro", "official": False}

    code, out = cli("app-taken", "hydro")
    assert (code, out) == (0, {"name": "hydro", "official": True, "unofficial": True})

    code, out = cli("delete-app", "hydro", "--caller", owner.address, "--unofficial")
    assert code == 0
    code, out = cli("app-taken", "hydro")
    assert out["unofficial"] is False


def test_user_flow_with_signed_deletion(cli, owner, alice):
    code, out = cli("signup-user", "alice", "--caller", owner.address, "--official", "--address", alice.address)
    assert code == 0
    assert out["user"] == {"name": "alice", "address": alice.address, "official": True}

    code, out = cli("user", "alice")
    assert (code, out) == (0, {"name": "alice", "address": alice.address, "official": True})

    code, proof = cli("sign-delete", "--key", "0x" + alice.key.hex())
    assert code == 0
    assert proof["address"] == alice.address

    code, out = cli("delete-user-for", "alice", "--caller", owner.address, "--signature", proof["signature"])
    assert (code, out) == (0, {"ok": True, "deleted": "alice"})

    code, out = cli("user", "alice")
    assert code == 1
    assert out["error"]["reason"] == "name_not_found"


def test_self_service_user(cli, alice, mallory):
    code, _ = cli("signup-user", "alice", "--caller", alice.address)
    assert code == 0

    code, out = cli("delete-user", "alice", "--caller", mallory.address)
    assert code == 1
    assert out["error"]["code"] == 2000

    code, _ = cli("delete-user", "alice", "--caller", alice.address)
    assert code == 0


def test_errors_are_json(cli, owner, mallory, alice):
    code, out = cli("signup-app", "hydro", "--caller", mallory.address, "--official")
    assert code == 1
    assert out["ok"] is False
    assert out["error"]["reason"] == "unauthorized"

    code, out = cli("signup-app", "Hydro", "--caller", alice.address)
    assert code == 1 and out["error"]["reason"] == "invalid_name"

    code, out = cli("set-fee", "user", "5", "--caller", owner.address)
    assert code == 0
    code, out = cli("signup-user", "alice", "--caller", alice.address, "--payment", "4")
    assert code == 1
    assert out["error"]["context"] == {"name": "alice", "payment": 4, "fee": 5}

    code, out = cli("fees")
    assert out == {"user": 5, "application": 0}


def test_argument_errors(cli, owner):
    code, out = cli("signup-user", "alice", "--caller", "not-an-address")
    assert code == 1 and out["error"]["reason"] == "invalid_argument"

    code, out = cli("signup-user", "alice", "--caller", owner.address, "--official")
    assert code == 1 and "--address" in out["error"]["message"]

    code, out = cli("delete-app", "hydro", "--caller", owner.address)
    assert code == 1 and out["error"]["reason"] == "invalid_argument"

    code, out = cli("set-fee", "gas", "1", "--caller", owner.address)
    assert code == 1

    code, out = cli("delete-user-for", "alice", "--caller", owner.address, "--signature", "0x1234")
    assert code == 1 and out["error"]["reason"] == "invalid_argument"


def test_invalid_config_exits_with_json():
    r = runner.invoke(app, ["--owner", "0xnope", "fees"])
    assert r.exit_code == 1
    assert json.loads(r.stdout)["error"]["code"] == "CORE/CONFIG"
