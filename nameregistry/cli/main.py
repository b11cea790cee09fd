from __future__ import annotations

"""
nameregistry.cli.main
---------------------

Operator and user commands over a persistent registry store.

Every command opens the store named by `--db` (or the configured
`db_uri`), runs exactly one engine operation and prints a JSON result on
stdout. Registry and configuration errors print their JSON form and exit
with code 1.

Examples
--------
# Operator signs up an official application
namereg --db sqlite:///registry.db --owner 0xOWNER signup-app hydro \
  --caller 0xOWNER --official

# Anyone claims an unofficial user name by paying the current fee
namereg --db sqlite:///registry.db signup-user alice --caller 0xALICE --payment 10

# Produce a deletion proof and hand it to the operator
namereg sign-delete --key 0x<32-byte hex>
namereg --db sqlite:///registry.db --owner 0xOWNER delete-user-for alice \
  --caller 0xOWNER --signature 0x<65-byte hex>
"""

import json
from typing import Any, Dict, Optional

import typer
from eth_utils import ValidationError as EthValidationError

from core import logging as clog
from core.errors import NameregError
from core.utils.bytes import from_hex

from ..config import load_config
from ..engine import RegistryEngine
from ..errors import RegistryError
from ..signatures import Signature, address_of, sign_delete

app = typer.Typer(
    name="namereg",
    add_completion=False,
    no_args_is_help=True,
    help="Name registry for users and applications.",
)

CALLER = typer.Option(..., "--caller", help="Address issuing the call.")


# -------------------- utils --------------------


def _emit(obj: Dict[str, Any]) -> None:
    typer.echo(json.dumps(obj, indent=2, sort_keys=True))


def _fail(err: Dict[str, Any]) -> None:
    _emit({"ok": False, "error": err})
    raise typer.Exit(1)


def _engine(ctx: typer.Context) -> RegistryEngine:
    return ctx.obj["engine"]


def _run(fn, *args: Any, **kwargs: Any) -> Any:
    """Invoke an engine call, mapping failures to a JSON error and exit 1."""
    try:
        return fn(*args, **kwargs)
    except (RegistryError, NameregError) as e:
        _fail(e.to_dict())
    except (TypeError, ValueError, EthValidationError) as e:
        _fail({"reason": "invalid_argument", "message": str(e)})


# -------------------- root --------------------


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", help="JSON/YAML config file."),
    db: Optional[str] = typer.Option(None, "--db", help="Store URI (sqlite:///path.db or memory://)."),
    owner: Optional[str] = typer.Option(None, "--owner", help="Registry operator address."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    try:
        cfg = load_config(config, {"db_uri": db, "owner": owner, "log_level": log_level})
    except NameregError as e:
        _fail(e.to_dict())
    json_logs = None if cfg.log_format is None else cfg.log_format == "json"
    clog.configure(json=json_logs, level=cfg.log_level)

    # sign-delete is pure key material; no store needed
    if ctx.invoked_subcommand == "sign-delete":
        ctx.obj = {"config": cfg}
        return
    try:
        engine = RegistryEngine.from_config(cfg)
    except NameregError as e:
        _fail(e.to_dict())
    ctx.obj = {"config": cfg, "engine": engine}
    ctx.call_on_close(engine.close)


# -------------------- users --------------------


@app.command("signup-user")
def cmd_signup_user(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name to claim."),
    caller: str = CALLER,
    official: bool = typer.Option(False, "--official", help="Operator signup (requires --address)."),
    address: Optional[str] = typer.Option(None, "--address", help="Address to bind (official signups)."),
    payment: int = typer.Option(0, "--payment", help="Attached payment (unofficial signups)."),
) -> None:
    """Claim a user name (officially for an address, or for yourself by paying the fee)."""
    eng = _engine(ctx)
    if official:
        if not address:
            _fail({"reason": "invalid_argument", "message": "--address is required with --official"})
        user = _run(eng.official_user_signup, caller, name, address)
    else:
        user = _run(eng.unofficial_user_signup, caller, name, payment)
    _emit({"ok": True, "user": user.to_dict()})


@app.command("delete-user")
def cmd_delete_user(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    caller: str = CALLER,
) -> None:
    """Delete your own (unofficial) user name."""
    _run(_engine(ctx).delete_user, caller, name)
    _emit({"ok": True, "deleted": name})


@app.command("delete-user-for")
def cmd_delete_user_for(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    caller: str = CALLER,
    signature: str = typer.Option(..., "--signature", help="65-byte r||s||v hex from `sign-delete`."),
) -> None:
    """Operator deletion of a user, authorized by the user's signature."""
    sig = _run(Signature.from_hex, signature)
    _run(_engine(ctx).delete_user_for_user, caller, name, sig)
    _emit({"ok": True, "deleted": name})


@app.command("user")
def cmd_user(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    """Show the address and official flag bound to a user name."""
    address, official = _run(_engine(ctx).get_user_by_name, name)
    _emit({"name": name, "address": address, "official": official})


# -------------------- applications --------------------


@app.command("signup-app")
def cmd_signup_app(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    caller: str = CALLER,
    official: bool = typer.Option(False, "--official", help="Operator signup into the official directory."),
    payment: int = typer.Option(0, "--payment", help="Attached payment (unofficial signups)."),
) -> None:
    """Claim an application name."""
    eng = _engine(ctx)
    if official:
        app_rec = _run(eng.official_application_signup, caller, name)
    else:
        app_rec = _run(eng.unofficial_application_signup, caller, name, payment)
    _emit({"ok": True, "application": app_rec.to_dict()})


@app.command("delete-app")
def cmd_delete_app(
    ctx: typer.Context,
    name: str = typer.Argument(...),
    caller: str = CALLER,
    official: Optional[bool] = typer.Option(None, "--official/--unofficial", help="Directory to delete from."),
) -> None:
    """Operator deletion of an application name."""
    if official is None:
        _fail({"reason": "invalid_argument", "message": "pass --official or --unofficial"})
    _run(_engine(ctx).delete_application, caller, name, official)
    _emit({"ok": True, "deleted": name, "official": official})


@app.command("app-taken")
def cmd_app_taken(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    official, unofficial = _run(_engine(ctx).application_name_taken, name)
    _emit({"name": name, "official": official, "unofficial": unofficial})


# -------------------- fees --------------------


@app.command("set-fee")
def cmd_set_fee(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="user | application"),
    value: int = typer.Argument(..., help="New fee in base units."),
    caller: str = CALLER,
) -> None:
    """Operator update of an unofficial signup fee."""
    eng = _engine(ctx)
    if kind == "user":
        _run(eng.set_unofficial_user_signup_fee, caller, value)
    elif kind == "application":
        _run(eng.set_unofficial_application_signup_fee, caller, value)
    else:
        _fail({"reason": "invalid_argument", "message": f"unknown fee kind {kind!r}"})
    _emit({"ok": True, "kind": kind, "fee": value})


@app.command("fees")
def cmd_fees(ctx: typer.Context) -> None:
    eng = _engine(ctx)
    _emit(
        {
            "user": eng.unofficial_user_signup_fee,
            "application": eng.unofficial_application_signup_fee,
        }
    )


# -------------------- signatures --------------------


@app.command("sign-delete")
def cmd_sign_delete(
    key: str = typer.Option(
        ..., "--key", envvar="NAMEREG_PRIVATE_KEY", help="32-byte secp256k1 private key (hex)."
    ),
) -> None:
    """Sign the deletion digest with a private key (offline)."""
    raw = _run(from_hex, key)
    sig = _run(sign_delete, raw)
    _emit({"address": address_of(raw), "signature": sig.to_hex()})


if __name__ == "__main__":
    app()
