# -*- coding: utf-8 -*-
"""
nameregistry.tests.conftest
===========================

Fixtures for registry engine tests.

- Deterministic secp256k1 accounts (owner, alice, bob, mallory) derived from
  a fixed seed, so addresses and signatures are stable across runs.
- A fresh in-memory store per test, wired to an `OwnerGate` for the owner,
  an in-process `Treasury` and a `MemorySink` capturing audit events.

Usage:
    def test_claim(engine, alice, sink):
        engine.unofficial_user_signup(alice.address, "alice", 0)
        assert sink.kinds() == ["UserSignUp"]
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List

import pytest

from core.db import open_kv
from core.utils.hash import keccak256
from nameregistry.access import OwnerGate
from nameregistry.engine import RegistryEngine
from nameregistry.events import MemorySink
from nameregistry.signatures import address_of
from nameregistry.store import Directories
from nameregistry.treasury import Treasury

PROJECT_TEST_SEED = 1337


@dataclass(frozen=True)
class Account:
    label: str
    key: bytes
    address: str


def _derive_key(label: str) -> bytes:
    return keccak256(f"namereg-tests|{PROJECT_TEST_SEED}|{label}".encode("utf-8"))


def make_account(label: str) -> Account:
    key = _derive_key(label)
    return Account(label=label, key=key, address=address_of(key))


@pytest.fixture(scope="session")
def accounts() -> Dict[str, Account]:
    return {label: make_account(label) for label in ("owner", "alice", "bob", "mallory")}


@pytest.fixture
def owner(accounts) -> Account:
    return accounts["owner"]


@pytest.fixture
def alice(accounts) -> Account:
    return accounts["alice"]


@pytest.fixture
def bob(accounts) -> Account:
    return accounts["bob"]


@pytest.fixture
def mallory(accounts) -> Account:
    return accounts["mallory"]


@pytest.fixture
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture
def gate(owner) -> OwnerGate:
    return OwnerGate(owner.address)


@pytest.fixture
def treasury(gate) -> Treasury:
    return Treasury(gate)


@pytest.fixture
def make_engine(gate, treasury, sink) -> Callable[..., RegistryEngine]:
    """Factory for engines over fresh in-memory stores; all closed at teardown."""
    opened: List[RegistryEngine] = []

    def _make(**kwargs) -> RegistryEngine:
        kwargs.setdefault("sink", sink)
        eng = RegistryEngine(Directories(open_kv("memory://")), gate, treasury, **kwargs)
        opened.append(eng)
        return eng

    yield _make
    for eng in opened:
        eng.close()


@pytest.fixture
def engine(make_engine) -> RegistryEngine:
    return make_engine()


@pytest.fixture
def new_account() -> Callable[[str], Account]:
    """Derive extra deterministic accounts by label."""
    return make_account
