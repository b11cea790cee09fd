# -*- coding: utf-8 -*-
"""
Property tests for registry invariants.

- Uniqueness: any interleaving of signups and deletions leaves each
  directory holding a name at most once, and `*_taken` agrees with a plain
  set model.
- Length: a name is accepted iff its UTF-8 encoding is shorter than the
  limit, whatever its character count.
- Case: an unofficial application name is accepted iff it contains no
  uppercase character; user names are never case-checked.

Engines are built inside each example (not via function-scoped fixtures) so
every example starts from an empty store.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Set, Tuple

from hypothesis import given, settings, strategies as st

from core.db import open_kv
from core.utils.hash import keccak256
from nameregistry.access import OwnerGate
from nameregistry.engine import RegistryEngine
from nameregistry.errors import InvalidName, NameAlreadyTaken, NameNotFound, NameTooLong
from nameregistry.events import MemorySink
from nameregistry.signatures import address_of
from nameregistry.store import Directories
from nameregistry.treasury import Treasury

OWNER = address_of(keccak256(b"props|owner"))
USERS = [address_of(keccak256(f"props|user|{i}".encode())) for i in range(3)]


@contextmanager
def fresh_engine() -> Iterator[Tuple[RegistryEngine, MemorySink]]:
    gate = OwnerGate(OWNER)
    sink = MemorySink()
    eng = RegistryEngine(Directories(open_kv("memory://")), gate, Treasury(gate), sink)
    try:
        yield eng, sink
    finally:
        eng.close()


NAMES = st.sampled_from(["hydro", "aqua", "terra", "", "名前"])
ACTIONS = st.lists(
    st.tuples(
        st.sampled_from(["user", "official_app", "unofficial_app", "delete_user", "delete_app"]),
        NAMES,
        st.integers(min_value=0, max_value=len(USERS) - 1),
        st.booleans(),
    ),
    max_size=30,
)


@settings(max_examples=60, deadline=None)
@given(ACTIONS)
def test_directories_match_set_model(actions: List[Tuple[str, str, int, bool]]) -> None:
    users: dict = {}
    official: Set[str] = set()
    unofficial: Set[str] = set()

    with fresh_engine() as (eng, sink):
        for kind, name, who, flag in actions:
            caller = USERS[who]
            try:
                if kind == "user":
                    eng.unofficial_user_signup(caller, name, 0)
                    assert name not in users
                    users[name] = caller
                elif kind == "official_app":
                    eng.official_application_signup(OWNER, name)
                    assert name not in official
                    official.add(name)
                elif kind == "unofficial_app":
                    eng.unofficial_application_signup(caller, name, 0)
                    assert name not in unofficial
                    unofficial.add(name)
                elif kind == "delete_user":
                    eng.delete_user(users.get(name, caller), name)
                    users.pop(name)
                else:
                    eng.delete_application(OWNER, name, official=flag)
                    (official if flag else unofficial).remove(name)
            except NameAlreadyTaken:
                target = {"user": users, "official_app": official, "unofficial_app": unofficial}[kind]
                assert name in target
            except NameNotFound:
                if kind == "delete_user":
                    assert name not in users
                else:
                    assert name not in (official if flag else unofficial)

        for name in ["hydro", "aqua", "terra", "", "名前"]:
            assert eng.user_name_taken(name) == (name in users)
            assert eng.application_name_taken(name) == (name in official, name in unofficial)
        assert len(list(eng.directories.iter_users())) == len(users)

        # every committed mutation produced exactly one event
        signups = sum(1 for k in sink.kinds() if k.endswith("SignUp"))
        deletions = sum(1 for k in sink.kinds() if k.endswith("Deleted"))
        assert signups - deletions == len(users) + len(official) + len(unofficial)


@settings(max_examples=150, deadline=None)
@given(st.text(max_size=120))
def test_length_rule_counts_utf8_bytes(name: str) -> None:
    with fresh_engine() as (eng, _):
        fits = len(name.encode("utf-8")) < 100
        try:
            eng.unofficial_user_signup(USERS[0], name, 0)
            accepted = True
        except NameTooLong:
            accepted = False
        assert accepted == fits
        assert eng.user_name_taken(name) == fits


@settings(max_examples=150, deadline=None)
@given(st.text(max_size=24))
def test_case_rule_only_for_unofficial_applications(name: str) -> None:
    has_upper = any(c.isupper() for c in name)
    with fresh_engine() as (eng, _):
        eng.unofficial_user_signup(USERS[0], name, 0)
        eng.official_application_signup(OWNER, name)
        try:
            eng.unofficial_application_signup(USERS[1], name, 0)
            accepted = True
        except InvalidName:
            accepted = False
        assert accepted == (not has_upper)
        assert eng.application_name_taken(name) == (True, not has_upper)
