import pytest

from nameregistry.errors import (
    InsufficientFee,
    InvalidName,
    NameAlreadyTaken,
    NameNotFound,
    NameTooLong,
    Unauthorized,
)
from nameregistry.events import ApplicationDeleted, ApplicationSignUp, UserSignUp
from nameregistry.types import Application


def test_official_and_unofficial_directories_are_independent(engine, owner, alice, sink):
    """The same name can be held once officially and once unofficially."""
    engine.official_application_signup(owner.address, "hydro")
    assert engine.application_name_taken("hydro") == (True, False)

    engine.unofficial_application_signup(alice.address, "hydro", 0)
    assert engine.application_name_taken("hydro") == (True, True)

    with pytest.raises(NameAlreadyTaken):
        engine.official_application_signup(owner.address, "hydro")
    with pytest.raises(NameAlreadyTaken):
        engine.unofficial_application_signup(alice.address, "hydro", 0)

    assert sink.events == [
        ApplicationSignUp("hydro", True),
        ApplicationSignUp("hydro", False),
    ]


def test_user_and_application_names_do_not_collide(engine, owner, alice):
    engine.unofficial_user_signup(alice.address, "hydro", 0)
    engine.official_application_signup(owner.address, "hydro")
    assert engine.user_name_taken("hydro")
    assert engine.application_name_taken("hydro") == (True, False)


def test_official_application_signup_requires_operator(engine, mallory):
    with pytest.raises(Unauthorized):
        engine.official_application_signup(mallory.address, "hydro")
    assert engine.application_name_taken("hydro") == (False, False)


def test_official_application_may_use_uppercase(engine, owner):
    app = engine.official_application_signup(owner.address, "Hydro")
    assert app == Application(name="Hydro", official=True)


@pytest.mark.parametrize("name", ["Hydro", "hydrO", "ÉCOLE", "ΣIGMA"])
def test_unofficial_application_must_be_lowercase(engine, alice, name):
    with pytest.raises(InvalidName):
        engine.unofficial_application_signup(alice.address, name, 0)
    assert engine.application_name_taken(name) == (False, False)


@pytest.mark.parametrize("name", ["hydro", "hydro-2", "école", "名前", "", "123"])
def test_unofficial_application_accepts_caseless_and_lowercase(engine, alice, name):
    engine.unofficial_application_signup(alice.address, name, 0)
    assert engine.application_name_taken(name) == (False, True)


def test_unofficial_application_check_order(engine, owner, alice):
    engine.set_unofficial_application_signup_fee(owner.address, 50)
    # length beats case
    with pytest.raises(NameTooLong):
        engine.unofficial_application_signup(alice.address, "A" * 120, 0)
    # case beats fee
    with pytest.raises(InvalidName):
        engine.unofficial_application_signup(alice.address, "Hydro", 0)
    # fee beats duplicate
    engine.unofficial_application_signup(alice.address, "hydro", 50)
    with pytest.raises(InsufficientFee):
        engine.unofficial_application_signup(alice.address, "hydro", 49)


def test_unofficial_application_fee_collected(engine, owner, alice, treasury):
    engine.set_unofficial_application_signup_fee(owner.address, 100)
    with pytest.raises(InsufficientFee):
        engine.unofficial_application_signup(alice.address, "hydro", 99)
    engine.unofficial_application_signup(alice.address, "hydro", 150)
    assert treasury.balance == 150


def test_application_fee_is_independent_of_user_fee(engine, owner, alice):
    engine.set_unofficial_user_signup_fee(owner.address, 100)
    assert engine.unofficial_application_signup_fee == 0
    engine.unofficial_application_signup(alice.address, "hydro", 0)
    with pytest.raises(InsufficientFee):
        engine.unofficial_user_signup(alice.address, "alice", 0)


def test_delete_application_targets_one_directory(engine, owner, alice, sink):
    engine.official_application_signup(owner.address, "hydro")
    engine.unofficial_application_signup(alice.address, "hydro", 0)

    engine.delete_application(owner.address, "hydro", official=False)
    assert engine.application_name_taken("hydro") == (True, False)

    engine.delete_application(owner.address, "hydro", official=True)
    assert engine.application_name_taken("hydro") == (False, False)

    assert sink.events[-2:] == [
        ApplicationDeleted("hydro", False),
        ApplicationDeleted("hydro", True),
    ]


def test_delete_application_requires_operator(engine, alice):
    engine.unofficial_application_signup(alice.address, "hydro", 0)
    # the signer of an unofficial application has no delete right
    with pytest.raises(Unauthorized):
        engine.delete_application(alice.address, "hydro", official=False)
    assert engine.application_name_taken("hydro") == (False, True)


def test_delete_missing_application(engine, owner):
    with pytest.raises(NameNotFound) as ei:
        engine.delete_application(owner.address, "hydro", official=True)
    assert ei.value.context["namespace"] == "official_applications"


def test_deleted_application_name_can_be_reclaimed(engine, owner, alice, bob):
    engine.unofficial_application_signup(alice.address, "hydro", 0)
    engine.delete_application(owner.address, "hydro", official=False)
    engine.unofficial_application_signup(bob.address, "hydro", 0)
    assert engine.application_name_taken("hydro") == (False, True)


def test_get_application_by_name(engine, owner):
    engine.official_application_signup(owner.address, "hydro")
    assert engine.get_application_by_name("hydro", official=True) == Application("hydro", True)
    with pytest.raises(NameNotFound):
        engine.get_application_by_name("hydro", official=False)


def test_hydro_walkthrough(engine, owner, alice, bob, sink, treasury):
    engine.set_unofficial_application_signup_fee(owner.address, 10)
    engine.official_application_signup(owner.address, "hydro")
    engine.unofficial_application_signup(alice.address, "hydro", 10)
    with pytest.raises(NameAlreadyTaken):
        engine.unofficial_application_signup(bob.address, "hydro", 10)
    engine.unofficial_user_signup(bob.address, "bob", 0)

    assert engine.application_name_taken("hydro") == (True, True)
    assert treasury.balance == 10
    assert sink.events == [
        ApplicationSignUp("hydro", True),
        ApplicationSignUp("hydro", False),
        UserSignUp("bob", bob.address, False),
    ]
