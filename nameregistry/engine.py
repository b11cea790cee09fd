"""
nameregistry.engine
===================

The registry engine: three directories (users, official applications,
unofficial applications) behind signup, deletion, fee and lookup
operations.

Authorization
-------------
- Official signups, application deletion and fee changes require the
  injected `AccessGate` to admit the caller.
- `delete_user_for_user` additionally requires a signature over the
  "Delete" digest that recovers to the user's bound address, so the operator
  can only act on a user's out-of-band consent.
- `delete_user` is the self-service path: only the bound address, and only
  for unofficial records.

Atomicity
---------
Every mutation runs under one engine lock and stages its writes into a
single KV batch. All checks happen before the batch opens, so a failing
call leaves the directories untouched.

Paid signups hand the payment to custody only after the batch commits. If
custody refuses it, the record is removed again before the lock is
released. Lookups take the same lock, so a reader never sees a signup that
is still being paid for or that is about to be reverted.

Audit
-----
Each committed mutation publishes one event to the sink. Publication is
fire-and-forget: sink errors are logged and never undo the mutation.

Typical usage
-------------
    engine = RegistryEngine.from_config(load_config())
    engine.official_application_signup(owner, "hydro")
    engine.unofficial_application_signup(alice, "hydro", payment=10)
    assert engine.application_name_taken("hydro") == (True, True)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple

from core import logging as clog
from core.db import open_kv
from core.utils.bytes import BytesLike

from .access import AccessGate, OwnerGate, require_privileged
from .config import DEFAULT_MAX_NAME_BYTES, MAX_FEE, RegistryConfig
from .errors import (
    InsufficientFee,
    InvalidName,
    InvalidSignature,
    NameAlreadyTaken,
    NameNotFound,
    NameTooLong,
    RegistryError,
    Unauthorized,
)
from .events import (
    ApplicationDeleted,
    ApplicationSignUp,
    Event,
    EventSink,
    FanoutSink,
    JsonlSink,
    LoggingSink,
    UserDeleted,
    UserSignUp,
)
from .signatures import DELETE_DIGEST, SignatureLike, recover_signer
from .store import Directories, DirectoryWriter, FeeKind
from .strings import byte_length, is_all_lowercase
from .treasury import FundsCustody, Treasury
from .types import (
    ZERO_ADDRESS,
    Application,
    Namespace,
    User,
    normalize_address,
    same_address,
)

log = clog.get_logger("nameregistry.engine")

Recover = Callable[[BytesLike, SignatureLike], str]


class RegistryEngine:
    def __init__(
        self,
        directories: Directories,
        gate: AccessGate,
        custody: FundsCustody,
        sink: Optional[EventSink] = None,
        *,
        max_name_bytes: int = DEFAULT_MAX_NAME_BYTES,
        default_user_fee: int = 0,
        default_application_fee: int = 0,
        recover: Recover = recover_signer,
    ) -> None:
        self.directories = directories
        self.gate = gate
        self.custody = custody
        self.sink = sink
        self.max_name_bytes = max_name_bytes
        self._recover = recover
        self._lock = threading.RLock()
        self._seed_fees(default_user_fee, default_application_fee)

    @classmethod
    def from_config(
        cls,
        cfg: RegistryConfig,
        *,
        gate: Optional[AccessGate] = None,
        custody: Optional[FundsCustody] = None,
        sink: Optional[EventSink] = None,
    ) -> "RegistryEngine":
        """Open the configured store and wire the default collaborators."""
        gate = gate or OwnerGate(cfg.owner)
        if sink is None:
            sinks: List[EventSink] = [LoggingSink()]
            if cfg.events_path:
                sinks.append(JsonlSink(cfg.events_path))
            sink = FanoutSink(sinks)
        return cls(
            Directories(open_kv(cfg.db_uri)),
            gate,
            custody or Treasury(gate),
            sink,
            max_name_bytes=cfg.names.max_name_bytes,
            default_user_fee=cfg.fees.user_fee,
            default_application_fee=cfg.fees.application_fee,
        )

    def close(self) -> None:
        self.directories.close()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def official_user_signup(self, caller: str, name: str, address: str) -> User:
        with self._operation("official_user_signup", caller, Namespace.USERS):
            require_privileged(self.gate, caller)
            self._check_length(name)
            user = User(name=name, address=normalize_address(address), official=True)
            with self._lock:
                self._ensure_user_free(name)
                with self.directories.write() as w:
                    w.put_user(user)
                self._committed(UserSignUp(user.name, user.address, True))
            return user

    def unofficial_user_signup(self, caller: str, name: str, payment: int) -> User:
        with self._operation("unofficial_user_signup", caller, Namespace.USERS):
            self._check_length(name)
            payment = _check_amount(payment, "payment")
            user = User(name=name, address=normalize_address(caller), official=False)
            with self._lock:
                self._check_fee(FeeKind.USER, payment, name)
                self._ensure_user_free(name)
                with self.directories.write() as w:
                    w.put_user(user)
                self._settle(user.address, payment, lambda w: w.clear_user(name))
                self._committed(UserSignUp(user.name, user.address, False), payment=payment)
            return user

    def delete_user_for_user(self, caller: str, name: str, signature: SignatureLike) -> None:
        """Operator deletion backed by the user's signature over the "Delete" digest."""
        with self._operation("delete_user_for_user", caller, Namespace.USERS):
            require_privileged(self.gate, caller)
            with self._lock:
                user = self._existing_user(name)
                recovered = self._recover(DELETE_DIGEST, signature)
                if recovered == ZERO_ADDRESS or not same_address(recovered, user.address):
                    raise InvalidSignature(
                        name=name, expected=user.address, recovered=recovered
                    )
                with self.directories.write() as w:
                    w.clear_user(name)
                self._committed(UserDeleted(user.name, user.address, user.official))

    def delete_user(self, caller: str, name: str) -> None:
        """Self-service deletion by the bound address (unofficial users only)."""
        with self._operation("delete_user", caller, Namespace.USERS):
            with self._lock:
                user = self._existing_user(name)
                if not same_address(caller, user.address):
                    raise Unauthorized("caller is not the bound address", caller=caller, name=name)
                if user.official:
                    raise Unauthorized(
                        "official users are removed by the operator only",
                        caller=caller,
                        name=name,
                    )
                with self.directories.write() as w:
                    w.clear_user(name)
                self._committed(UserDeleted(user.name, user.address, user.official))

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def official_application_signup(self, caller: str, name: str) -> Application:
        ns = Namespace.OFFICIAL_APPLICATIONS
        with self._operation("official_application_signup", caller, ns):
            require_privileged(self.gate, caller)
            self._check_length(name)
            app = Application(name=name, official=True)
            with self._lock:
                self._ensure_application_free(name, official=True)
                with self.directories.write() as w:
                    w.put_application(app)
                self._committed(ApplicationSignUp(app.name, True))
            return app

    def unofficial_application_signup(self, caller: str, name: str, payment: int) -> Application:
        ns = Namespace.UNOFFICIAL_APPLICATIONS
        with self._operation("unofficial_application_signup", caller, ns):
            self._check_length(name)
            if not is_all_lowercase(name):
                raise InvalidName(name, rule="lowercase")
            payment = _check_amount(payment, "payment")
            payer = normalize_address(caller)
            app = Application(name=name, official=False)
            with self._lock:
                self._check_fee(FeeKind.APPLICATION, payment, name)
                self._ensure_application_free(name, official=False)
                with self.directories.write() as w:
                    w.put_application(app)
                self._settle(payer, payment, lambda w: w.clear_application(name, False))
                self._committed(ApplicationSignUp(app.name, False), payment=payment)
            return app

    def delete_application(self, caller: str, name: str, official: bool) -> None:
        ns = Namespace.for_application(official)
        with self._operation("delete_application", caller, ns):
            require_privileged(self.gate, caller)
            with self._lock:
                app = self.directories.get_application(name, official)
                if app is None:
                    raise NameNotFound(name, namespace=ns.value)
                with self.directories.write() as w:
                    w.clear_application(name, official)
                self._committed(ApplicationDeleted(app.name, app.official))

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    @property
    def unofficial_user_signup_fee(self) -> int:
        return self.directories.get_fee(FeeKind.USER) or 0

    @property
    def unofficial_application_signup_fee(self) -> int:
        return self.directories.get_fee(FeeKind.APPLICATION) or 0

    def set_unofficial_user_signup_fee(self, caller: str, fee: int) -> None:
        self._set_fee(caller, FeeKind.USER, fee)

    def set_unofficial_application_signup_fee(self, caller: str, fee: int) -> None:
        self._set_fee(caller, FeeKind.APPLICATION, fee)

    def _set_fee(self, caller: str, kind: FeeKind, fee: int) -> None:
        with self._operation(f"set_{kind.value}_fee", caller):
            require_privileged(self.gate, caller)
            fee = _check_amount(fee, "fee")
            with self._lock:
                previous = self.directories.get_fee(kind) or 0
                with self.directories.write() as w:
                    w.set_fee(kind, fee)
            log.info("fee updated", extra={"kind": kind.value, "previous": previous, "fee": fee})

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def user_name_taken(self, name: str) -> bool:
        name = _as_name(name)
        with self._lock:
            return self.directories.user_taken(name)

    def application_name_taken(self, name: str) -> Tuple[bool, bool]:
        """(official_taken, unofficial_taken)"""
        name = _as_name(name)
        with self._lock:
            return (
                self.directories.application_taken(name, official=True),
                self.directories.application_taken(name, official=False),
            )

    def get_user_by_name(self, name: str) -> Tuple[str, bool]:
        """(address, official); NameNotFound when absent."""
        with self._lock:
            user = self._existing_user(name)
        return (user.address, user.official)

    def get_application_by_name(self, name: str, official: bool) -> Application:
        name = _as_name(name)
        with self._lock:
            app = self.directories.get_application(name, official)
        if app is None:
            raise NameNotFound(name, namespace=Namespace.for_application(official).value)
        return app

    def is_signed(self, address: str, digest: BytesLike, signature: SignatureLike) -> bool:
        recovered = self._recover(digest, signature)
        return recovered != ZERO_ADDRESS and same_address(recovered, address)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(
        self, op: str, caller: Optional[str], ns: Optional[Namespace] = None
    ) -> Iterator[None]:
        fields = {"component": "registry", "op": op, "caller": caller}
        if ns is not None:
            fields["namespace"] = ns.value
        with clog.trace_scope(**fields):
            try:
                yield
            except RegistryError as e:
                log.debug("operation rejected", extra={"reason": e.reason, "code": e.code})
                raise

    def _committed(self, event: Event, **extra: object) -> None:
        log.info(f"{event.kind} committed", extra={"event": event.to_dict(), **extra})
        if self.sink is None:
            return
        try:
            self.sink.publish(event)
        except Exception:
            log.warning("event publication failed", exc_info=True, extra={"event_kind": event.kind})

    def _settle(
        self, payer: str, payment: int, revert: Callable[[DirectoryWriter], None]
    ) -> None:
        """Hand a committed signup's payment to custody; revert the record if it fails."""
        try:
            self.custody.collect(payer, payment)
        except Exception:
            log.warning(
                "custody collection failed; reverting signup",
                exc_info=True,
                extra={"payer": payer, "payment": payment},
            )
            with self.directories.write() as w:
                revert(w)
            raise

    def _check_length(self, name: str) -> None:
        n = byte_length(_as_name(name))
        if n >= self.max_name_bytes:
            raise NameTooLong(name, length=n, limit=self.max_name_bytes)

    def _check_fee(self, kind: FeeKind, payment: int, name: str) -> None:
        fee = self.directories.get_fee(kind) or 0
        if not self.custody.payment_received(payment, fee):
            raise InsufficientFee(payment=payment, fee=fee, name=name)

    def _ensure_user_free(self, name: str) -> None:
        if self.directories.user_taken(name):
            raise NameAlreadyTaken(name, namespace=Namespace.USERS.value)

    def _ensure_application_free(self, name: str, official: bool) -> None:
        if self.directories.application_taken(name, official):
            raise NameAlreadyTaken(name, namespace=Namespace.for_application(official).value)

    def _existing_user(self, name: str) -> User:
        user = self.directories.get_user(_as_name(name))
        if user is None:
            raise NameNotFound(name, namespace=Namespace.USERS.value)
        return user

    def _seed_fees(self, user_fee: int, application_fee: int) -> None:
        seeds = (
            (FeeKind.USER, _check_amount(user_fee, "fee")),
            (FeeKind.APPLICATION, _check_amount(application_fee, "fee")),
        )
        with self._lock:
            missing = [(k, v) for k, v in seeds if self.directories.get_fee(k) is None]
            if not missing:
                return
            with self.directories.write() as w:
                for kind, value in missing:
                    w.set_fee(kind, value)


def _as_name(name: str) -> str:
    if not isinstance(name, str):
        raise TypeError(f"name must be str, got {type(name).__name__}")
    return name


def _check_amount(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an integer")
    if not (0 <= value <= MAX_FEE):
        raise ValueError(f"{what} must be within [0, 2**256)")
    return value


__all__ = ["RegistryEngine", "MAX_FEE"]
