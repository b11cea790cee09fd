"""
nameregistry.events
===================

Audit events published on every registry mutation, and the sinks that
receive them.

Canonical events (field order is part of the contract):

- UserSignUp          {name, address, official}
- UserDeleted         {name, address, official}
- ApplicationSignUp   {name, official}
- ApplicationDeleted  {name, official}

Sinks implement `publish(event)`. The engine treats publication as
fire-and-forget: a sink that raises is logged and the committed mutation
stands.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, List, Protocol, Tuple, Union, runtime_checkable

from core.logging import get_logger

log = get_logger("nameregistry.events")


@dataclass(frozen=True)
class Event:
    kind: ClassVar[str] = "Event"

    def field_items(self) -> Tuple[Tuple[str, Any], ...]:
        """(field, value) pairs in declaration order."""
        return tuple((f.name, getattr(self, f.name)) for f in fields(self))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"event": self.kind}
        out.update(self.field_items())
        return out


@dataclass(frozen=True)
class UserSignUp(Event):
    kind: ClassVar[str] = "UserSignUp"
    name: str
    address: str
    official: bool


@dataclass(frozen=True)
class UserDeleted(Event):
    kind: ClassVar[str] = "UserDeleted"
    name: str
    address: str
    official: bool


@dataclass(frozen=True)
class ApplicationSignUp(Event):
    kind: ClassVar[str] = "ApplicationSignUp"
    name: str
    official: bool


@dataclass(frozen=True)
class ApplicationDeleted(Event):
    kind: ClassVar[str] = "ApplicationDeleted"
    name: str
    official: bool


EVENT_TYPES = {cls.kind: cls for cls in (UserSignUp, UserDeleted, ApplicationSignUp, ApplicationDeleted)}


def event_from_dict(d: Dict[str, Any]) -> Event:
    """Inverse of Event.to_dict (used when replaying a JSON-lines audit file)."""
    cls = EVENT_TYPES.get(d.get("event", ""))
    if cls is None:
        raise ValueError(f"unknown event kind: {d.get('event')!r}")
    return cls(**{f.name: d[f.name] for f in fields(cls)})


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


@runtime_checkable
class EventSink(Protocol):
    def publish(self, event: Event) -> None:
        ...


class MemorySink:
    """In-process append-only audit log."""

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._lock = threading.Lock()

    def publish(self, event: Event) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[Event]:
        with self._lock:
            return list(self._events)

    def kinds(self) -> List[str]:
        return [e.kind for e in self.events]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingSink:
    """One structured log line per event."""

    def __init__(self, logger_name: str = "nameregistry.audit") -> None:
        self._log = get_logger(logger_name)

    def publish(self, event: Event) -> None:
        self._log.info(event.kind, extra={"event": event.to_dict()})


class JsonlSink:
    """Append-only JSON-lines audit file; one object per event."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def publish(self, event: Event) -> None:
        line = json.dumps(event.to_dict(), separators=(",", ":"))
        with self._lock, self.path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def read(self) -> List[Event]:
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as fh:
            return [event_from_dict(json.loads(ln)) for ln in fh if ln.strip()]


class FanoutSink:
    """Deliver to every child sink; one failing child does not starve the rest."""

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self.sinks = list(sinks)

    def publish(self, event: Event) -> None:
        for sink in self.sinks:
            try:
                sink.publish(event)
            except Exception:
                log.warning(
                    "event sink failed",
                    exc_info=True,
                    extra={"sink": type(sink).__name__, "event_kind": event.kind},
                )


__all__ = [
    "Event",
    "UserSignUp",
    "UserDeleted",
    "ApplicationSignUp",
    "ApplicationDeleted",
    "EVENT_TYPES",
    "event_from_dict",
    "EventSink",
    "MemorySink",
    "LoggingSink",
    "JsonlSink",
    "FanoutSink",
]
