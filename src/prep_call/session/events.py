"""Typed events and capability protocols for a real-time voice session.

A concrete session (see ``livekit_session``) reports everything that happens
on the wire by putting one of these events on the sink it was created with.
The call session controller is the only consumer.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union


class RemoteTrack(Protocol):
    sid: str
    kind: str

    def attach(self) -> None: ...

    def detach(self) -> None: ...


class RealtimeSession(Protocol):
    async def connect(self, url: str, token: str) -> None: ...

    async def disconnect(self) -> None: ...

    async def set_microphone_enabled(self, enabled: bool) -> None: ...

    async def publish_data(self, payload: bytes, *, reliable: bool = True, topic: Optional[str] = None) -> None: ...


@dataclass(frozen=True)
class SessionConnected:
    pass


@dataclass(frozen=True)
class SessionDisconnected:
    reason: Optional[str] = None


@dataclass(frozen=True)
class TrackSubscribed:
    track: RemoteTrack


@dataclass(frozen=True)
class TrackUnsubscribed:
    track: RemoteTrack


@dataclass(frozen=True)
class MediaError:
    message: str


@dataclass(frozen=True)
class DataReceived:
    payload: bytes
    topic: Optional[str] = None


SessionEvent = Union[SessionConnected, SessionDisconnected, TrackSubscribed, TrackUnsubscribed, MediaError, DataReceived]

# Called by a session for every event it observes
EventSink = Callable[[SessionEvent], None]

# Builds a fresh session that reports to the given sink
SessionFactory = Callable[[EventSink], RealtimeSession]
