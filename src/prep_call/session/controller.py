#
# Copyright (c) 2024–2025, Daily
#
# SPDX-License-Identifier: BSD 2-Clause License
#

import asyncio
import inspect
import json
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from loguru import logger

from ..config.settings import Settings, get_settings
from ..errors import ConfigurationError, TransportError, UpstreamServiceError
from ..models import LiveKitToken
from .checklist import PATIENT_CONTEXT_ACTION
from .events import (
    DataReceived,
    EventSink,
    MediaError,
    RealtimeSession,
    RemoteTrack,
    SessionConnected,
    SessionDisconnected,
    SessionEvent,
    SessionFactory,
    TrackSubscribed,
    TrackUnsubscribed,
)

TokenProvider = Callable[[Optional[str]], Awaitable[LiveKitToken]]
ActionHandler = Callable[[str, Dict[str, Any]], Any]


class CallState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class _Superseded(Exception):
    """The connection attempt was ended (or replaced) while it was in flight."""


@dataclass
class _Connection:
    generation: int
    stack: AsyncExitStack = field(default_factory=AsyncExitStack)
    ready: asyncio.Event = field(default_factory=asyncio.Event)
    failure: Optional[Exception] = None
    session: Optional[RealtimeSession] = None
    audio_outputs: Dict[str, RemoteTrack] = field(default_factory=dict)
    context_sent: bool = False


class CallSessionController:
    """Drives one voice call between staff and the remote voice agent.

    States go IDLE -> CONNECTING -> CONNECTED -> DISCONNECTED, or to ERROR when
    the credential fetch or the transport fails. Session events arrive on a
    queue and are handled by a single pump task; each event carries the
    generation of the connection that produced it and stale ones are dropped.

    Every connection owns an ``AsyncExitStack`` holding the session close, the
    microphone release and the remote audio outputs. Whoever ends the
    connection closes that stack, exactly once:

    * ``disconnect()`` or a remote hang-up, once the call is CONNECTED
    * ``connect()`` itself, when it fails or is superseded before CONNECTED
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        session_factory: SessionFactory,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self._token_provider = token_provider
        self._session_factory = session_factory

        self.state = CallState.IDLE
        self.error: Optional[str] = None
        self.mic_enabled = False

        self._want_connected = False
        self._generation = 0
        self._connection: Optional[_Connection] = None
        self._context: Optional[Dict[str, Any]] = None
        self._action_handler: Optional[ActionHandler] = None
        self._events: Optional[asyncio.Queue] = None
        self._pump_task: Optional[asyncio.Task] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @property
    def is_connected(self) -> bool:
        return self.state == CallState.CONNECTED

    @property
    def wants_connection(self) -> bool:
        return self._want_connected

    async def start(self):
        if self._pump_task is None:
            self._events = asyncio.Queue()
            self._pump_task = asyncio.create_task(self._pump())

    async def close(self):
        await self.disconnect()
        if self._pump_task is not None:
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            self._pump_task = None

    def set_action_handler(self, handler: Optional[ActionHandler]):
        self._action_handler = handler

    # --- connection lifecycle ---

    async def connect(self, patient_label: Optional[str] = None, context: Optional[Mapping[str, Any]] = None):
        """Fetch a credential, open the session and enable the microphone.

        ``context`` is sent to the agent as a ``get_patient_context`` action
        once the connection is up.
        """
        if self.state in (CallState.CONNECTING, CallState.CONNECTED):
            logger.warning(f"connect() ignored, call is already {self.state.value}")
            return

        await self.start()
        self._generation += 1
        conn = _Connection(generation=self._generation)
        self._connection = conn
        self._want_connected = True
        self._context = dict(context) if context is not None else None
        self.state = CallState.CONNECTING
        self.error = None
        self.mic_enabled = False
        logger.info(f"Connecting to voice agent for {patient_label or 'Staff'} (connection {conn.generation})")

        try:
            await self._establish(conn, patient_label)
        except _Superseded:
            logger.info(f"Connection {conn.generation} was ended while connecting, releasing its resources")
            await conn.stack.aclose()
            return
        except asyncio.CancelledError:
            if self._connection is conn:
                self._drop_current(CallState.DISCONNECTED)
            await conn.stack.aclose()
            raise
        except Exception as e:
            message = _error_message(e)
            if self._connection is conn:
                self._drop_current(CallState.ERROR, message)
                logger.error(f"Error connecting to voice agent: {message}")
            else:
                logger.warning(f"Stale connection {conn.generation} failed: {message}")
            await conn.stack.aclose()
            return

        await self._send_patient_context(conn)

    async def _establish(self, conn: _Connection, patient_label: Optional[str]):
        token = await asyncio.wait_for(
            self._token_provider(patient_label), timeout=self.settings.CREDENTIAL_TIMEOUT_SECONDS
        )
        self._check_current(conn)

        session = self._session_factory(self._sink_for(conn.generation))
        conn.session = session
        conn.stack.push_async_callback(self._close_session, session)
        conn.stack.callback(self._release_audio_outputs, conn)

        timeout = self.settings.SESSION_CONNECT_TIMEOUT_SECONDS
        await asyncio.wait_for(session.connect(token.livekit_url, token.token), timeout=timeout)
        self._check_current(conn)

        # The data channel is only usable once the remote side acknowledges
        await asyncio.wait_for(conn.ready.wait(), timeout=timeout)
        self._check_current(conn)
        if conn.failure is not None:
            raise conn.failure

        await session.set_microphone_enabled(True)
        conn.stack.push_async_callback(self._release_microphone, session)
        self._check_current(conn)
        if conn.failure is not None:
            raise conn.failure

        self.mic_enabled = True
        self.state = CallState.CONNECTED
        logger.info(f"Connected to voice agent (connection {conn.generation})")

    async def disconnect(self):
        """End the call. Safe to call in any state."""
        self._want_connected = False
        conn = self._connection
        if conn is None:
            if self.state == CallState.ERROR:
                self.state = CallState.DISCONNECTED
            return

        was_connecting = self.state == CallState.CONNECTING
        self._drop_current(CallState.DISCONNECTED)
        if was_connecting:
            # connect() is still running and will release what it acquired
            logger.info(f"Disconnect requested while connection {conn.generation} was in flight")
            conn.ready.set()
            return

        logger.info(f"Disconnecting from voice agent (connection {conn.generation})")
        await conn.stack.aclose()

    def _drop_current(self, state: CallState, error: Optional[str] = None):
        self._connection = None
        self._generation += 1
        self._want_connected = False
        self.state = state
        self.mic_enabled = False
        if error is not None:
            self.error = error

    def _check_current(self, conn: _Connection):
        if self._connection is not conn:
            raise _Superseded()

    # --- microphone / data ---

    async def toggle_mic(self) -> bool:
        conn = self._connection
        if self.state != CallState.CONNECTED or conn is None or conn.session is None:
            logger.warning("Cannot toggle microphone: not connected")
            return self.mic_enabled

        new_state = not self.mic_enabled
        try:
            await conn.session.set_microphone_enabled(new_state)
        except Exception as e:
            self.error = f"Microphone error: {e}"
            logger.error(self.error)
            return self.mic_enabled

        if self._connection is conn:
            self.mic_enabled = new_state
            logger.info(f"Microphone {'enabled' if new_state else 'disabled'}")
        return self.mic_enabled

    async def send_action(self, action: str, payload: Optional[Mapping[str, Any]] = None) -> bool:
        conn = self._connection
        if self.state != CallState.CONNECTED or conn is None or conn.session is None:
            logger.warning(f"Cannot send action '{action}': not connected to room")
            return False

        message = json.dumps({"type": "client_action", "action": action, "payload": dict(payload or {})})
        await conn.session.publish_data(
            message.encode("utf-8"), reliable=True, topic=self.settings.DATA_CHANNEL_TOPIC
        )
        logger.info(f"Sent action to agent: {action}")
        return True

    async def _send_patient_context(self, conn: _Connection):
        if conn.context_sent or self._context is None or self._connection is not conn:
            return
        conn.context_sent = True
        try:
            await self.send_action(PATIENT_CONTEXT_ACTION, self._context)
        except Exception as e:
            logger.error(f"Error sending patient context to agent: {e}")

    # --- resource release (registered on the connection's exit stack) ---

    async def _close_session(self, session: RealtimeSession):
        try:
            await session.disconnect()
        except Exception as e:
            logger.warning(f"Error closing real-time session: {e}")

    async def _release_microphone(self, session: RealtimeSession):
        try:
            await session.set_microphone_enabled(False)
        except Exception as e:
            logger.warning(f"Error releasing microphone: {e}")

    def _release_audio_outputs(self, conn: _Connection):
        while conn.audio_outputs:
            _, track = conn.audio_outputs.popitem()
            track.detach()

    # --- event pump ---

    def _sink_for(self, generation: int) -> EventSink:
        def sink(event: SessionEvent):
            self._events.put_nowait((generation, event))

        return sink

    async def _pump(self):
        while True:
            generation, event = await self._events.get()
            try:
                await self._handle_event(generation, event)
            except Exception:
                logger.exception(f"Error handling session event {type(event).__name__}")

    async def _handle_event(self, generation: int, event: SessionEvent):
        conn = self._connection
        if conn is None or conn.generation != generation:
            logger.debug(f"Dropping {type(event).__name__} from stale connection {generation}")
            return

        if isinstance(event, SessionConnected):
            logger.info("Connected to LiveKit room")
            conn.ready.set()
        elif isinstance(event, SessionDisconnected):
            logger.info(f"Disconnected from LiveKit room: {event.reason or 'no reason given'}")
            if self.state == CallState.CONNECTING:
                conn.failure = TransportError(event.reason or "Session closed before it was established")
                conn.ready.set()
            else:
                self._drop_current(CallState.DISCONNECTED)
                await conn.stack.aclose()
        elif isinstance(event, TrackSubscribed):
            track = event.track
            if track.kind == "audio" and track.sid not in conn.audio_outputs:
                track.attach()
                conn.audio_outputs[track.sid] = track
        elif isinstance(event, TrackUnsubscribed):
            track = conn.audio_outputs.pop(event.track.sid, None)
            if track is not None:
                track.detach()
        elif isinstance(event, MediaError):
            self.error = f"Microphone error: {event.message}"
            logger.error(f"Media device error: {event.message}")
        elif isinstance(event, DataReceived):
            await self._dispatch_data(event)

    async def _dispatch_data(self, event: DataReceived):
        if event.topic != self.settings.DATA_CHANNEL_TOPIC:
            return
        try:
            data = json.loads(event.payload.decode("utf-8"))
        except ValueError as e:
            logger.error(f"Error parsing agent action: {e}")
            return
        if not isinstance(data, dict) or data.get("type") != "client_action":
            return

        action = data.get("action")
        payload = data.get("payload")
        if not isinstance(payload, dict):
            payload = {}
        logger.info(f"Received action from agent: {action}")
        if self._action_handler is None:
            logger.debug(f"No action handler registered, ignoring '{action}'")
            return
        result = self._action_handler(action, payload)
        if inspect.isawaitable(result):
            await result


def _error_message(error: Exception) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "Timed out connecting to voice agent"
    if isinstance(error, UpstreamServiceError):
        return error.message
    if isinstance(error, ConfigurationError):
        return str(error)
    return str(error) or "Failed to connect"
