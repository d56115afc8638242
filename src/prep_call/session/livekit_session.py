#
# Copyright (c) 2024–2025, Daily
#
# SPDX-License-Identifier: BSD 2-Clause License
#

import asyncio
from typing import Awaitable, Callable, Optional

from livekit import rtc
from loguru import logger

from ..config.settings import Settings, get_settings
from ..errors import TransportError
from .events import (
    DataReceived,
    EventSink,
    MediaError,
    SessionConnected,
    SessionDisconnected,
    TrackSubscribed,
    TrackUnsubscribed,
)

# Receives every decoded frame of the agent's voice
AudioFrameHandler = Callable[[rtc.AudioFrame], Optional[Awaitable[None]]]


class LiveKitAudioOutput:
    """A subscribed remote audio track, played by streaming its frames to a handler."""

    def __init__(self, track: rtc.Track, on_frame: Optional[AudioFrameHandler], settings: Settings):
        self.track = track
        self.sid = track.sid
        self.kind = "audio" if track.kind == rtc.TrackKind.KIND_AUDIO else "video"
        self._on_frame = on_frame
        self._settings = settings
        self._reader: Optional[asyncio.Task] = None

    def attach(self):
        if self._reader is None:
            self._reader = asyncio.ensure_future(self._read_frames())

    def detach(self):
        if self._reader is not None:
            self._reader.cancel()
            self._reader = None

    async def _read_frames(self):
        stream = rtc.AudioStream(
            self.track, sample_rate=self._settings.SAMPLE_RATE, num_channels=self._settings.CHANNELS
        )
        try:
            async for frame_event in stream:
                if self._on_frame is None:
                    continue
                result = self._on_frame(frame_event.frame)
                if asyncio.iscoroutine(result):
                    await result
        finally:
            await stream.aclose()


class LiveKitSession:
    """Real-time session over a LiveKit room.

    Local audio is published from ``audio_source``; whoever owns the capture
    device pushes frames into it with ``audio_source.capture_frame``.
    """

    def __init__(self, sink: EventSink, settings: Optional[Settings] = None, on_agent_audio: Optional[AudioFrameHandler] = None):
        self.settings = settings or get_settings()
        self._sink = sink
        self._on_agent_audio = on_agent_audio
        self.room = rtc.Room()
        self.audio_source = rtc.AudioSource(self.settings.SAMPLE_RATE, self.settings.CHANNELS)
        self._mic_track: Optional[rtc.LocalAudioTrack] = None
        self._outputs = {}

        self.room.on("track_subscribed", self._on_track_subscribed)
        self.room.on("track_unsubscribed", self._on_track_unsubscribed)
        self.room.on("data_received", self._on_data_received)
        self.room.on("disconnected", self._on_disconnected)

    async def connect(self, url: str, token: str):
        try:
            await self.room.connect(url, token, options=rtc.RoomOptions(auto_subscribe=True))
        except rtc.ConnectError as e:
            raise TransportError(f"Failed to connect to LiveKit room: {e}") from e
        logger.info(f"Joined LiveKit room {self.room.name}")
        self._sink(SessionConnected())

    async def disconnect(self):
        try:
            await self.room.disconnect()
        finally:
            # A reused session republishes a fresh track on the next enable
            self._mic_track = None
            await self.audio_source.aclose()

    async def set_microphone_enabled(self, enabled: bool):
        if self._mic_track is None:
            if not enabled:
                return
            track = rtc.LocalAudioTrack.create_audio_track("microphone", self.audio_source)
            options = rtc.TrackPublishOptions(source=rtc.TrackSource.SOURCE_MICROPHONE)
            try:
                await self.room.local_participant.publish_track(track, options)
            except Exception as e:
                self._sink(MediaError(str(e)))
                raise TransportError(f"Failed to publish microphone: {e}") from e
            self._mic_track = track
            return

        if enabled:
            self._mic_track.unmute()
        else:
            self._mic_track.mute()

    async def publish_data(self, payload: bytes, *, reliable: bool = True, topic: Optional[str] = None):
        await self.room.local_participant.publish_data(payload, reliable=reliable, topic=topic or "")

    # --- room callbacks ---

    def _on_track_subscribed(self, track: rtc.Track, publication: rtc.RemoteTrackPublication, participant: rtc.RemoteParticipant):
        output = LiveKitAudioOutput(track, self._on_agent_audio, self.settings)
        self._outputs[track.sid] = output
        logger.debug(f"Subscribed to {output.kind} track {track.sid} from {participant.identity}")
        self._sink(TrackSubscribed(output))

    def _on_track_unsubscribed(self, track: rtc.Track, publication: rtc.RemoteTrackPublication, participant: rtc.RemoteParticipant):
        output = self._outputs.pop(track.sid, None)
        if output is not None:
            self._sink(TrackUnsubscribed(output))

    def _on_data_received(self, packet: rtc.DataPacket):
        self._sink(DataReceived(payload=packet.data, topic=packet.topic))

    def _on_disconnected(self, reason=None):
        self._sink(SessionDisconnected(reason=str(reason) if reason is not None else None))


def livekit_session_factory(settings: Optional[Settings] = None, on_agent_audio: Optional[AudioFrameHandler] = None):
    def factory(sink: EventSink) -> LiveKitSession:
        return LiveKitSession(sink, settings=settings, on_agent_audio=on_agent_audio)

    return factory
