"""
Realtime recognition over a WebSocket.

A session walks through CONNECTING -> OPEN -> STREAMING -> AWAITING_FINAL
-> CLOSED. Socket traffic is turned into typed events on a queue by a
reader task; the coroutine that awaits the session is the only consumer
and the only place a result is produced.
"""
from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, Awaitable, Callable, Dict, List, Union
import websockets
from ..audio import chunk_duration, iter_chunks
from ..models import ErrorCode, HandshakeRejected, SpeechError, SpeechResult, SpeechSuccess
from ..retry import RetryPolicy, is_network_error, with_retry

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]

# Returned by _unless_cancelled when cancel() wins the race
_CANCELLED = object()


class StreamState(str, Enum):
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    STREAMING = "STREAMING"
    AWAITING_FINAL = "AWAITING_FINAL"
    CLOSED = "CLOSED"


# Socket events, produced by the reader task
@dataclass
class MalformedMessage:
    error: BaseException


@dataclass
class SocketClosed:
    code: int = None
    reason: str = ""


@dataclass
class SocketFailed:
    error: BaseException


@dataclass
class SessionCancelled:
    pass


# Protocol events, produced by StreamingProtocol.parse
@dataclass
class TranscriptUpdate:
    text: str
    is_final: bool = False
    # True when `text` is the whole transcript so far rather than a new segment
    cumulative: bool = False


@dataclass
class StreamCompleted:
    text: str = None


@dataclass
class StreamFailed:
    message: str
    code: ErrorCode = ErrorCode.RECOGNITION_FAILED
    detail: str = None


ProtocolEvent = Union[TranscriptUpdate, StreamCompleted, StreamFailed]


@dataclass
class ConnectTarget:
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    # URL safe to write to logs
    display_url: str = None


class StreamingProtocol(ABC):
    """
    Provider-specific half of a streaming call.

    Instances are created per call and may keep per-call state.
    """
    chunk_size: int = 3200
    segment_separator: str = ""

    @abstractmethod
    async def connect_target(self) -> ConnectTarget:
        pass

    def start_messages(self) -> List[Frame]:
        return []

    def audio_message(self, chunk: bytes, index: int) -> Frame:
        return chunk

    def end_messages(self, chunks_sent: int) -> List[Frame]:
        return []

    @abstractmethod
    def parse(self, message: Frame) -> List[ProtocolEvent]:
        pass

    def join_segments(self, segments: List[str]) -> str:
        return self.segment_separator.join(s.strip() for s in segments if s and s.strip())


WebSocketConnect = Callable[..., Awaitable[Any]]


class StreamingSession:
    def __init__(
        self,
        protocol: StreamingProtocol,
        *,
        connect: WebSocketConnect = None,
        timeout: float = 60.0,
        open_timeout: float = 10.0,
        retry_policy: RetryPolicy = None,
        pace: bool = False,
        on_partial: Callable[[str], Any] = None,
        on_closed: Callable[["StreamingSession"], Any] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        debug: bool = False
    ):
        self.protocol = protocol
        self.connect = connect or websockets.connect
        self.timeout = timeout
        self.open_timeout = open_timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.pace = pace
        self.on_partial = on_partial
        self.on_closed = on_closed
        self.sleep = sleep
        self.debug = debug

        self.state = StreamState.CONNECTING
        self.ws = None
        self.chunks_sent = 0
        self.segments: List[str] = []
        self.last_partial: str = None
        self._events: asyncio.Queue = asyncio.Queue()
        self._reader_task: asyncio.Task = None
        self._cancelled = False
        self._cancel_event = asyncio.Event()
        self._closed_notified = False
        self._label = type(protocol).__name__

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    # Lifecycle

    async def start(self):
        """Connects and sends the start messages. Returns early, without a socket, when cancelled meanwhile."""
        target = await self.protocol.connect_target()
        ws = await self._unless_cancelled(
            with_retry(
                lambda: self._open(target),
                policy=self.retry_policy,
                sleep=self.sleep,
                label=f"{self._label} connect"
            )
        )
        if ws is not _CANCELLED:
            self.ws = ws
        if self._cancelled:
            logger.info(f"{self._label}: cancelled while connecting")
            await self.abort()
            return

        self.state = StreamState.OPEN
        if self.debug:
            logger.info(f"{self._label}: connected to {target.display_url or target.url.split('?', 1)[0]}")

        # Live partials need the socket drained while audio is still flowing
        if self.on_partial is not None:
            self._start_reader()

        for message in self.protocol.start_messages():
            if self._cancelled:
                return
            await self.ws.send(message)
        self.state = StreamState.STREAMING

    async def send_audio(self, audio: bytes):
        # Audio after cancel() is dropped, never sent
        if self._cancelled:
            return
        if self.state != StreamState.STREAMING:
            raise RuntimeError(f"Cannot send audio in state {self.state.value}")
        for chunk in iter_chunks(audio, self.protocol.chunk_size):
            if self._cancelled:
                return
            await self.ws.send(self.protocol.audio_message(chunk, self.chunks_sent))
            self.chunks_sent += 1
            if self.pace and not self._cancelled:
                await self.sleep(chunk_duration(len(chunk)))

    async def finish(self) -> SpeechResult:
        if self._cancelled:
            await self.abort()
            return self._cancelled_result()

        if self.state == StreamState.STREAMING:
            for message in self.protocol.end_messages(self.chunks_sent):
                await self.ws.send(message)
            self.state = StreamState.AWAITING_FINAL
        self._start_reader()
        try:
            result = await asyncio.wait_for(self._await_terminal(), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{self._label}: no final result within {self.timeout}s, aborting connection")
            await self.abort()
            return SpeechError("Transcription timeout", ErrorCode.TRANSCRIPTION_TIMEOUT)
        if self._cancelled:
            await self.abort()
        else:
            await self.close()
        return result

    async def run(self, audio: bytes) -> SpeechResult:
        """Stream a complete buffer and wait for the final transcript."""
        try:
            result = await asyncio.wait_for(self._unless_cancelled(self._run(audio)), self.timeout)
            if result is _CANCELLED:
                await self.abort()
                return self._cancelled_result()
            return result

        except asyncio.TimeoutError:
            logger.warning(f"{self._label}: timed out after {self.timeout}s, aborting connection")
            await self.abort()
            return SpeechError("Transcription timeout", ErrorCode.TRANSCRIPTION_TIMEOUT)

        except asyncio.CancelledError:
            await self.abort()
            raise

        except HandshakeRejected:
            await self.abort()
            raise

        except Exception as ex:
            await self.abort()
            if self._cancelled:
                return self._cancelled_result()
            if is_network_error(ex):
                return SpeechError(f"Network error: {ex}", ErrorCode.NETWORK_ERROR, str(ex))
            return SpeechError(f"Streaming failed: {ex}", ErrorCode.RECOGNITION_FAILED, str(ex))

    async def _run(self, audio: bytes) -> SpeechResult:
        await self.start()
        await self.send_audio(audio)
        return await self.finish()

    def cancel(self):
        """Abort the connection without a closing handshake and release the awaiting caller."""
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel_event.set()
        self._abort_transport()
        self._events.put_nowait(SessionCancelled())
        self._mark_closed()

    async def close(self):
        self._mark_closed()
        await self._stop_reader()
        if self.ws is None:
            return
        try:
            await asyncio.wait_for(self.ws.close(), 2.0)
        except Exception as ex:
            logger.debug(f"{self._label}: close handshake failed ({ex}), aborting")
            self._abort_transport()

    async def abort(self):
        self._mark_closed()
        self._abort_transport()
        await self._stop_reader()

    # Internals

    def _mark_closed(self):
        self.state = StreamState.CLOSED
        if self._closed_notified:
            return
        self._closed_notified = True
        if self.on_closed is not None:
            self.on_closed(self)

    async def _unless_cancelled(self, coro):
        """Awaits `coro` unless cancel() comes first, in which case `coro` is cancelled and _CANCELLED returned."""
        task = asyncio.ensure_future(coro)
        waiter = asyncio.ensure_future(self._cancel_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()

        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"{self._label}: error after cancel: {task.exception()}")
        return _CANCELLED

    async def _open(self, target: ConnectTarget):
        try:
            return await self.connect(
                target.url,
                additional_headers=target.headers or None,
                open_timeout=self.open_timeout,
                max_size=None
            )
        except websockets.exceptions.InvalidStatus as ex:
            status_code = ex.response.status_code
            body = ex.response.body.decode("utf-8", errors="replace") if ex.response.body else None
            logger.error(f"{self._label}: handshake rejected with HTTP {status_code}")
            raise HandshakeRejected(status_code, body) from ex

    def _start_reader(self):
        if self._reader_task is None and self.ws is not None:
            self._reader_task = asyncio.create_task(self._read_loop())

    async def _stop_reader(self):
        task, self._reader_task = self._reader_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _abort_transport(self):
        transport = getattr(self.ws, "transport", None)
        if transport is not None:
            transport.abort()

    async def _read_loop(self):
        try:
            async for message in self.ws:
                try:
                    updates = self.protocol.parse(message)
                except (ValueError, KeyError, TypeError, IndexError) as ex:
                    await self._events.put(MalformedMessage(ex))
                    return
                for update in updates:
                    # Partials go straight to the listener while audio is still flowing
                    if isinstance(update, TranscriptUpdate) and not update.is_final:
                        self._on_partial(update.text)
                    else:
                        await self._events.put(update)
            await self._events.put(self._closed_event())
        except websockets.exceptions.ConnectionClosed:
            await self._events.put(self._closed_event())
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            await self._events.put(SocketFailed(ex))

    def _closed_event(self) -> SocketClosed:
        return SocketClosed(
            code=getattr(self.ws, "close_code", None),
            reason=getattr(self.ws, "close_reason", "") or ""
        )

    async def _await_terminal(self) -> SpeechResult:
        while True:
            event = await self._events.get()

            if isinstance(event, SessionCancelled):
                return self._cancelled_result()

            if isinstance(event, SocketFailed):
                if self._cancelled:
                    return self._cancelled_result()
                ex = event.error
                if is_network_error(ex):
                    return SpeechError(f"Network error: {ex}", ErrorCode.NETWORK_ERROR, str(ex))
                return SpeechError(f"Connection failed: {ex}", ErrorCode.RECOGNITION_FAILED, str(ex))

            if isinstance(event, SocketClosed):
                if self._cancelled:
                    return self._cancelled_result()
                return self._on_closed(event)

            if isinstance(event, MalformedMessage):
                logger.error(f"{self._label}: malformed message: {event.error}")
                return SpeechError("Malformed response", ErrorCode.TRANSCRIPTION_ERROR, str(event.error))

            result = self._apply(event)
            if result is not None:
                return result

    def _on_partial(self, text: str):
        self.last_partial = text
        if self.debug:
            logger.info(f"{self._label}: partial: {text}")
        if self.on_partial is not None:
            try:
                self.on_partial(text)
            except Exception as ex:
                logger.warning(f"{self._label}: partial listener failed: {ex}")

    def _apply(self, update: ProtocolEvent) -> SpeechResult | None:
        if isinstance(update, TranscriptUpdate):
            if update.cumulative:
                self.segments = [update.text]
            else:
                self.segments.append(update.text)
            if self.debug:
                logger.info(f"{self._label}: final segment: {update.text}")
            return None

        if isinstance(update, StreamFailed):
            logger.error(f"{self._label}: {update.message}")
            return SpeechError(update.message, update.code, update.detail)

        # StreamCompleted
        text = update.text if update.text is not None else self.protocol.join_segments(self.segments)
        return self._text_result(text)

    def _on_closed(self, event: SocketClosed) -> SpeechResult:
        if self.segments:
            return self._text_result(self.protocol.join_segments(self.segments))
        if event.code in (None, 1000):
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
        return SpeechError(
            f"Connection closed unexpectedly: {event.code} {event.reason}".strip(),
            ErrorCode.RECOGNITION_FAILED,
            event.reason or None
        )

    def _text_result(self, text: str) -> SpeechResult:
        text = (text or "").strip()
        if not text:
            return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
        if self.debug:
            logger.info(f"{self._label}: recognized: {text}")
        return SpeechSuccess(text)

    def _cancelled_result(self) -> SpeechResult:
        return SpeechError("Cancelled", ErrorCode.UNKNOWN)
