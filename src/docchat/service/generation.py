"""Answer generation, blocking and streamed.

Streaming runs as a small state machine::

    IDLE -> STREAMING -> COMPLETED
                      -> FAILED

The LLM service pushes events into an :class:`EventChannel` from a producer
thread. The session consumes the channel one event at a time, forwards each
fragment to the caller's :class:`OutputSink` as a ``token`` event and, on
completion, annotates the accumulated answer with references, persists it and
emits ``done``. Nothing is persisted on failure.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from docchat.constants import DEFAULT_STREAM_TIMEOUT_SECONDS
from docchat.errors import GenerationError, SinkClosedError
from docchat.llm.base import LLMService
from docchat.service.conversation import ASSISTANT, ConversationTurn, MessageStore
from docchat.service.references import ReferenceAnnotator

logger = logging.getLogger(__name__)

TOKEN_EVENT = "token"
DONE_EVENT = "done"


@dataclass(frozen=True)
class Fragment:
    """Incremental text produced by the generator."""

    text: str


@dataclass(frozen=True)
class Complete:
    """The generator finished; ``text`` is its full answer when it supplies one."""

    text: str | None = None


@dataclass(frozen=True)
class Error:
    """The generator failed."""

    cause: BaseException


StreamEvent = Fragment | Complete | Error


class StreamState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class OutputSink(Protocol):
    """Client-facing destination of a streamed answer."""

    def send(self, event: str, data: str) -> None:
        """Deliver one named event. Raises SinkClosedError if the client is gone."""
        ...

    def fail(self, cause: BaseException) -> None:
        """Terminate the stream abnormally."""
        ...

    def close(self) -> None:
        """Release the sink. Idempotent."""
        ...


class EventChannel:
    """Queue carrying generator callbacks as tagged stream events.

    Implements the StreamSink protocol for LLM services. After :meth:`close`,
    ``on_fragment`` raises :class:`SinkClosedError` so the producer stops and
    any later events are dropped.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue = queue.Queue()
        self._closed = threading.Event()
        self._terminated = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def terminated(self) -> bool:
        """True once the generator has signalled completion or an error."""
        return self._terminated.is_set()

    def on_fragment(self, text: str) -> None:
        if self._closed.is_set():
            raise SinkClosedError("Stream consumer has stopped")
        self._queue.put(Fragment(text or ""))

    def on_complete(self, final_text: str | None = None) -> None:
        self._terminated.set()
        if not self._closed.is_set():
            self._queue.put(Complete(final_text))

    def on_error(self, cause: BaseException) -> None:
        self._terminated.set()
        if not self._closed.is_set():
            self._queue.put(Error(cause))

    def next_event(self, timeout: float | None = None) -> StreamEvent:
        """Wait for the next event. Raises queue.Empty on timeout."""
        return self._queue.get(timeout=timeout)

    def close(self) -> None:
        self._closed.set()


class StreamingSession:
    """One streamed answer for one chat.

    Attributes:
        state: Current StreamState
        fragments: Fragments successfully forwarded to the sink
        answer: Final annotated answer once COMPLETED, else None
        timed_out: True when the sink's idle timeout ended the session
    """

    def __init__(
        self,
        llm_service: LLMService,
        message_store: MessageStore,
        annotator: ReferenceAnnotator,
        chat_id: str,
        turns: list[ConversationTurn],
        sink: OutputSink,
        references: list[str] | None = None,
        idle_timeout: float = DEFAULT_STREAM_TIMEOUT_SECONDS,
    ) -> None:
        self.llm_service = llm_service
        self.message_store = message_store
        self.annotator = annotator
        self.chat_id = chat_id
        self.turns = list(turns)
        self.sink = sink
        self.references = list(references or [])
        self.idle_timeout = idle_timeout

        self.state = StreamState.IDLE
        self.fragments: list[str] = []
        self.answer: str | None = None
        self.timed_out = False
        self._channel = EventChannel()

    def run(self) -> StreamState:
        """Drive the session to COMPLETED or FAILED and release the sink."""
        if self.state is not StreamState.IDLE:
            raise RuntimeError(f"Streaming session already {self.state.value}")

        t0 = time.monotonic()
        messages = [turn.to_message() for turn in self.turns]
        producer = threading.Thread(
            target=self._produce,
            args=(messages,),
            name=f"generation-{self.chat_id}",
            daemon=True,
        )
        self.state = StreamState.STREAMING
        producer.start()

        try:
            while self.state is StreamState.STREAMING:
                try:
                    event = self._channel.next_event(timeout=self.idle_timeout)
                except queue.Empty:
                    self._on_timeout()
                    break

                if isinstance(event, Fragment):
                    self._forward(event.text)
                elif isinstance(event, Complete):
                    self._complete(event.text)
                else:
                    logger.error(f"❌ Generation failed for chat {self.chat_id}: {event.cause}")
                    self._fail(GenerationError(str(event.cause)))
        finally:
            self._channel.close()

        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.info(
            f"🌊 Stream {self.state.value} for chat {self.chat_id}: "
            f"{len(self.fragments)} fragments, costMs={elapsed_ms}"
        )
        return self.state

    def _produce(self, messages: list[dict]) -> None:
        channel = self._channel
        try:
            self.llm_service.stream_response(messages, channel)
        except SinkClosedError:
            return
        except Exception as e:
            channel.on_error(e)
            return
        # A provider that returns without signalling has finished.
        if not channel.terminated:
            channel.on_complete(None)

    def _forward(self, text: str) -> None:
        try:
            self.sink.send(TOKEN_EVENT, text)
        except Exception as e:
            logger.warning(f"⚠️ Could not forward fragment for chat {self.chat_id}: {e}")
            self._fail(e)
            return
        self.fragments.append(text)

    def _complete(self, final_text: str | None) -> None:
        answer = "".join(self.fragments)
        if not self.fragments and final_text:
            answer = final_text

        annotated = self.annotator.annotate(answer, self.references)
        try:
            self.message_store.append(self.chat_id, ASSISTANT, annotated)
        except Exception as e:
            logger.error(f"❌ Failed to save answer for chat {self.chat_id}: {e}", exc_info=True)
            self._fail(e)
            return

        try:
            self.sink.send(DONE_EVENT, "")
        except Exception as e:
            logger.warning(f"⚠️ Answer saved but done event not delivered for chat {self.chat_id}: {e}")
            self._fail(e)
            return

        self.answer = annotated
        self.state = StreamState.COMPLETED
        self._release()

    def _fail(self, cause: BaseException) -> None:
        self.state = StreamState.FAILED
        self._channel.close()
        try:
            self.sink.fail(cause)
        except Exception:
            logger.debug("Sink rejected failure notification", exc_info=True)
        self._release()

    def _on_timeout(self) -> None:
        # Idle timeout is a client-side teardown, not an application error.
        logger.warning(f"⏱️ Stream idle for {self.idle_timeout}s, closing chat {self.chat_id}")
        self.timed_out = True
        self.state = StreamState.COMPLETED
        self._channel.close()
        self._release()

    def _release(self) -> None:
        try:
            self.sink.close()
        except Exception:
            logger.debug("Sink close failed", exc_info=True)


class GenerationOrchestrator:
    """Runs the generator over assembled conversation turns.

    Args:
        llm_service: Generator implementation
        message_store: Where streamed answers are persisted
        annotator: Appends the reference block to completed answers
        idle_timeout: Seconds a stream may wait for the next generator event
    """

    def __init__(
        self,
        llm_service: LLMService,
        message_store: MessageStore,
        annotator: ReferenceAnnotator | None = None,
        idle_timeout: float = DEFAULT_STREAM_TIMEOUT_SECONDS,
    ) -> None:
        self.llm_service = llm_service
        self.message_store = message_store
        self.annotator = annotator or ReferenceAnnotator()
        self.idle_timeout = idle_timeout

    async def generate(self, turns: list[ConversationTurn]) -> str:
        """Generate a complete answer in one call.

        Raises:
            GenerationError: If the provider fails; no retry is attempted
        """
        messages = [turn.to_message() for turn in turns]
        try:
            return await self.llm_service.generate_response(messages)
        except Exception as e:
            raise GenerationError(f"{type(e).__name__}: {e}") from e

    def stream(
        self,
        chat_id: str,
        turns: list[ConversationTurn],
        sink: OutputSink,
        references: list[str] | None = None,
    ) -> StreamingSession:
        """Stream an answer into ``sink`` and return the finished session.

        Blocks the calling thread until the session ends; callers serving
        requests run it on a worker thread.
        """
        session = StreamingSession(
            llm_service=self.llm_service,
            message_store=self.message_store,
            annotator=self.annotator,
            chat_id=chat_id,
            turns=turns,
            sink=sink,
            references=references,
            idle_timeout=self.idle_timeout,
        )
        session.run()
        return session
