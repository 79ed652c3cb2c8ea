"""Composition of the RAG components into a chat pipeline."""

import logging
import time
from dataclasses import dataclass

from docchat.config import RagConfig
from docchat.llm import get_llm_service
from docchat.llm.base import LLMService
from docchat.service.chunking import TextChunker
from docchat.service.conversation import (
    ASSISTANT,
    USER,
    ConversationContextBuilder,
    ConversationTurn,
    InMemoryMessageStore,
    MessageStore,
)
from docchat.service.generation import GenerationOrchestrator, OutputSink, StreamingSession
from docchat.service.index.memory import InMemoryVectorIndex, VectorIndex
from docchat.service.index.models import RetrievalMatch
from docchat.service.ingestion import Ingestor
from docchat.service.references import ReferenceAnnotator
from docchat.service.retrieval import Retriever

logger = logging.getLogger(__name__)


@dataclass
class PreparedTurn:
    """Everything resolved before the generator is called."""

    chat_id: str
    question: str
    matches: list[RetrievalMatch]
    turns: list[ConversationTurn]

    @property
    def references(self) -> list[str]:
        return [match.source_id for match in self.matches]


class RagPipeline:
    """Answers chat questions from the indexed documents.

    Args:
        ingestor: Builds and maintains the index
        retriever: Finds passages for a question
        context_builder: Assembles system, history and user turns
        orchestrator: Runs the generator
        message_store: Chat history
        top_k: Passages retrieved per question
    """

    def __init__(
        self,
        ingestor: Ingestor,
        retriever: Retriever,
        context_builder: ConversationContextBuilder,
        orchestrator: GenerationOrchestrator,
        message_store: MessageStore,
        top_k: int,
    ) -> None:
        self.ingestor = ingestor
        self.retriever = retriever
        self.context_builder = context_builder
        self.orchestrator = orchestrator
        self.message_store = message_store
        self.top_k = top_k

    @property
    def index(self) -> VectorIndex:
        return self.ingestor.index

    def search(self, query: str, k: int | None = None) -> list[RetrievalMatch]:
        """Retrieve passages without generating an answer."""
        return self.retriever.retrieve(query, self.top_k if k is None else k)

    def prepare(self, chat_id: str, question: str) -> PreparedTurn:
        """Retrieve context, build the turns and record the user's question.

        History is read before the question is appended so it is not sent twice.

        Raises:
            EmbeddingError: If the question cannot be embedded
        """
        matches = self.retriever.retrieve(question, self.top_k)
        turns = self.context_builder.build(chat_id, [m.chunk for m in matches], question)
        self.message_store.append(chat_id, USER, question)
        return PreparedTurn(chat_id=chat_id, question=question, matches=matches, turns=turns)

    async def answer(self, chat_id: str, question: str) -> str:
        """Answer a question in one blocking call and persist the reply.

        Returns:
            str: The reference-annotated answer

        Raises:
            EmbeddingError: If the question cannot be embedded
            GenerationError: If the generator fails
        """
        t0 = time.monotonic()
        prepared = self.prepare(chat_id, question)
        answer = await self.orchestrator.generate(prepared.turns)
        annotated = self.orchestrator.annotator.annotate(answer, prepared.references)
        self.message_store.append(chat_id, ASSISTANT, annotated)
        elapsed_ms = int((time.monotonic() - t0) * 1000)
        logger.info(
            f"✅ Answered chat {chat_id}: hits={len(prepared.matches)}, "
            f"answerLen={len(annotated)}, costMs={elapsed_ms}"
        )
        return annotated

    def stream(self, prepared: PreparedTurn, sink: OutputSink) -> StreamingSession:
        """Stream the answer for a prepared turn into ``sink``."""
        return self.orchestrator.stream(
            prepared.chat_id, prepared.turns, sink, references=prepared.references
        )


def build_pipeline(
    llm_service: LLMService | None = None,
    message_store: MessageStore | None = None,
    index: VectorIndex | None = None,
) -> RagPipeline:
    """Wire the pipeline components from RagConfig settings.

    Args:
        llm_service: Embedder and generator (default: from get_llm_service())
        message_store: Chat history store (default: in-memory)
        index: Vector index (default: in-memory)

    Returns:
        RagPipeline: Ready-to-use pipeline with an empty or supplied index
    """
    llm_service = llm_service or get_llm_service()
    message_store = message_store or InMemoryMessageStore()
    index = index if index is not None else InMemoryVectorIndex()

    chunker = TextChunker(RagConfig.get_chunk_size(), RagConfig.get_chunk_overlap())
    ingestor = Ingestor(chunker=chunker, embedder=llm_service, index=index)
    retriever = Retriever(embedder=llm_service, index=index)
    context_builder = ConversationContextBuilder(
        message_store, max_history=RagConfig.get_max_history()
    )
    orchestrator = GenerationOrchestrator(
        llm_service,
        message_store,
        annotator=ReferenceAnnotator(),
        idle_timeout=RagConfig.get_stream_timeout(),
    )
    return RagPipeline(
        ingestor=ingestor,
        retriever=retriever,
        context_builder=context_builder,
        orchestrator=orchestrator,
        message_store=message_store,
        top_k=RagConfig.get_top_k(),
    )
