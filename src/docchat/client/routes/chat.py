"""Chat API routes using the RAG pipeline."""

import logging

from flask import Blueprint, Response, jsonify, request, stream_with_context

from docchat.async_utils import run_async
from docchat.client.routes.config import get_config
from docchat.client.sse import SSEOutputSink
from docchat.config import RagConfig
from docchat.errors import EmbeddingError, GenerationError

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)


def _read_message():
    """Return the message text of a chat request, or None if missing."""
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("message"), str) or not data["message"].strip():
        return None
    return data["message"]


def _run_stream(pipeline, prepared, sink: SSEOutputSink) -> None:
    """Run a streaming session on a worker thread; any escaping error aborts the response."""
    try:
        pipeline.stream(prepared, sink)
    except Exception as e:
        logger.error(f"❌ Streaming session for chat {prepared.chat_id} crashed: {e}", exc_info=True)
        sink.fail(e)
    finally:
        sink.close()


@chat_bp.route("/api/chat/<chat_id>/send", methods=["POST"])
def send(chat_id: str):
    """Answer a chat message in one blocking call.

    Request:
        {"message": "What does the report conclude?"}

    Response:
        {
            "chat_id": "abc",
            "answer": "It concludes...\\n\\n---\\n\\n**📚 References:**\\n\\n- report.pdf\\n"
        }

    Returns:
        JSON response with the annotated answer
    """
    config = get_config()
    message = _read_message()
    if message is None:
        logger.warning("❌ Missing 'message' field in request")
        return jsonify({"error": "Missing 'message' field in request"}), 400

    logger.info(f"📨 Chat {chat_id}: '{message[:100]}'")
    try:
        answer = run_async(config.pipeline.answer(chat_id, message))
    except EmbeddingError as e:
        logger.error(f"❌ Could not embed question for chat {chat_id}: {e}")
        return jsonify({"error": f"Retrieval failed: {e}"}), 500
    except GenerationError as e:
        logger.error(f"❌ Generation failed for chat {chat_id}: {e}")
        return jsonify({"error": f"Generation failed: {e}"}), 500
    except Exception as e:
        logger.error(f"❌ Error processing chat request: {e}", exc_info=True)
        return jsonify({"error": f"Internal server error: {str(e)}"}), 500

    return jsonify({"chat_id": chat_id, "answer": answer})


@chat_bp.route("/api/chat/<chat_id>/stream", methods=["POST"])
def stream(chat_id: str):
    """Stream the answer to a chat message as Server-Sent Events.

    Emits one ``token`` event per generated fragment, then an empty ``done``
    event once the annotated answer has been saved. A generation failure
    aborts the response without ``done``.

    Returns:
        text/event-stream response
    """
    config = get_config()
    message = _read_message()
    if message is None:
        logger.warning("❌ Missing 'message' field in request")
        return jsonify({"error": "Missing 'message' field in request"}), 400

    logger.info(f"🌊 Streaming chat {chat_id}: '{message[:100]}'")
    try:
        prepared = config.pipeline.prepare(chat_id, message)
    except EmbeddingError as e:
        logger.error(f"❌ Could not embed question for chat {chat_id}: {e}")
        return jsonify({"error": f"Retrieval failed: {e}"}), 500
    except Exception as e:
        logger.error(f"❌ Error preparing chat stream: {e}", exc_info=True)
        return jsonify({"error": f"Internal server error: {str(e)}"}), 500

    sink = SSEOutputSink(idle_timeout=RagConfig.get_stream_timeout())
    config.executor.submit(_run_stream, config.pipeline, prepared, sink)
    return Response(
        stream_with_context(sink.stream()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@chat_bp.route("/api/chat/<chat_id>/history", methods=["GET"])
def history(chat_id: str):
    """Return the saved turns of a chat, oldest first.

    Query params:
        limit: Optional maximum number of recent turns
    """
    config = get_config()
    limit = request.args.get("limit", type=int)
    turns = config.pipeline.message_store.list_recent(chat_id, limit)
    return jsonify(
        {
            "chat_id": chat_id,
            "messages": [
                {"role": t.role, "content": t.content, "position": t.position} for t in turns
            ],
        }
    )
