"""Document management API routes."""

import logging

from flask import Blueprint, jsonify

from docchat.client.routes.config import get_config
from docchat.config import RagConfig
from docchat.service.references import strip_generated_prefix

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__)


@documents_bp.route("/api/documents", methods=["GET"])
def list_documents():
    """List the documents that have indexed chunks.

    Response:
        {
            "documents": [
                {"id": "report.pdf", "name": "report.pdf", "size_bytes": 1024, ...}
            ],
            "indexed_chunks": 12
        }
    """
    pipeline = get_config().pipeline
    documents = [
        {
            "id": doc.identifier,
            "name": strip_generated_prefix(doc.filename),
            "filename": doc.filename,
            "size_bytes": doc.size_bytes,
            "content_type": doc.content_type,
        }
        for doc in pipeline.ingestor.documents
    ]
    return jsonify({"documents": documents, "indexed_chunks": len(pipeline.index)})


@documents_bp.route("/api/documents/<path:source_id>", methods=["DELETE"])
def delete_document(source_id: str):
    """Remove a document and its chunks from the index."""
    pipeline = get_config().pipeline
    known = {doc.identifier for doc in pipeline.ingestor.documents}
    removed = pipeline.ingestor.delete_document(source_id)
    if source_id not in known and not removed:
        return jsonify({"error": f"Document '{source_id}' not found"}), 404
    return jsonify({"id": source_id, "chunks_removed": removed})


@documents_bp.route("/api/documents/reindex", methods=["POST"])
def reindex():
    """Re-ingest every supported file in the upload directory.

    Response:
        {"files": 3, "indexed": 2, "failed": 1, "reports": [...]}
    """
    config = get_config()
    upload_dir = config.upload_dir or RagConfig.get_upload_dir()
    logger.info(f"🔄 Reindexing {upload_dir}")
    try:
        for document in config.pipeline.ingestor.documents:
            config.pipeline.ingestor.delete_document(document.identifier)
        reports = config.pipeline.ingestor.ingest_directory(
            upload_dir, max_workers=RagConfig.get_ingest_workers()
        )
    except Exception as e:
        logger.error(f"❌ Reindex failed: {e}", exc_info=True)
        return jsonify({"error": f"Internal server error: {str(e)}"}), 500

    return jsonify(
        {
            "files": len(reports),
            "indexed": sum(1 for r in reports if r.status in ("indexed", "partial")),
            "failed": sum(1 for r in reports if r.status == "failed"),
            "reports": [
                {
                    "id": r.source_id,
                    "status": r.status,
                    "chunks_total": r.chunks_total,
                    "chunks_indexed": r.chunks_indexed,
                    "errors": r.errors,
                }
                for r in reports
            ],
        }
    )
