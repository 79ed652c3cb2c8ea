"""Health check and status API routes."""

import logging

from flask import Blueprint, jsonify

from docchat.client.routes.config import get_config

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Returns:
        JSON with service status and the number of indexed chunks
    """
    pipeline = get_config().pipeline
    return jsonify(
        {
            "status": "healthy",
            "pipeline": "initialized" if pipeline else "not initialized",
            "indexed_chunks": len(pipeline.index) if pipeline else 0,
        }
    )
