"""Flask web application for document chat.

This module exposes the RAG pipeline over HTTP: blocking and streamed chat
answers, chat history, and document management. On startup the upload
directory is re-indexed in a background thread so the server becomes
available immediately, whatever the state of the documents on disk.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from docchat.client.routes import chat_bp, documents_bp, health_bp, init_config
from docchat.config import RagConfig
from docchat.service.pipeline import RagPipeline, build_pipeline

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded")

# Create Flask app
app = Flask(__name__)
logger.debug("Flask app created")

# Register blueprints
app.register_blueprint(chat_bp)
app.register_blueprint(documents_bp)
app.register_blueprint(health_bp)


def bootstrap_index(pipeline: RagPipeline, upload_dir: Path) -> None:
    """Index every supported file already in the upload directory.

    Runs in a background thread at startup. Failures are logged and never
    propagate, so a bad file or a missing directory cannot stop the server.

    Args:
        pipeline: Pipeline whose index is populated
        upload_dir: Directory to walk recursively
    """
    logger.info(f"🔄 Bootstrapping index from {upload_dir}")
    try:
        reports = pipeline.ingestor.ingest_directory(
            upload_dir, max_workers=RagConfig.get_ingest_workers()
        )
    except Exception as e:
        logger.error(f"❌ Bootstrap indexing failed: {e}", exc_info=True)
        return
    logger.info(f"✅ Bootstrap finished: {len(reports)} files, {len(pipeline.index)} chunks indexed")


def initialize_services(
    pipeline: RagPipeline | None = None, bootstrap: bool = True
) -> RagPipeline:
    """Build the pipeline, configure the routes and start the bootstrap.

    Args:
        pipeline: Pre-built pipeline (default: build_pipeline())
        bootstrap: Re-index the upload directory in the background

    Returns:
        RagPipeline: The pipeline serving requests
    """
    logger.info("🔧 Initializing services...")

    if pipeline is None:
        pipeline = build_pipeline()
    logger.info("✅ RAG pipeline initialized successfully")

    upload_dir = RagConfig.get_upload_dir()
    executor = ThreadPoolExecutor(
        max_workers=RagConfig.get_stream_workers(), thread_name_prefix="docchat-stream"
    )
    init_config(pipeline=pipeline, executor=executor, upload_dir=upload_dir)

    if bootstrap:
        threading.Thread(
            target=bootstrap_index,
            args=(pipeline, upload_dir),
            name="docchat-bootstrap",
            daemon=True,
        ).start()
    return pipeline


def create_app():
    """Factory function for creating the Flask application.

    This function is used by WSGI servers like gunicorn to create the app.
    It initializes services before returning the app instance.

    Returns:
        Flask: The configured Flask application instance
    """
    initialize_services()
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting DocChat Flask application...")

    print("📦 Initializing RAG pipeline...")
    initialize_services()
    print("✅ Services initialized successfully")

    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "production") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    # The reloader would run the bootstrap twice.
    app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)


if __name__ == "__main__":
    main()
