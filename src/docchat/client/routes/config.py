"""Shared configuration for route modules."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    Holds the pipeline the routes answer from, the executor that runs
    streaming sessions off the request thread, and the document directory
    that a reindex walks.
    """

    pipeline: Any = None
    executor: ThreadPoolExecutor | None = None
    upload_dir: Path | None = None


# Single shared config instance
_config = RouteConfig()


def get_config() -> RouteConfig:
    """Get the shared route configuration.

    Returns:
        RouteConfig instance with current settings
    """
    return _config


def init_config(
    pipeline: Any = None,
    executor: ThreadPoolExecutor | None = None,
    upload_dir: Path | None = None,
) -> None:
    """Initialize the shared route configuration.

    Args:
        pipeline: RagPipeline instance
        executor: Executor for streaming sessions
        upload_dir: Directory of documents to index
    """
    if pipeline is not None:
        _config.pipeline = pipeline
    if executor is not None:
        _config.executor = executor
    if upload_dir is not None:
        _config.upload_dir = upload_dir
