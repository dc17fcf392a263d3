"""Utility functions for blueshift."""

from blueshift.utils.fetcher import ArtifactFetcher, decode_manifest
from blueshift.utils.logging import configure_logging, get_deployment_logger, get_logger

__all__ = [
    "ArtifactFetcher",
    "configure_logging",
    "decode_manifest",
    "get_deployment_logger",
    "get_logger",
]
