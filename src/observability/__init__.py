"""Structured logging package."""

from src.observability.logger import configure_logging, create_operation_id, get_logger

__all__ = ["configure_logging", "create_operation_id", "get_logger"]
