"""Observability utilities for the interview practice service."""
from .logger import log_event

__all__ = ["log_event"]
