"""Módulo de utilidades"""

from .cache import NarrationStore
from .backoff import with_retry

__all__ = ["NarrationStore", "with_retry"]
