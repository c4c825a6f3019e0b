"""
Process-wide lazily loaded models.

Loading a model is slow and its weights are large, so each model name is
loaded at most once per process and the instance is shared by every
provider that asks for it.
"""

import threading
from collections.abc import Callable
from typing import Any

from memoria.core.logging import get_logger

logger = get_logger("embedding.shared")


class SharedModelHandle:
    """Thread-safe initialize-once holder for one loaded model."""

    def __init__(self, name: str, loader: Callable[[], Any]):
        self.name = name
        self._loader = loader
        self._model: Any = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._model is not None

    def get(self) -> Any:
        """Return the model, loading it on first call.

        Concurrent first callers block on the lock; exactly one runs the
        loader. A loader failure leaves the handle empty so a later call
        can retry.
        """
        model = self._model
        if model is not None:
            return model
        with self._lock:
            if self._model is None:
                logger.info(f"Loading embedding model: {self.name}")
                self._model = self._loader()
                logger.info(f"Embedding model loaded: {self.name}")
            return self._model


_handles: dict[str, SharedModelHandle] = {}
_handles_lock = threading.Lock()


def shared_model_handle(name: str, loader: Callable[[], Any]) -> SharedModelHandle:
    """Get or create the single handle for model `name`.

    The loader of the first caller wins; later loaders for the same name
    are ignored.
    """
    with _handles_lock:
        handle = _handles.get(name)
        if handle is None:
            handle = SharedModelHandle(name, loader)
            _handles[name] = handle
        return handle
