"""
Loading of the optional recognition model.

A game that names a ``model_uri`` gets its model fetched on a background
thread. The session sees the fetch through a ``ModelHandle`` that is
PENDING, LOADED or FAILED, and keeps working (with placeholder scoring)
while it is pending or after it failed.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import Future, wait
from enum import Enum
from typing import Any, Callable, Optional, Sequence
from urllib.parse import urlparse

# TensorFlow is only needed to actually load a Keras model; guard its import so
# the rest of the game (and its tests) work without it. The loader raises a
# clear error when used without TensorFlow.
try:
    import tensorflow as tf  # type: ignore
    from tensorflow import keras  # type: ignore
    _TF_AVAILABLE = True
    _TF_IMPORT_ERROR = None
except Exception as _e:  # pragma: no cover - environment dependent
    tf = None  # type: ignore
    keras = None  # type: ignore
    _TF_AVAILABLE = False
    _TF_IMPORT_ERROR = _e

from .config import Settings
from .errors import ModelLoadError, ModelLoadTimeout

logger = logging.getLogger(__name__)

ModelLoaderFn = Callable[[str], Any]


def _ensure_tf() -> None:
    if not _TF_AVAILABLE:
        raise ImportError(
            "TensorFlow is required to load the digit recognition model but is not available. "
            f"Original import error: {_TF_IMPORT_ERROR}"
        )


class KerasModelLoader:
    """Resolve a model URI to a file and load it with Keras."""

    def __init__(self, model_dirs: Sequence[str] = (), cache_dir: Optional[str] = None) -> None:
        self.model_dirs = tuple(model_dirs)
        self.cache_dir = cache_dir

    @classmethod
    def from_settings(cls, settings: Settings) -> "KerasModelLoader":
        return cls(settings.model_dirs, settings.cache_dir)

    def resolve(self, uri: str) -> str:
        """Return a local path for ``uri``, downloading http(s) URIs into the Keras cache."""
        parsed = urlparse(uri)
        if parsed.scheme in ("http", "https"):
            _ensure_tf()
            filename = os.path.basename(parsed.path) or "model.h5"
            return keras.utils.get_file(
                fname=filename,
                origin=uri,
                cache_dir=self.cache_dir,
                cache_subdir="tracing_games",
            )
        if parsed.scheme == "file":
            uri = parsed.path

        path = os.path.expanduser(uri)
        if os.path.isabs(path) or os.path.exists(path):
            if os.path.exists(path):
                return path
            raise FileNotFoundError(f"Model file not found: {path}")
        for base_dir in self.model_dirs:
            candidate = os.path.join(base_dir, path)
            if os.path.exists(candidate):
                return candidate
        searched = ", ".join(self.model_dirs) or "<none>"
        raise FileNotFoundError(f"Model {uri!r} not found in model directories: {searched}")

    def __call__(self, uri: str) -> Any:
        _ensure_tf()
        path = self.resolve(uri)
        logger.debug("Loading Keras model from %s", path)
        return keras.models.load_model(path, compile=False)


class LoadState(Enum):
    PENDING = "pending"
    LOADED = "loaded"
    FAILED = "failed"


class ModelHandle:
    """
    Future-like view of one background model fetch.

    The fetch runs on a daemon thread. ``state`` polls without blocking;
    ``wait`` blocks until the fetch settles or its deadline passes. A fetch
    that finishes after its deadline is FAILED with ``ModelLoadTimeout``,
    whether or not anyone looked at the handle before it finished.
    """

    def __init__(self, uri: str, future: "Future[Any]", timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.uri = uri
        self.timeout = timeout
        self._future = future
        self._clock = clock
        self._started = clock()
        self._finished: Optional[float] = None
        self._state = LoadState.PENDING
        self._model: Any = None
        self._error: Optional[ModelLoadError] = None

    @classmethod
    def start(cls, uri: str, loader: ModelLoaderFn, timeout: Optional[float] = None) -> "ModelHandle":
        future: "Future[Any]" = Future()
        handle = cls(uri, future, timeout)

        def worker():
            if not future.set_running_or_notify_cancel():
                return
            try:
                model = loader(uri)
            except BaseException as exc:
                handle._finished = handle._clock()
                future.set_exception(exc)
            else:
                handle._finished = handle._clock()
                future.set_result(model)

        threading.Thread(target=worker, name=f"model-load:{uri}", daemon=True).start()
        logger.info("Loading recognition model from %s", uri)
        return handle

    @property
    def state(self) -> LoadState:
        self._poll()
        return self._state

    @property
    def done(self) -> bool:
        return self.state is not LoadState.PENDING

    @property
    def model(self) -> Any:
        return self._model if self.state is LoadState.LOADED else None

    @property
    def error(self) -> Optional[ModelLoadError]:
        self._poll()
        return self._error

    def elapsed(self) -> float:
        return self._clock() - self._started

    def wait(self, timeout: Optional[float] = None) -> LoadState:
        """Block until the fetch settles, the deadline passes, or ``timeout`` elapses."""
        if self._state is LoadState.PENDING:
            remaining = self._remaining()
            hits_deadline = remaining is not None and (timeout is None or remaining <= timeout)
            done, _ = wait([self._future], timeout=remaining if hits_deadline else timeout)
            if not done and hits_deadline:
                self._fail(ModelLoadTimeout(self.uri, self.timeout))
        return self.state

    def _remaining(self) -> Optional[float]:
        if self.timeout is None:
            return None
        return max(0.0, self.timeout - self.elapsed())

    def _poll(self) -> None:
        if self._state is not LoadState.PENDING:
            return
        if self._future.done():
            self._settle()
        elif self.timeout is not None and self.elapsed() >= self.timeout:
            self._fail(ModelLoadTimeout(self.uri, self.timeout))

    def _finished_late(self) -> bool:
        if self.timeout is None:
            return False
        finished = self._finished if self._finished is not None else self._clock()
        return finished - self._started > self.timeout

    def _settle(self) -> None:
        # Judged by when the worker finished, not by when the handle is read
        if self._finished_late():
            self._fail(ModelLoadTimeout(self.uri, self.timeout))
            return
        exc = self._future.exception()
        if exc is None:
            self._model = self._future.result()
            self._state = LoadState.LOADED
            logger.info("Loaded recognition model from %s in %.2fs", self.uri, self.elapsed())
            return
        if isinstance(exc, ModelLoadError):
            error = exc
        else:
            error = ModelLoadError(self.uri, exc)
            error.__cause__ = exc
        self._fail(error)

    def _fail(self, error: ModelLoadError) -> None:
        self._error = error
        self._state = LoadState.FAILED
        if isinstance(error, ModelLoadTimeout):
            logger.warning("Recognition model load timed out after %.1fs (%s); "
                           "falling back to placeholder scoring", error.timeout, self.uri)
        else:
            logger.warning("Recognition model load failed (%s): %s; "
                           "falling back to placeholder scoring", self.uri, error.reason)
