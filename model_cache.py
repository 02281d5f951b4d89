"""
Model Cache and Coefficient Sources
===================================

Loads the WMM coefficient set once and keeps it for the life of the
process. Concurrent callers, whether threads or asyncio tasks, share a
single in-flight load; a failed load is not retained so the next call
starts again from scratch.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional, Tuple, Union

import requests

from wmm_coefficients import Model, ModelLoadError, parse_cof

logger = logging.getLogger(__name__)

CoefficientSource = Callable[[], Union[str, bytes]]


class FileCoefficientSource:
    """Reads a coefficient file from local disk."""

    def __init__(self, path: str):
        self.path = path

    def __call__(self) -> bytes:
        logger.info(f"Loading WMM coefficients from {self.path}")
        with open(self.path, 'rb') as f:
            return f.read()

    def __repr__(self):
        return f"FileCoefficientSource({self.path!r})"


class UrlCoefficientSource:
    """Fetches a coefficient file over HTTP."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    def __call__(self) -> str:
        logger.info(f"Fetching WMM coefficients from {self.url}")
        response = requests.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        return response.text

    def __repr__(self):
        return f"UrlCoefficientSource({self.url!r})"


class ModelCache:
    """
    Single-flight memoization of the coefficient Model.

    The cell holds the pending Future itself, not just its result, so every
    caller that arrives while a load is running waits on the same outcome.
    """

    def __init__(self, source: CoefficientSource):
        self.source = source
        self._lock = threading.Lock()
        self._future: Optional[Future] = None
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        future = self._future
        if future is None or future.cancelled() or not future.done():
            return False
        return future.exception() is None

    def _claim(self) -> Tuple[Future, bool]:
        """Return the shared future and whether the caller must run the load."""
        with self._lock:
            if self._future is None:
                future = Future()
                # A running future can no longer be cancelled by any waiter
                future.set_running_or_notify_cancel()
                self._future = future
                self.load_count += 1
                return future, True
            return self._future, False

    def _clear(self, future: Future):
        with self._lock:
            if self._future is future:
                self._future = None

    def _run_load(self, future: Future):
        try:
            model = parse_cof(self.source())
        except Exception as e:
            self._clear(future)
            if isinstance(e, ModelLoadError):
                error = e
            else:
                error = ModelLoadError(f"Could not read coefficients from {self.source!r}: {e}")
                error.__cause__ = e
            logger.error(f"WMM model load failed: {error}")
            future.set_exception(error)
            return

        logger.info(f"WMM model loaded: epoch={model.epoch}, nmax={model.nmax}")
        future.set_result(model)

    def load_model(self, timeout: Optional[float] = None) -> Model:
        """
        Return the cached Model, loading it on first use.

        Args:
            timeout: Seconds to wait for a load started by another caller

        Raises:
            ModelLoadError: If the load fails
            concurrent.futures.TimeoutError: If the wait times out
        """
        future, owner = self._claim()
        if owner:
            self._run_load(future)
        return future.result(timeout=timeout)

    async def load_model_async(self) -> Model:
        """
        Asyncio variant of load_model; the load itself runs in the default executor.

        Cancelling the calling task abandons only its own wait. The shared
        load keeps running and later callers still receive its result.
        """
        future, owner = self._claim()
        if owner:
            loop = asyncio.get_running_loop()
            await asyncio.shield(loop.run_in_executor(None, self._run_load, future))
        return await asyncio.shield(asyncio.wrap_future(future))

    def reset(self):
        """Drop the cached model so the next call reloads it."""
        with self._lock:
            self._future = None
        logger.info("WMM model cache cleared")
