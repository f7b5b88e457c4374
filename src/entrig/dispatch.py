"""
Execution contexts for the Entrig SDK.

Each SDK instance owns two contexts:
- background: a thread pool for HTTP, storage and token-provider calls
- ui: a single thread that runs every caller-supplied callback, in order

Public SDK entry points hand work to the background context and hand the
outcome back to the ui context. Errors never cross that boundary as
exceptions; they travel inside a ``RegistrationResult``.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from entrig.exceptions import EntrigError
from entrig.models import RegistrationResult, ResultHandler

logger = logging.getLogger(__name__)


def _completed(value: Any) -> Future:
    future: Future = Future()
    future.set_result(value)
    return future


class Dispatcher:
    """Background/ui handoff backed by thread pools."""

    def __init__(self, max_workers: int = 2):
        self._background = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="entrig-io")
        self._ui = ThreadPoolExecutor(max_workers=1, thread_name_prefix="entrig-ui")

    def _execute_background(self, fn: Callable[[], Any]) -> Future:
        return self._background.submit(fn)

    def _execute_ui(self, fn: Callable[[], Any]) -> Future:
        return self._ui.submit(fn)

    def submit(self, fn: Callable[[], Any]) -> Future:
        """Run ``fn`` on the background context."""
        return self._execute_background(fn)

    def post(self, callback: Callable[..., Any] | None, *args: Any) -> Future:
        """Run ``callback(*args)`` on the ui context. Exceptions are logged."""
        if callback is None:
            return _completed(None)

        def _invoke() -> None:
            try:
                callback(*args)
            except Exception:
                logger.exception("Callback raised", extra={"callback": repr(callback)})

        return self._execute_ui(_invoke)

    def run_in_background(
        self,
        operation: Callable[[], Any],
        on_complete: ResultHandler | None = None,
        description: str = "operation",
    ) -> Future:
        """
        Run ``operation`` on the background context and report its outcome.

        The returned future resolves to the ``RegistrationResult`` that is
        posted to ``on_complete`` on the ui context.
        """

        def _run() -> RegistrationResult:
            try:
                operation()
                result = RegistrationResult.ok()
            except EntrigError as e:
                logger.error(f"{description} failed: {e}", extra={"error_type": type(e).__name__})
                result = RegistrationResult.failed(e)
            except Exception as e:
                logger.exception(f"{description} failed unexpectedly")
                result = RegistrationResult.failed(EntrigError(str(e) or "Unknown error"))
            self.post(on_complete, result)
            return result

        return self._execute_background(_run)

    def fire_and_forget(self, operation: Callable[[], Any], description: str) -> None:
        """Run ``operation`` detached. Failures are logged, never raised or retried."""

        def _run() -> None:
            try:
                operation()
            except Exception as e:
                logger.warning(f"{description} failed: {e}", extra={"error_type": type(e).__name__})

        self._execute_background(_run)

    def shutdown(self, wait: bool = True) -> None:
        """Stop both contexts."""
        self._background.shutdown(wait=wait)
        self._ui.shutdown(wait=wait)


class InlineDispatcher(Dispatcher):
    """Runs both contexts on the calling thread.

    For hosts that drive their own event loop, and for deterministic tests.
    """

    def __init__(self):
        pass

    def _execute_background(self, fn: Callable[[], Any]) -> Future:
        return _completed(fn())

    def _execute_ui(self, fn: Callable[[], Any]) -> Future:
        return _completed(fn())

    def shutdown(self, wait: bool = True) -> None:
        return None
