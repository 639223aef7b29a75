"""Background fetch execution."""

import threading
from typing import Any, Callable

from ..client.exceptions import ApiError
from ..utils.logging import get_logger
from .events import Event, FetchCompleted, FetchRequest

logger = get_logger(__name__)


class FetchWorker:
    """
    Runs tracker calls off the event loop thread.

    Each submitted call runs on its own daemon thread and posts exactly one
    FetchCompleted back to the loop. Cancellation is logical: the loop
    ignores completions whose generation is no longer current.
    """

    def __init__(self, post: Callable[[Event], None]) -> None:
        self.post = post

    def submit(self, request: FetchRequest, call: Callable[[], Any]) -> None:
        """Start ``call`` in the background on behalf of ``request``."""
        thread = threading.Thread(
            target=self._run,
            args=(request, call),
            name=f"sentry-tui-fetch-{request.kind.value}",
            daemon=True,
        )
        thread.start()

    def _run(self, request: FetchRequest, call: Callable[[], Any]) -> None:
        try:
            result = call()
        except ApiError as e:
            logger.info(f"Fetch {request.kind.value} for {request.org}/{request.project} failed: {e}")
            self.post(FetchCompleted(request, error=e))
        except Exception as e:
            logger.exception(f"Unexpected error during {request.kind.value} fetch")
            self.post(FetchCompleted(request, error=ApiError(f"Unexpected error: {e}")))
        else:
            self.post(FetchCompleted(request, result=result))
