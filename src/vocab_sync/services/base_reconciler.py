"""Shared plumbing for the reconcilers."""
import logging
import threading
from typing import Any, Callable, Optional, TextIO, TypeVar

from vocab_sync.exceptions import ErrorCode, ImportCancelledError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TAG_NEW = "NEW"
TAG_SKIP = "SKIP"
TAG_UPDATE = "UPDATE"
TAG_WARN = "WARN"

# Steps with these prefixes only read from the store
READ_STEP_PREFIXES = ("find_", "load_")


class BaseReconciler:
    """Report sink, cancellation and repository-call wrapping.

    Subclasses route every repository call through ``_call`` so that
    cancellation is observed at that boundary and failures surface as a
    ``StorageError`` naming the step and the record key.
    """

    def __init__(
        self,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ):
        self.out = out
        self.cancel = cancel

    def _check_cancelled(self, step: str) -> None:
        if self.cancel is not None and self.cancel.is_set():
            logger.info(f"Cancellation observed before {step}")
            raise ImportCancelledError(step)

    def _call(self, step: str, fn: Callable[..., T], *args: Any, key: Any = None) -> T:
        """Invoke a repository operation, wrapping its failure.

        Raises:
            ImportCancelledError: If cancellation was requested.
            StorageError: If the operation raised.
        """
        self._check_cancelled(step)
        try:
            return fn(*args)
        except Exception as e:
            if isinstance(e, StorageError):
                code = e.code
            elif step.startswith(READ_STEP_PREFIXES):
                code = ErrorCode.STORAGE_READ_FAILED
            else:
                code = ErrorCode.STORAGE_WRITE_FAILED
            raise StorageError(
                f"{step} failed",
                operation=step,
                key=key,
                code=code,
                original_error=e,
            ) from e

    def _emit(self, tag: str, usage: str, entry: str, detail: str = "") -> None:
        """Write one report line and mirror it to the log."""
        line = f'  [{tag}]  "{usage}" ({entry}){detail}'
        if self.out is not None:
            self.out.write(line + "\n")
        if tag == TAG_WARN:
            logger.warning(line.strip())
        else:
            logger.debug(line.strip())
