"""
Scoped ownership of per-chunk tensor buffers.

Every buffer created for a chunk is registered with a :class:`TensorScope`
and released when the scope exits, whether the chunk succeeded or not.

With the numpy-based engines every tracked buffer is a plain
``ndarray``, freed by reference counting once the scope and the
function locals drop it; the scope then only clears its references.
The release hook matters for backends that hand out native tensors with
an explicit ``release()`` or ``dispose()``, such as device-bound
``OrtValue`` wrappers.
"""

import logging
from typing import Any, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def release_tensor(tensor: Any) -> None:
    """
    Release *tensor* if it owns a native buffer.

    Backend tensors exposing ``release()`` or ``dispose()`` have it
    called; plain numpy arrays need nothing.  Failures, including a
    second release of the same buffer, are logged and ignored.
    """
    for name in ("release", "dispose"):
        method = getattr(tensor, name, None)
        if callable(method):
            try:
                method()
            except Exception as e:
                logger.debug("Tensor release skipped (%s): %s", type(tensor).__name__, e)
            return


class TensorScope:
    """
    Collects buffers and releases them on exit.

    Usage::

        with TensorScope() as scope:
            mask = scope.track(length_to_mask(lengths))
            ...
    """

    def __init__(self):
        self._tensors: List[Any] = []
        self._closed = False

    def track(self, tensor: T) -> T:
        """Register *tensor* for release and return it unchanged."""
        self._tensors.append(tensor)
        return tensor

    def release(self) -> None:
        """Release every tracked buffer.  Safe to call more than once."""
        tensors, self._tensors = self._tensors, []
        for tensor in reversed(tensors):
            release_tensor(tensor)
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._tensors)

    def __enter__(self) -> "TensorScope":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
