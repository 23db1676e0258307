"""
Cooperative cancellation for stream execution.
"""

from typing import Optional


class CancellationToken:
    """
    A polled cancellation flag shared between a stream's owner and its
    execution routine.

    The execution routine checks ``is_cancelled`` before consuming each result
    from the backend; nothing is raised into it.
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: Optional[str] = None) -> bool:
        """
        Signal cancellation. Only the first call has an effect.

        Returns:
            bool: True if this call cancelled the token
        """
        if self._cancelled:
            return False

        self._cancelled = True
        self._reason = reason
        return True

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled}, reason={self._reason!r})"
