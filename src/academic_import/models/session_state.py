from __future__ import annotations

from enum import Enum

"""SessionState enum for the ImportSession lifecycle.

State transitions:
    idle -> parsing -> validated -> submitting -> (completed | failed)
    parsing -> failed (unreadable / empty / missing column)
    any state -> idle (operator removes the file or starts over)
    failed (transport) / completed (zero created) -> submitting (retry)
"""

__all__ = [
    "SessionState",
]


class SessionState(Enum):
    """Status of one operator import attempt.

    - IDLE: no file selected
    - PARSING: file received, parse / validation pending
    - VALIDATED: accepted / rejected rows available for preview
    - SUBMITTING: batch-create call in flight (not cancellable)
    - COMPLETED: outcome reconciled
    - FAILED: attempt ended with a fatal error
    """
    IDLE = "idle"
    PARSING = "parsing"
    VALIDATED = "validated"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"
