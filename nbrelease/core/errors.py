"""Exit codes for the release command.

The orchestrator does not encode failure categories in the exit status; the
category is carried by the printed report only.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Process exit codes.

    - 0: release completed, or dry-run report produced
    - 1: validation, precondition, verification or publish failure, or the
      operator declined a confirmation
    """

    OK = 0
    FAILURE = 1

    def __str__(self) -> str:
        return self.name.lower()
