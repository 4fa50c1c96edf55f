"""
Errors raised by the scheduling engine for structurally invalid input.
"""


class InvalidTaskError(ValueError):
    """A task row is missing the information the engine needs to place it."""

    def __init__(self, task_id, reason: str):
        self.task_id = task_id
        self.reason = reason
        super().__init__(f"Task {task_id}: {reason}")
