"""Errors raised by the session engine. All are local and recoverable; the UI turns them into messages."""


class SessionError(Exception):
    """Base class for session lifecycle errors."""


class InvalidTransition(SessionError):
    """The requested operation is not allowed in the current mode."""

    def __init__(self, operation: str, mode):
        self.operation = operation
        self.mode = mode
        super().__init__(f"Cannot {operation} while in {mode.value} mode")


class EmptySubmissionError(SessionError):
    """Exam submitted with no answered questions."""

    def __init__(self):
        super().__init__("Answer at least one question before submitting the exam.")


class ConfirmationRequired(SessionError):
    """Practice finish requested while questions are still unanswered."""

    def __init__(self, unanswered: int):
        self.unanswered = unanswered
        super().__init__(f"{unanswered} question(s) are unanswered. Finish anyway?")


class UnknownHistoryEntry(SessionError):
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"No exam history entry with id {entry_id!r}")
