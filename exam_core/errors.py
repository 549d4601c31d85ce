class ExamEngineError(Exception):
    """Base class for every error raised by the consistency engine."""


class ParseFailure(ExamEngineError):
    """Raw answer content could not be classified (strict normalization only)."""


class CapacityExceeded(ExamEngineError):
    def __init__(self, count: int, limit: int):
        super().__init__(f"question has {count} options, at most {limit} are allowed")
        self.count = count
        self.limit = limit


class ValidationFailed(ExamEngineError):
    pass


class IntegrityViolation(ExamEngineError):
    """The edit would break a question referenced by recorded answers."""


class NotFound(ExamEngineError):
    pass


class InvalidState(ExamEngineError):
    pass


class PersistenceFailure(ExamEngineError):
    """Storage failed mid-transaction; the whole unit of work was rolled back."""
