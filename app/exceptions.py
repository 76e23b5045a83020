"""Exception hierarchy shared by the closure and analysis pipeline.

Two families matter to callers:

- ``ContractViolationError``: the caller asked for something that can never
  succeed (unknown dimension code, invalid status transition). These are
  programming mistakes and must never be swallowed by a batch loop.
- ``PreconditionError``: a single lecture is not in a state that allows the
  operation. Batch loops record these and move on; the lecture stays eligible
  for the next scheduled cycle.
"""


class LectureSurveyError(Exception):
    """Base exception for all application errors."""
    pass


class ContractViolationError(LectureSurveyError):
    """Raised when a caller violates an aggregation or lifecycle contract."""
    pass


class UnknownDimensionError(ContractViolationError):
    """Raised when a dimension code is not defined by the question set."""

    def __init__(self, dimension_code: str, allowed=None):
        self.dimension_code = dimension_code
        message = f"Unknown dimension code: {dimension_code}"
        if allowed:
            message += f" (expected one of {sorted(allowed)})"
        super().__init__(message)


class InvalidDimensionPairError(ContractViolationError):
    """Raised when two dimensions cannot be combined."""

    def __init__(self, first: str, second: str, reason: str):
        self.first = first
        self.second = second
        super().__init__(f"Invalid dimension pair {first} x {second}: {reason}")


class InvalidStatusTransitionError(ContractViolationError):
    """Raised when a lecture status would move backwards."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Invalid status transition: {current} -> {requested}")


class PreconditionError(LectureSurveyError):
    """Raised when a single lecture cannot undergo the requested operation."""
    code = "precondition_failed"


class LectureNotFoundError(PreconditionError):
    """Raised when a lecture does not exist."""
    code = "lecture_not_found"

    def __init__(self, lecture_id: int):
        self.lecture_id = lecture_id
        super().__init__(f"Lecture not found: lecture_id={lecture_id}")


class LectureStateError(PreconditionError):
    """Raised when a lecture is not in the status an operation requires."""
    code = "invalid_state"

    def __init__(self, lecture_id: int, message: str):
        self.lecture_id = lecture_id
        super().__init__(f"{message} (lecture_id={lecture_id})")


class DuplicateResultSetError(PreconditionError):
    """Raised when a result set with the same snapshot timestamp exists."""
    code = "duplicate_result_set"

    def __init__(self, lecture_id: int, existing_id: int):
        self.lecture_id = lecture_id
        self.existing_id = existing_id
        super().__init__(
            f"Result set {existing_id} already exists for lecture {lecture_id} "
            f"at the same snapshot time"
        )


class DuplicateResponseError(PreconditionError):
    """Raised when the same client already answered a lecture's survey."""
    code = "duplicate_response"

    def __init__(self, lecture_id: int):
        self.lecture_id = lecture_id
        super().__init__(f"A response from this client already exists for lecture {lecture_id}")


class InvalidAnswerError(LectureSurveyError):
    """Raised when a submitted answer is not an option of its dimension."""
    code = "invalid_answer"

    def __init__(self, dimension_code: str, value: str, allowed):
        self.dimension_code = dimension_code
        self.value = value
        super().__init__(
            f"Invalid value for {dimension_code}: {value!r} (expected one of {list(allowed)})"
        )
