"""Error taxonomy of the attendance engine.

Every error carries the HTTP status the API layer answers with, so routes
never translate errors one by one.
"""


class AttendanceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DatabaseNotConnectedError(AttendanceError):
    """Raised by the store handle when no database has been connected yet."""
    status_code = 503

    def __init__(self, message: str = "database not connected"):
        super().__init__(message)


class ScheduleMissingError(AttendanceError):
    status_code = 422

    def __init__(self, class_id: int):
        super().__init__(f"class {class_id} has no schedule set")
        self.class_id = class_id


class ScheduleFormatError(AttendanceError):
    """The schedule text could not be turned into a class window.

    ``fragment`` is the part of the schedule that failed to parse.
    """
    status_code = 422

    def __init__(self, fragment: str, reason: str = "invalid schedule format"):
        super().__init__(f"{reason}: {fragment!r}")
        self.fragment = fragment
        self.reason = reason


class InvalidDateError(AttendanceError):
    status_code = 422

    def __init__(self, value):
        super().__init__(f"invalid date: {value!r}")
        self.value = value


class PerStudentError(AttendanceError):
    """One student's record failed during a bulk run; the run continues."""

    def __init__(self, student_id: int, cause: Exception):
        super().__init__(f"student {student_id}: {cause}")
        self.student_id = student_id
        self.cause = cause


class MergeConflictError(AttendanceError):
    status_code = 409


class NotEnrolledError(AttendanceError):
    status_code = 404

    def __init__(self, class_id: int, student_id: int):
        super().__init__(f"student {student_id} is not enrolled in class {class_id}")
        self.class_id = class_id
        self.student_id = student_id


class RecordNotFoundError(AttendanceError):
    status_code = 404


class ArchiveTransitionError(AttendanceError):
    status_code = 500
