from enum import Enum


class UserRole(str, Enum):
    """Closed set of user roles with the capabilities each one carries."""
    admin = "admin"
    teacher = "teacher"
    student = "student"
    working_student = "working_student"

    @property
    def marks_attendance(self) -> bool:
        """Whether a login by this role triggers attendance auto-mark."""
        return self in (UserRole.student, UserRole.working_student)
