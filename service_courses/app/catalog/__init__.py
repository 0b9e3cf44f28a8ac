"""
Course catalogue package.

Holds the course records served by the cached catalogue endpoints and the
in-memory lookup used behind them.
"""

from .models import Course, CourseCategory, CourseDifficulty, CourseQuery, CourseSortField, CourseStatus, SortOrder
from .repository import CourseCatalog, default_courses

__all__ = [
    "Course",
    "CourseCatalog",
    "CourseCategory",
    "CourseDifficulty",
    "CourseQuery",
    "CourseSortField",
    "CourseStatus",
    "SortOrder",
    "default_courses",
]
