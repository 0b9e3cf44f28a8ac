"""
In-memory course catalogue.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from shared.errors import NotFoundError, ValidationError
from shared.logging import get_logger

from .models import Course, CourseCategory, CourseDifficulty, CourseQuery, CourseStatus, SortOrder


class CourseCatalog:
    """Read-only course lookups with filtering and paging."""

    def __init__(self, courses: Optional[Iterable[Course]] = None):
        self.logger = get_logger("courses.catalog")
        self._courses: Dict[str, Course] = {}
        for course in courses if courses is not None else default_courses():
            self._courses[course.id] = course

    def __len__(self) -> int:
        return len(self._courses)

    async def list_courses(self, query: CourseQuery) -> Dict[str, Any]:
        """Return one page of courses matching the query."""
        if query.page < 1:
            raise ValidationError("page must be >= 1", {"page": query.page})
        if not 1 <= query.limit <= 100:
            raise ValidationError("limit must be between 1 and 100", {"limit": query.limit})
        if query.min_price is not None and query.max_price is not None and query.min_price > query.max_price:
            raise ValidationError(
                "min_price must not exceed max_price",
                {"min_price": query.min_price, "max_price": query.max_price},
            )

        matches = [course for course in self._courses.values() if self._matches(course, query)]
        matches.sort(
            key=lambda course: getattr(course, query.sort_by.value),
            reverse=query.sort_order == SortOrder.DESC,
        )

        total = len(matches)
        offset = (query.page - 1) * query.limit
        items = matches[offset:offset + query.limit]
        total_pages = (total + query.limit - 1) // query.limit

        self.logger.debug("Listed courses", total=total, page=query.page, returned=len(items))
        return {
            "items": [course.to_dict() for course in items],
            "total": total,
            "page": query.page,
            "limit": query.limit,
            "total_pages": total_pages,
        }

    async def get_course(self, course_id: str) -> Dict[str, Any]:
        course = self._courses.get(course_id)
        if course is None:
            raise NotFoundError("Course", course_id)
        return course.to_dict()

    @staticmethod
    def _matches(course: Course, query: CourseQuery) -> bool:
        if query.status is not None and course.status != query.status:
            return False
        if query.category is not None and course.category != query.category:
            return False
        if query.difficulty is not None and course.difficulty != query.difficulty:
            return False
        if query.instructor_id and course.instructor_id != query.instructor_id:
            return False
        if query.min_price is not None and course.price < query.min_price:
            return False
        if query.max_price is not None and course.price > query.max_price:
            return False
        if query.featured is not None and course.featured != query.featured:
            return False
        if query.tags and not set(query.tags) & set(course.tags):
            return False
        if query.search:
            needle = query.search.lower()
            if needle not in course.title.lower() and needle not in course.description.lower():
                return False
        return True


def default_courses() -> List[Course]:
    """Seed catalogue used when no course source is configured."""
    return [
        Course(
            id="forex-foundations",
            title="Forex Foundations",
            description="Currency pairs, pips, leverage and order types for new traders.",
            price=49.0,
            category=CourseCategory.FOREX,
            difficulty=CourseDifficulty.BEGINNER,
            instructor_id="instructor-1",
            duration_minutes=240,
            tags=["forex", "basics"],
            featured=True,
            rating=4.6,
            enrollment_count=1280,
            created_at="2024-01-08T09:00:00Z",
        ),
        Course(
            id="price-action-mastery",
            title="Price Action Mastery",
            description="Reading candlestick structure and market context without indicators.",
            price=129.0,
            category=CourseCategory.TECHNICAL_ANALYSIS,
            difficulty=CourseDifficulty.INTERMEDIATE,
            instructor_id="instructor-2",
            duration_minutes=420,
            tags=["technical", "candlesticks"],
            featured=True,
            rating=4.8,
            enrollment_count=860,
            created_at="2024-02-12T09:00:00Z",
        ),
        Course(
            id="options-greeks",
            title="Options Greeks in Practice",
            description="Delta, gamma, theta and vega applied to real option positions.",
            price=199.0,
            category=CourseCategory.OPTIONS,
            difficulty=CourseDifficulty.ADVANCED,
            instructor_id="instructor-3",
            duration_minutes=360,
            tags=["options", "derivatives"],
            rating=4.5,
            enrollment_count=310,
            created_at="2024-03-04T09:00:00Z",
        ),
        Course(
            id="risk-first",
            title="Risk First Trading",
            description="Position sizing, stop placement and drawdown control.",
            price=79.0,
            category=CourseCategory.RISK_MANAGEMENT,
            difficulty=CourseDifficulty.BEGINNER,
            instructor_id="instructor-1",
            duration_minutes=180,
            tags=["risk", "basics"],
            rating=4.7,
            enrollment_count=990,
            created_at="2024-03-20T09:00:00Z",
        ),
        Course(
            id="crypto-market-structure",
            title="Crypto Market Structure",
            description="Exchanges, order books, funding rates and on-chain flows.",
            price=99.0,
            category=CourseCategory.CRYPTOCURRENCY,
            difficulty=CourseDifficulty.INTERMEDIATE,
            instructor_id="instructor-4",
            duration_minutes=300,
            tags=["crypto", "market-structure"],
            rating=4.3,
            enrollment_count=540,
            created_at="2024-04-02T09:00:00Z",
        ),
        Course(
            id="swing-trading-playbook",
            title="Swing Trading Playbook",
            description="Multi-day setups, trade management and journaling.",
            price=149.0,
            category=CourseCategory.SWING_TRADING,
            difficulty=CourseDifficulty.INTERMEDIATE,
            status=CourseStatus.DRAFT,
            instructor_id="instructor-2",
            duration_minutes=270,
            tags=["swing", "stocks"],
            rating=0.0,
            enrollment_count=0,
            created_at="2024-05-15T09:00:00Z",
        ),
    ]
