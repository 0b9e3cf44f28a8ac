"""
Course catalogue records and query options.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class CourseDifficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class CourseStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CourseCategory(str, Enum):
    FOREX = "forex"
    STOCKS = "stocks"
    CRYPTOCURRENCY = "cryptocurrency"
    OPTIONS = "options"
    DAY_TRADING = "day_trading"
    SWING_TRADING = "swing_trading"
    TECHNICAL_ANALYSIS = "technical_analysis"
    FUNDAMENTAL_ANALYSIS = "fundamental_analysis"
    RISK_MANAGEMENT = "risk_management"
    TRADING_PSYCHOLOGY = "trading_psychology"


class CourseSortField(str, Enum):
    TITLE = "title"
    PRICE = "price"
    RATING = "rating"
    CREATED_AT = "created_at"
    ENROLLMENT_COUNT = "enrollment_count"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class Course:
    """Published view of a course."""

    id: str
    title: str
    description: str
    price: float
    category: CourseCategory
    difficulty: CourseDifficulty = CourseDifficulty.BEGINNER
    status: CourseStatus = CourseStatus.PUBLISHED
    currency: str = "USD"
    instructor_id: Optional[str] = None
    duration_minutes: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    featured: bool = False
    rating: float = 0.0
    enrollment_count: int = 0
    created_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the course to a JSON-friendly dictionary."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "category": self.category.value,
            "difficulty": self.difficulty.value,
            "status": self.status.value,
            "tags": list(self.tags),
            "featured": self.featured,
            "rating": self.rating,
            "enrollment_count": self.enrollment_count,
            "created_at": self.created_at,
        }
        if self.instructor_id is not None:
            payload["instructor_id"] = self.instructor_id
        if self.duration_minutes is not None:
            payload["duration_minutes"] = self.duration_minutes
        return payload


@dataclass(frozen=True)
class CourseQuery:
    """Filters, sorting and paging for course listings."""

    search: Optional[str] = None
    category: Optional[CourseCategory] = None
    difficulty: Optional[CourseDifficulty] = None
    status: Optional[CourseStatus] = CourseStatus.PUBLISHED
    instructor_id: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    tags: List[str] = field(default_factory=list)
    featured: Optional[bool] = None
    sort_by: CourseSortField = CourseSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = 10
