"""
Central data model definitions used across the project.

This module defines the canonical structure of Course and CourseDetails objects so that:
- the listing parser, the detail parser and the sinks share the same field names
- parse problems on single cells stay attached to the record they belong to
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class CourseDetails:
    """
    The supplementary pair recovered from one course detail page.
    """

    course_id: str
    patient_area: Optional[str]
    patient_area_description: str


@dataclass(frozen=True)
class Course:
    """
    Represents one row of the course listing table.

    start_date / spots_available are None when the cell text could not be parsed;
    the raw cell text is kept next to them and the failed field is named in parse_errors.
    """

    id: str
    name: str
    illness: str
    target_group: str
    kind: str
    type: str
    start_date: Optional[date]
    area: str
    spots_available: Optional[int]
    start_date_text: str = ""
    spots_text: str = ""
    parse_errors: List[str] = field(default_factory=list)
    patient_area: Optional[str] = None
    patient_area_description: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return not self.parse_errors

    def with_details(self, details: CourseDetails) -> "Course":
        """
        Return a copy of this course enriched with the detail pair.
        """
        if details.course_id != self.id:
            raise ValueError(f"Details for {details.course_id!r} do not belong to course {self.id!r}")
        return replace(
            self,
            patient_area=details.patient_area,
            patient_area_description=details.patient_area_description,
            parse_errors=list(self.parse_errors),
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Payload shape expected by the downstream API.
        """
        return {
            "id": self.id,
            "name": self.name,
            "illness": self.illness,
            "targetGroup": self.target_group,
            "kind": self.kind,
            "type": self.type,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "area": self.area,
            "spotsAvailable": self.spots_available,
            "patientArea": self.patient_area,
            "patientAreaDescription": self.patient_area_description,
        }
