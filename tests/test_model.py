import unittest
from datetime import date

from kurssihaku.model import Course, CourseDetails


def _course(**overrides) -> Course:
    fields = dict(
        id="12345",
        name="Kuntoutuskurssi",
        illness="Reuma",
        target_group="Aikuiset",
        kind="Kuntoutuskurssi",
        type="Yksilökurssi",
        start_date=date(2024, 3, 15),
        area="Itä-Suomi",
        spots_available=3,
    )
    fields.update(overrides)
    return Course(**fields)


class TestCourse(unittest.TestCase):
    def test_with_details_returns_new_course(self) -> None:
        course = _course()
        enriched = course.with_details(CourseDetails("12345", "Savo", "Koko maa"))

        self.assertEqual(enriched.patient_area, "Savo")
        self.assertEqual(enriched.patient_area_description, "Koko maa")
        self.assertIsNone(course.patient_area)
        self.assertEqual(enriched.id, course.id)

    def test_with_details_copies_parse_errors(self) -> None:
        course = _course(spots_available=None, parse_errors=["spots_available"])
        enriched = course.with_details(CourseDetails("12345", None, "Koko maa"))

        self.assertEqual(enriched.parse_errors, ["spots_available"])
        enriched.parse_errors.append("start_date")
        self.assertEqual(course.parse_errors, ["spots_available"])

    def test_with_details_for_other_course(self) -> None:
        with self.assertRaises(ValueError):
            _course().with_details(CourseDetails("99999", None, "x"))

    def test_to_dict_uses_api_keys(self) -> None:
        data = _course(start_date=None, spots_available=None, parse_errors=["start_date", "spots_available"]).to_dict()

        self.assertEqual(
            sorted(data),
            sorted(
                [
                    "id",
                    "name",
                    "illness",
                    "targetGroup",
                    "kind",
                    "type",
                    "startDate",
                    "area",
                    "spotsAvailable",
                    "patientArea",
                    "patientAreaDescription",
                ]
            ),
        )
        self.assertIsNone(data["startDate"])
        self.assertIsNone(data["spotsAvailable"])

    def test_is_valid(self) -> None:
        self.assertTrue(_course().is_valid)
        self.assertFalse(_course(parse_errors=["spots_available"]).is_valid)


if __name__ == "__main__":
    unittest.main()
