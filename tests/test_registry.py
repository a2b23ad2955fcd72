import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from lab_scheduler import Conflict, Interval, LabRegistry, NotFound


class TestLabRegistry(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = LabRegistry()
        self.lab = self.registry.register_lab("Chemistry Lab", capacity=30, equipment_count=12, lab_id="chem")

    def test_is_active_reports_flag_and_missing_lab(self) -> None:
        self.assertTrue(self.registry.is_active("chem"))
        self.registry.set_active("chem", False)
        self.assertFalse(self.registry.is_active("chem"))
        with self.assertRaises(NotFound):
            self.registry.is_active("missing")

    def test_names_are_unique_ignoring_case(self) -> None:
        with self.assertRaises(Conflict):
            self.registry.register_lab("  chemistry lab ")
        other = self.registry.register_lab("Physics Lab")
        with self.assertRaises(Conflict):
            self.registry.update_lab(other.lab_id, name="Chemistry Lab")

    def test_lab_fields_are_validated(self) -> None:
        with self.assertRaises(ValueError):
            self.registry.register_lab("   ")
        with self.assertRaises(ValueError):
            self.registry.register_lab("Biology Lab", capacity=-1)
        with self.assertRaises(ValueError):
            self.registry.register_lab("Biology Lab", equipment_count=-2)

    def test_update_and_list_labs(self) -> None:
        self.registry.register_lab("Anatomy Lab", active=False)
        updated = self.registry.update_lab("chem", capacity=40)
        self.assertEqual(updated.capacity, 40)
        self.assertEqual(updated.name, "Chemistry Lab")

        self.assertEqual([lab.name for lab in self.registry.list_labs()], ["Anatomy Lab", "Chemistry Lab"])
        self.assertEqual([lab.name for lab in self.registry.list_labs(active=True)], ["Chemistry Lab"])
        self.assertEqual([lab.name for lab in self.registry.list_labs(active=False)], ["Anatomy Lab"])

    def test_unavailability_closes_overlapping_windows_only(self) -> None:
        self.registry.add_unavailability(
            "chem",
            datetime(2026, 3, 2, 8, 0),
            datetime(2026, 3, 2, 12, 0),
            "fume hood maintenance",
        )

        inside = Interval(datetime(2026, 3, 2, 11, 0), datetime(2026, 3, 2, 13, 0))
        after = Interval(datetime(2026, 3, 2, 12, 0), datetime(2026, 3, 2, 13, 0))
        self.assertEqual(self.registry.closure_reason("chem", inside), "fume hood maintenance")
        self.assertTrue(self.registry.is_open("chem", after))

    def test_holiday_calendar_closes_public_holidays(self) -> None:
        registry = LabRegistry(holiday_country="US")
        registry.register_lab("Robotics Lab", lab_id="robotics")

        christmas = Interval(datetime(2026, 12, 25, 10, 0), datetime(2026, 12, 25, 11, 0))
        regular_day = Interval(datetime(2026, 12, 22, 10, 0), datetime(2026, 12, 22, 11, 0))
        self.assertFalse(registry.is_open("robotics", christmas))
        self.assertIn("2026-12-25", registry.closure_reason("robotics", christmas))
        self.assertTrue(registry.is_open("robotics", regular_day))

    def test_holiday_country_can_be_given_per_lookup(self) -> None:
        christmas = Interval(datetime(2026, 12, 25, 10, 0), datetime(2026, 12, 25, 11, 0))
        self.assertTrue(self.registry.is_open("chem", christmas))
        self.assertFalse(self.registry.is_open("chem", christmas, holiday_country="US"))

    def test_from_yaml_loads_labs_and_closures(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "labs.yaml"
            path.write_text(
                "- lab_id: bio\n"
                "  name: Biology Lab\n"
                "  capacity: 24\n"
                "  equipment_count: 8\n"
                "  unavailable:\n"
                "    - start: '2026-03-02T08:00:00'\n"
                "      end: '2026-03-02T18:00:00'\n"
                "      reason: deep cleaning\n"
                "- lab_id: comp\n"
                "  name: Computer Lab\n"
                "  active: false\n",
                encoding="utf-8",
            )

            registry = LabRegistry.from_yaml(path)

            self.assertEqual(registry.get_lab("bio").capacity, 24)
            self.assertFalse(registry.is_active("comp"))
            self.assertEqual(len(registry.unavailabilities_for("bio")), 1)
            self.assertEqual(registry.unavailabilities_for("bio")[0].reason, "deep cleaning")


if __name__ == "__main__":
    unittest.main()
