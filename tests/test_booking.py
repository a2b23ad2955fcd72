import unittest
from datetime import datetime, timedelta, timezone

from lab_scheduler import Interval, InvalidInterval, is_valid_interval, overlaps


class TestInterval(unittest.TestCase):
    def test_zero_length_and_inverted_intervals_are_rejected(self) -> None:
        moment = datetime(2026, 2, 24, 10, 0)
        self.assertFalse(is_valid_interval(moment, moment))
        with self.assertRaises(InvalidInterval):
            Interval(moment, moment)
        with self.assertRaises(InvalidInterval):
            Interval(datetime(2026, 2, 24, 11, 0), moment)

    def test_overlap_is_symmetric_and_reflexive(self) -> None:
        samples = [
            Interval(datetime(2026, 2, 24, 9, 0), datetime(2026, 2, 24, 10, 0)),
            Interval(datetime(2026, 2, 24, 9, 30), datetime(2026, 2, 24, 12, 0)),
            Interval(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 11, 0)),
            Interval(datetime(2026, 2, 25, 10, 0), datetime(2026, 2, 25, 11, 0)),
        ]
        for a in samples:
            self.assertTrue(overlaps(a, a))
            for b in samples:
                self.assertEqual(overlaps(a, b), overlaps(b, a))

    def test_duration_is_end_minus_start(self) -> None:
        interval = Interval(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 11, 30))
        self.assertEqual(interval.duration.total_seconds(), 5400)

    def test_touching_intervals_never_overlap(self) -> None:
        first = Interval(datetime(2026, 2, 24, 10, 0), datetime(2026, 2, 24, 11, 0))
        second = Interval(datetime(2026, 2, 24, 11, 0), datetime(2026, 2, 24, 12, 0))
        self.assertFalse(first.overlaps(second))
        self.assertFalse(second.overlaps(first))

    def test_mixed_timezone_awareness_is_rejected(self) -> None:
        naive = datetime(2026, 2, 24, 10, 0)
        aware = datetime(2026, 2, 24, 11, 0, tzinfo=timezone.utc)
        self.assertFalse(is_valid_interval(naive, aware))
        with self.assertRaises(InvalidInterval):
            Interval(naive, aware)

        naive_interval = Interval(naive, naive + timedelta(hours=1))
        aware_interval = Interval(aware, aware + timedelta(hours=1))
        with self.assertRaises(InvalidInterval):
            overlaps(naive_interval, aware_interval)

    def test_aware_intervals_compare_across_zones(self) -> None:
        seoul = timezone(timedelta(hours=9))
        utc_slot = Interval(
            datetime(2026, 2, 24, 1, 0, tzinfo=timezone.utc),
            datetime(2026, 2, 24, 2, 0, tzinfo=timezone.utc),
        )
        same_slot_in_seoul = Interval(datetime(2026, 2, 24, 10, 30, tzinfo=seoul), datetime(2026, 2, 24, 11, 30, tzinfo=seoul))
        next_slot_in_seoul = Interval(datetime(2026, 2, 24, 11, 0, tzinfo=seoul), datetime(2026, 2, 24, 12, 0, tzinfo=seoul))
        self.assertTrue(overlaps(utc_slot, same_slot_in_seoul))
        self.assertFalse(overlaps(utc_slot, next_slot_in_seoul))

    def test_dict_round_trip_keeps_sub_second_precision(self) -> None:
        interval = Interval(datetime(2026, 2, 24, 10, 0, 0, 500), datetime(2026, 2, 24, 11, 0))
        self.assertEqual(Interval.from_dict(interval.to_dict()), interval)


if __name__ == "__main__":
    unittest.main()
