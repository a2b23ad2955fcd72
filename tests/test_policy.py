import unittest
from datetime import datetime

from lab_scheduler import Actor, Forbidden, Interval, Reservation, ReservationStatus, Role
from lab_scheduler import policy


def _reservation(requester_id: str) -> Reservation:
    now = datetime(2026, 2, 24, 9, 0)
    return Reservation(
        reservation_id="r-1",
        resource_id="chem",
        requester_id=requester_id,
        interval=Interval(datetime(2026, 2, 25, 10, 0), datetime(2026, 2, 25, 11, 0)),
        title="Titration practice",
        status=ReservationStatus.PENDING,
        created_at=now,
        updated_at=now,
    )


class TestAccessPolicy(unittest.TestCase):
    def setUp(self) -> None:
        self.owner = Actor("alice", Role.INSTRUCTOR)
        self.other_instructor = Actor("bob", Role.INSTRUCTOR)
        self.director = Actor("carol", Role.DIRECTOR)
        self.admin = Actor("dave", Role.ADMIN)
        self.reservation = _reservation("alice")

    def test_view_is_limited_to_owner_and_staff(self) -> None:
        self.assertTrue(policy.can_view(self.owner, self.reservation))
        self.assertTrue(policy.can_view(self.director, self.reservation))
        self.assertTrue(policy.can_view(self.admin, self.reservation))
        self.assertFalse(policy.can_view(self.other_instructor, self.reservation))

    def test_only_instructors_create(self) -> None:
        self.assertTrue(policy.can_create(self.owner))
        self.assertFalse(policy.can_create(self.director))
        self.assertFalse(policy.can_create(self.admin))

    def test_only_requester_edits(self) -> None:
        self.assertTrue(policy.can_edit(self.owner, self.reservation))
        self.assertFalse(policy.can_edit(self.other_instructor, self.reservation))
        self.assertFalse(policy.can_edit(self.director, self.reservation))

    def test_cancel_allows_requester_and_staff(self) -> None:
        self.assertTrue(policy.can_cancel(self.owner, self.reservation))
        self.assertTrue(policy.can_cancel(self.admin, self.reservation))
        self.assertFalse(policy.can_cancel(self.other_instructor, self.reservation))

    def test_decide_is_staff_only(self) -> None:
        self.assertTrue(policy.can_decide(self.director))
        self.assertTrue(policy.can_decide(self.admin))
        self.assertFalse(policy.can_decide(self.owner, self.reservation))

    def test_require_raises_forbidden(self) -> None:
        policy.require(policy.VIEW, self.owner, self.reservation)
        with self.assertRaises(Forbidden):
            policy.require(policy.VIEW, self.other_instructor, self.reservation)
        with self.assertRaises(ValueError):
            policy.require("teleport", self.owner, self.reservation)


if __name__ == "__main__":
    unittest.main()
