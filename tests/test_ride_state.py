"""Unit tests for ride / request entity state transitions (State Pattern)."""

import pytest

from schoolride.domain.entities import InvalidStateTransition, Ride, RideRequest
from schoolride.domain.enums import RideRequestStatus, RideStatus
from schoolride.domain.errors import ConflictError


class TestRideStateMachine:
    def test_initial_status_is_accepted(self):
        ride = Ride()
        assert ride.status == RideStatus.ACCEPTED

    # ── Valid transitions ─────────────────────────────────────────

    def test_accepted_to_in_progress(self):
        ride = Ride(status=RideStatus.ACCEPTED)
        ride.transition_to(RideStatus.IN_PROGRESS)
        assert ride.status == RideStatus.IN_PROGRESS

    def test_accepted_to_cancelled(self):
        ride = Ride(status=RideStatus.ACCEPTED)
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.status == RideStatus.CANCELLED

    def test_in_progress_to_completed(self):
        ride = Ride(status=RideStatus.IN_PROGRESS)
        ride.transition_to(RideStatus.COMPLETED)
        assert ride.status == RideStatus.COMPLETED

    def test_in_progress_to_cancelled(self):
        ride = Ride(status=RideStatus.IN_PROGRESS)
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.status == RideStatus.CANCELLED

    # ── Invalid transitions ───────────────────────────────────────

    def test_accepted_to_completed_fails(self):
        """A trip has to start before it can complete."""
        ride = Ride(status=RideStatus.ACCEPTED)
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.COMPLETED)

    def test_completed_to_anything_fails(self):
        ride = Ride(status=RideStatus.COMPLETED)
        for target in RideStatus:
            with pytest.raises(InvalidStateTransition):
                ride.transition_to(target)

    def test_cancelled_to_anything_fails(self):
        ride = Ride(status=RideStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition, match="already cancelled"):
            ride.transition_to(RideStatus.IN_PROGRESS)

    def test_in_progress_back_to_accepted_fails(self):
        ride = Ride(status=RideStatus.IN_PROGRESS)
        with pytest.raises(InvalidStateTransition):
            ride.transition_to(RideStatus.ACCEPTED)

    def test_invalid_transition_is_a_conflict(self):
        ride = Ride(status=RideStatus.COMPLETED)
        with pytest.raises(ConflictError):
            ride.transition_to(RideStatus.COMPLETED)

    def test_terminal_flag(self):
        assert Ride(status=RideStatus.COMPLETED).is_terminal
        assert Ride(status=RideStatus.CANCELLED).is_terminal
        assert not Ride(status=RideStatus.IN_PROGRESS).is_terminal


class TestRideRequestStateMachine:
    def test_requested_to_accepted(self):
        request = RideRequest()
        request.transition_to(RideRequestStatus.ACCEPTED)
        assert request.status == RideRequestStatus.ACCEPTED

    def test_requested_to_cancelled(self):
        request = RideRequest()
        request.transition_to(RideRequestStatus.CANCELLED)
        assert request.status == RideRequestStatus.CANCELLED

    def test_accepted_cannot_be_cancelled(self):
        request = RideRequest(status=RideRequestStatus.ACCEPTED)
        with pytest.raises(InvalidStateTransition) as exc_info:
            request.transition_to(RideRequestStatus.CANCELLED)
        assert exc_info.value.details == {"status": "accepted"}

    def test_cancelled_cannot_be_accepted(self):
        request = RideRequest(status=RideRequestStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition):
            request.transition_to(RideRequestStatus.ACCEPTED)
