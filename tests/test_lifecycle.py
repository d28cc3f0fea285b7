"""OTP start, completion with settlement, cancellation rules and reads."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from schoolride.domain.entities import Location
from schoolride.domain.enums import NotificationKind, RideStatus
from schoolride.domain.errors import (
    AuthorizationError,
    ConflictError,
    InvalidOtpError,
    NotFoundError,
    ValidationError,
)
from schoolride.infrastructure.models import NotificationModel, TransactionModel
from tests.conftest import count_rows


def _wrong(otp: str) -> str:
    return "".join("1" if c != "1" else "2" for c in otp)


async def _kinds_for(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(
            select(NotificationModel.kind)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.id)
        )
        return list(result.scalars().all())


class TestSubmitOtp:
    @pytest.mark.asyncio
    async def test_correct_otp_starts_ride(self, engine, people, make_ride, session_factory):
        ride = await make_ride()
        started = await engine.submit_otp(ride.id, ride.otp, people.driver)

        assert started.status == RideStatus.IN_PROGRESS
        kinds = await _kinds_for(session_factory, people.parent.user_id)
        assert kinds == [NotificationKind.RIDE_ACCEPTED, NotificationKind.RIDE_STARTED]

    @pytest.mark.asyncio
    async def test_wrong_otp_changes_nothing(self, engine, people, make_ride, session_factory):
        ride = await make_ride()
        with pytest.raises(InvalidOtpError) as exc_info:
            await engine.submit_otp(ride.id, _wrong(ride.otp), people.driver)
        assert exc_info.value.field == "otp"

        current = await engine.get_ride(ride.id, people.driver)
        assert current.status == RideStatus.ACCEPTED
        kinds = await _kinds_for(session_factory, people.parent.user_id)
        assert kinds == [NotificationKind.RIDE_ACCEPTED]

    @pytest.mark.asyncio
    async def test_retries_allowed_without_lockout(self, engine, people, make_ride):
        ride = await make_ride()
        for _ in range(3):
            with pytest.raises(InvalidOtpError):
                await engine.submit_otp(ride.id, _wrong(ride.otp), people.driver)
        started = await engine.submit_otp(ride.id, ride.otp, people.driver)
        assert started.status == RideStatus.IN_PROGRESS

    @pytest.mark.asyncio
    @pytest.mark.parametrize("candidate", ["", "12", "1234567", "12a4", "１２３４"])
    async def test_malformed_otp_is_validation_error(self, engine, people, make_ride, candidate):
        ride = await make_ride()
        with pytest.raises(ValidationError):
            await engine.submit_otp(ride.id, candidate, people.driver)

    @pytest.mark.asyncio
    async def test_only_assigned_driver(self, engine, people, make_ride):
        ride = await make_ride()
        with pytest.raises(AuthorizationError):
            await engine.submit_otp(ride.id, ride.otp, people.other_driver)
        with pytest.raises(AuthorizationError):
            await engine.submit_otp(ride.id, ride.otp, people.parent)

    @pytest.mark.asyncio
    async def test_already_started_conflicts(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        with pytest.raises(ConflictError):
            await engine.submit_otp(ride.id, ride.otp, people.driver)

    @pytest.mark.asyncio
    async def test_missing_ride(self, engine, people):
        with pytest.raises(NotFoundError):
            await engine.submit_otp(999, "1234", people.driver)


class TestComplete:
    @pytest.mark.asyncio
    async def test_completion_settles_once(self, engine, people, make_ride, session_factory):
        ride = await make_ride(started=True)
        completed = await engine.advance_status(ride.id, "completed", people.driver)

        assert completed.status == RideStatus.COMPLETED
        assert completed.dropoff_time is not None

        with pytest.raises(ConflictError):
            await engine.advance_status(ride.id, RideStatus.COMPLETED, people.driver)

        assert await count_rows(
            session_factory, TransactionModel, TransactionModel.ride_id == ride.id
        ) == 1
        wallet = await engine.get_wallet(people.driver)
        assert wallet.balance == 150.0
        [txn] = wallet.transactions
        assert txn.amount == 150.0
        assert txn.ride_id == ride.id

    @pytest.mark.asyncio
    async def test_parent_notified_on_completion(self, engine, people, make_ride, session_factory):
        ride = await make_ride(started=True)
        await engine.advance_status(ride.id, "completed", people.driver)
        kinds = await _kinds_for(session_factory, people.parent.user_id)
        assert kinds[-1] == NotificationKind.RIDE_COMPLETED

    @pytest.mark.asyncio
    async def test_cannot_complete_before_start(self, engine, people, make_ride):
        ride = await make_ride()
        with pytest.raises(ConflictError):
            await engine.advance_status(ride.id, "completed", people.driver)

    @pytest.mark.asyncio
    async def test_parent_cannot_complete(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        with pytest.raises(AuthorizationError):
            await engine.advance_status(ride.id, "completed", people.parent)

    @pytest.mark.asyncio
    async def test_other_driver_cannot_complete(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        with pytest.raises(AuthorizationError):
            await engine.advance_status(ride.id, "completed", people.other_driver)

    @pytest.mark.asyncio
    async def test_completion_records_final_location(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        completed = await engine.advance_status(
            ride.id, "completed", people.driver, location=Location(-26.1, 28.0)
        )
        assert completed.driver_location_lat == -26.1
        assert completed.driver_location_lng == 28.0


class TestCancel:
    @pytest.mark.asyncio
    async def test_parent_cancels_before_start(self, engine, people, make_ride, session_factory):
        ride = await make_ride()
        cancelled = await engine.advance_status(ride.id, "cancelled", people.parent)

        assert cancelled.status == RideStatus.CANCELLED
        assert cancelled.dropoff_time is None
        parent_kinds = await _kinds_for(session_factory, people.parent.user_id)
        driver_kinds = await _kinds_for(session_factory, people.driver.user_id)
        assert parent_kinds[-1] == NotificationKind.RIDE_CANCELLED
        assert driver_kinds == [NotificationKind.RIDE_CANCELLED]

    @pytest.mark.asyncio
    async def test_parent_cannot_cancel_in_progress(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        with pytest.raises(AuthorizationError):
            await engine.advance_status(ride.id, "cancelled", people.parent)
        current = await engine.get_ride(ride.id, people.parent)
        assert current.status == RideStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_driver_aborts_in_progress(self, engine, people, make_ride, session_factory):
        ride = await make_ride(started=True)
        cancelled = await engine.advance_status(ride.id, "cancelled", people.driver)
        assert cancelled.status == RideStatus.CANCELLED
        assert (await engine.get_wallet(people.driver)).balance == 0.0
        assert await count_rows(session_factory, TransactionModel) == 0

    @pytest.mark.asyncio
    async def test_parent_location_does_not_block_cancel(self, engine, people, make_ride):
        ride = await make_ride()
        cancelled = await engine.advance_status(
            ride.id, "cancelled", people.parent, location=Location(-26.1, 28.0)
        )
        assert cancelled.status == RideStatus.CANCELLED
        assert cancelled.driver_location_lat is None

    @pytest.mark.asyncio
    async def test_driver_cancel_records_location(self, engine, people, make_ride):
        ride = await make_ride()
        cancelled = await engine.advance_status(
            ride.id, "cancelled", people.driver, location=Location(-26.1, 28.0)
        )
        assert cancelled.driver_location_lat == -26.1

    @pytest.mark.asyncio
    async def test_stranger_cannot_cancel(self, engine, people, make_ride):
        ride = await make_ride()
        with pytest.raises(AuthorizationError):
            await engine.advance_status(ride.id, "cancelled", people.other_parent)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["completed", "cancelled"])
    async def test_terminal_rides_reject_everything(self, engine, people, make_ride, target):
        ride = await make_ride()
        await engine.advance_status(ride.id, "cancelled", people.driver)
        with pytest.raises(ConflictError):
            await engine.advance_status(ride.id, target, people.driver)
        with pytest.raises(ConflictError):
            await engine.submit_otp(ride.id, ride.otp, people.driver)


class TestAdvanceStatusValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", ["inProgress", "accepted", "teleported"])
    async def test_rejected_targets(self, engine, people, make_ride, target):
        ride = await make_ride()
        with pytest.raises(ValidationError) as exc_info:
            await engine.advance_status(ride.id, target, people.driver)
        assert exc_info.value.field == "status"

    @pytest.mark.asyncio
    async def test_out_of_range_location(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        with pytest.raises(ValidationError):
            await engine.advance_status(
                ride.id, "completed", people.driver, location=Location(95.0, 0.0)
            )


class TestDriverLocation:
    @pytest.mark.asyncio
    async def test_assigned_driver_updates_location(self, engine, people, make_ride):
        ride = await make_ride()
        updated = await engine.update_driver_location(
            ride.id, people.driver, Location(-33.92, 18.42)
        )
        assert updated.driver_location_lat == -33.92
        assert updated.driver_location_lng == 18.42
        assert updated.driver_location_at is not None
        assert updated.status == RideStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_parent_cannot_update_location(self, engine, people, make_ride):
        ride = await make_ride()
        with pytest.raises(AuthorizationError):
            await engine.update_driver_location(ride.id, people.parent, Location(0, 0))

    @pytest.mark.asyncio
    async def test_terminal_ride_rejects_location(self, engine, people, make_ride):
        ride = await make_ride()
        await engine.advance_status(ride.id, "cancelled", people.parent)
        with pytest.raises(ConflictError):
            await engine.update_driver_location(ride.id, people.driver, Location(0, 0))


class TestReads:
    @pytest.mark.asyncio
    async def test_no_current_ride(self, engine, people):
        assert await engine.get_current_ride(people.parent) is None
        assert await engine.get_current_ride(people.driver) is None

    @pytest.mark.asyncio
    async def test_current_ride_for_both_parties(self, engine, people, make_ride):
        ride = await make_ride()
        assert (await engine.get_current_ride(people.parent)).id == ride.id
        assert (await engine.get_current_ride(people.driver)).id == ride.id
        assert await engine.get_current_ride(people.other_parent) is None

    @pytest.mark.asyncio
    async def test_current_ride_prefers_earliest_pickup(self, engine, people, make_ride):
        later = await make_ride(minutes_ahead=120)
        sooner = await make_ride(minutes_ahead=15)
        current = await engine.get_current_ride(people.driver)
        assert current.id == sooner.id
        assert current.id != later.id

    @pytest.mark.asyncio
    async def test_finished_rides_are_not_current(self, engine, people, make_ride):
        ride = await make_ride(started=True)
        await engine.advance_status(ride.id, "completed", people.driver)
        assert await engine.get_current_ride(people.parent) is None

    @pytest.mark.asyncio
    async def test_list_rides_projection(self, engine, people, make_ride):
        first = await make_ride(minutes_ahead=20)
        second = await make_ride(minutes_ahead=60)

        views = await engine.list_rides(people.parent)
        assert [v.id for v in views] == [second.id, first.id]
        assert views[0].driver_name == "Sipho Dlamini"
        assert views[0].child_name == "Ayanda Nkosi"
        assert views[0].school_name == "Greenside Primary"

        assert [v.id for v in await engine.list_rides(people.driver)] == [second.id, first.id]
        assert await engine.list_rides(people.other_driver) == []

    @pytest.mark.asyncio
    async def test_get_ride_limited_to_parties(self, engine, people, make_ride):
        ride = await make_ride()
        with pytest.raises(AuthorizationError):
            await engine.get_ride(ride.id, people.other_parent)
