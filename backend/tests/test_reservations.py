"""
Integration tests for the reservation queue.
"""

import uuid
from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from lms.models.reservation import Reservation
from lms.models.enums import ItemStatus, ReservationStatus, UserRole

RESERVATIONS_URL = "/api/v1/reservations"


async def _load(test_db, reservation_id) -> Reservation:
    result = await test_db.execute(
        select(Reservation)
        .where(Reservation.id == reservation_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


@pytest.fixture
async def borrowed_item(student, make_item, make_loan):
    """An item on loan to the student fixture, plus the loan."""
    item = await make_item("Foundation")
    loan = await make_loan(student, item)
    return item, loan


@pytest.fixture
async def patron(make_user):
    return await make_user(UserRole.TEACHER, email="teacher@example.com", name="Tara Teacher")


async def _reserve(client: AsyncClient, user, item, headers_for):
    return await client.post(RESERVATIONS_URL, json={"item_id": str(item.id)}, headers=headers_for(user))


async def _return(client: AsyncClient, loan, staff, headers_for):
    response = await client.patch(f"/api/v1/loans/{loan.id}/return", headers=headers_for(staff))
    assert response.status_code == 200


class TestCreateReservation:
    """POST /api/v1/reservations."""

    @pytest.mark.anyio
    async def test_reserve_borrowed_item(self, client: AsyncClient, patron, borrowed_item, headers_for):
        item, _ = borrowed_item

        response = await _reserve(client, patron, item, headers_for)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["queue_position"] == 1
        assert data["item_title"] == "Foundation"
        expires_at = datetime.fromisoformat(data["expires_at"]).replace(tzinfo=None)
        assert timedelta(days=6, hours=23) < expires_at - datetime.utcnow() <= timedelta(days=7)

    @pytest.mark.anyio
    async def test_queue_positions(
        self, client: AsyncClient, patron, make_user, borrowed_item, headers_for
    ):
        item, _ = borrowed_item
        second = await make_user(UserRole.STUDENT)

        await _reserve(client, patron, item, headers_for)
        response = await _reserve(client, second, item, headers_for)

        assert response.json()["queue_position"] == 2

    @pytest.mark.anyio
    async def test_available_item_cannot_be_reserved(
        self, client: AsyncClient, patron, make_item, headers_for
    ):
        item = await make_item()

        response = await _reserve(client, patron, item, headers_for)

        assert response.status_code == 400
        assert response.json()["message"] == "Item is available, borrow it directly"

    @pytest.mark.anyio
    async def test_duplicate_reservation(self, client: AsyncClient, patron, borrowed_item, headers_for):
        item, _ = borrowed_item
        await _reserve(client, patron, item, headers_for)

        response = await _reserve(client, patron, item, headers_for)

        assert response.status_code == 409

    @pytest.mark.anyio
    async def test_borrower_cannot_reserve_own_loan(
        self, client: AsyncClient, student, borrowed_item, headers_for
    ):
        item, _ = borrowed_item

        response = await _reserve(client, student, item, headers_for)

        assert response.status_code == 400
        assert response.json()["message"] == "You already have this item borrowed"

    @pytest.mark.anyio
    async def test_unknown_item(self, client: AsyncClient, patron, headers_for):
        response = await client.post(
            RESERVATIONS_URL, json={"item_id": str(uuid.uuid4())}, headers=headers_for(patron)
        )

        assert response.status_code == 404


class TestApproveReservation:
    """PATCH /api/v1/reservations/{id}/approve."""

    @pytest.mark.anyio
    async def test_approve_while_item_on_loan(
        self, client: AsyncClient, librarian, patron, borrowed_item, headers_for
    ):
        item, _ = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()

        response = await client.patch(
            f"{RESERVATIONS_URL}/{reservation['id']}/approve", headers=headers_for(librarian)
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Item is no longer available"

    @pytest.mark.anyio
    async def test_approve_after_return_creates_loan(
        self, client: AsyncClient, librarian, patron, borrowed_item, test_db, headers_for
    ):
        item, loan = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()
        await _return(client, loan, librarian, headers_for)

        response = await client.patch(
            f"{RESERVATIONS_URL}/{reservation['id']}/approve", headers=headers_for(librarian)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Reservation approved and loan created"
        assert data["reservation"]["status"] == "FULFILLED"
        assert data["reservation"]["loan_id"] == data["loan"]["id"]
        assert data["loan"]["user_id"] == str(patron.id)
        loan_date = datetime.fromisoformat(data["loan"]["loan_date"])
        due_date = datetime.fromisoformat(data["loan"]["due_date"])
        assert due_date - loan_date == timedelta(days=14)

        await test_db.refresh(item)
        assert item.status == ItemStatus.BORROWED

    @pytest.mark.anyio
    async def test_queue_is_first_come_first_served(
        self, client: AsyncClient, librarian, patron, make_user, borrowed_item, headers_for
    ):
        item, loan = borrowed_item
        second = await make_user(UserRole.STUDENT)
        await _reserve(client, patron, item, headers_for)
        later = (await _reserve(client, second, item, headers_for)).json()
        await _return(client, loan, librarian, headers_for)

        response = await client.patch(
            f"{RESERVATIONS_URL}/{later['id']}/approve", headers=headers_for(librarian)
        )

        assert response.status_code == 409
        assert response.json()["message"] == "An older reservation for this item is still pending"

    @pytest.mark.anyio
    async def test_approve_twice(
        self, client: AsyncClient, librarian, patron, borrowed_item, headers_for
    ):
        item, loan = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()
        await _return(client, loan, librarian, headers_for)
        url = f"{RESERVATIONS_URL}/{reservation['id']}/approve"
        await client.patch(url, headers=headers_for(librarian))

        response = await client.patch(url, headers=headers_for(librarian))

        assert response.status_code == 409
        assert response.json()["message"] == "Reservation already processed"

    @pytest.mark.anyio
    async def test_expired_reservation(
        self, client: AsyncClient, librarian, patron, borrowed_item, test_db, headers_for
    ):
        item, loan = borrowed_item
        reservation_id = (await _reserve(client, patron, item, headers_for)).json()["id"]
        await _return(client, loan, librarian, headers_for)
        reservation = await _load(test_db, uuid.UUID(reservation_id))
        reservation.expires_at = datetime.utcnow() - timedelta(minutes=5)
        await test_db.commit()

        response = await client.patch(
            f"{RESERVATIONS_URL}/{reservation_id}/approve", headers=headers_for(librarian)
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Reservation has expired"
        reservation = await _load(test_db, uuid.UUID(reservation_id))
        assert reservation.status == ReservationStatus.EXPIRED

    @pytest.mark.anyio
    async def test_patron_cannot_approve(
        self, client: AsyncClient, patron, borrowed_item, headers_for
    ):
        item, _ = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()

        response = await client.patch(
            f"{RESERVATIONS_URL}/{reservation['id']}/approve", headers=headers_for(patron)
        )

        assert response.status_code == 403


class TestQueueAndBorrow:
    """Direct borrowing while a queue exists."""

    @pytest.mark.anyio
    async def test_returned_item_is_held_for_queue_head(
        self, client: AsyncClient, librarian, student, patron, borrowed_item, headers_for
    ):
        item, loan = borrowed_item
        await _reserve(client, patron, item, headers_for)
        await _return(client, loan, librarian, headers_for)

        response = await client.post(
            "/api/v1/loans/borrow", json={"item_id": str(item.id)}, headers=headers_for(student)
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Item is reserved for another patron"

    @pytest.mark.anyio
    async def test_queue_head_borrowing_fulfills_reservation(
        self, client: AsyncClient, librarian, patron, borrowed_item, test_db, headers_for
    ):
        item, loan = borrowed_item
        reservation_id = (await _reserve(client, patron, item, headers_for)).json()["id"]
        await _return(client, loan, librarian, headers_for)

        response = await client.post(
            "/api/v1/loans/borrow", json={"item_id": str(item.id)}, headers=headers_for(patron)
        )

        assert response.status_code == 201
        reservation = await _load(test_db, uuid.UUID(reservation_id))
        assert reservation.status == ReservationStatus.FULFILLED
        assert str(reservation.loan_id) == response.json()["id"]


class TestCancelAndExpire:

    @pytest.mark.anyio
    async def test_cancel_own_reservation(self, client: AsyncClient, patron, borrowed_item, headers_for):
        item, _ = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()

        response = await client.delete(f"{RESERVATIONS_URL}/{reservation['id']}", headers=headers_for(patron))

        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"

    @pytest.mark.anyio
    async def test_cancel_twice(self, client: AsyncClient, patron, borrowed_item, headers_for):
        item, _ = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()
        url = f"{RESERVATIONS_URL}/{reservation['id']}"
        await client.delete(url, headers=headers_for(patron))

        response = await client.delete(url, headers=headers_for(patron))

        assert response.status_code == 409
        assert response.json()["message"] == "Cannot cancel a CANCELLED reservation"

    @pytest.mark.anyio
    async def test_cannot_cancel_someone_elses(
        self, client: AsyncClient, patron, make_user, borrowed_item, headers_for
    ):
        item, _ = borrowed_item
        other = await make_user(UserRole.STUDENT)
        reservation = (await _reserve(client, patron, item, headers_for)).json()

        response = await client.delete(f"{RESERVATIONS_URL}/{reservation['id']}", headers=headers_for(other))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_staff_can_cancel(
        self, client: AsyncClient, librarian, patron, borrowed_item, headers_for
    ):
        item, _ = borrowed_item
        reservation = (await _reserve(client, patron, item, headers_for)).json()

        response = await client.delete(
            f"{RESERVATIONS_URL}/{reservation['id']}", headers=headers_for(librarian)
        )

        assert response.status_code == 200

    @pytest.mark.anyio
    async def test_expire_endpoint(
        self, client: AsyncClient, librarian, patron, borrowed_item, test_db, headers_for
    ):
        item, _ = borrowed_item
        reservation_id = (await _reserve(client, patron, item, headers_for)).json()["id"]
        reservation = await _load(test_db, uuid.UUID(reservation_id))
        reservation.expires_at = datetime.utcnow() - timedelta(seconds=1)
        await test_db.commit()

        response = await client.post(f"{RESERVATIONS_URL}/expire", headers=headers_for(librarian))

        assert response.status_code == 200
        assert response.json()["expired"] == 1
        reservation = await _load(test_db, uuid.UUID(reservation_id))
        assert reservation.status == ReservationStatus.EXPIRED

    @pytest.mark.anyio
    async def test_my_reservations_sweeps_lapsed(
        self, client: AsyncClient, patron, borrowed_item, test_db, headers_for
    ):
        item, _ = borrowed_item
        reservation_id = (await _reserve(client, patron, item, headers_for)).json()["id"]
        reservation = await _load(test_db, uuid.UUID(reservation_id))
        reservation.expires_at = datetime.utcnow() - timedelta(seconds=1)
        await test_db.commit()

        response = await client.get(f"{RESERVATIONS_URL}/my", headers=headers_for(patron))

        assert response.status_code == 200
        [entry] = response.json()
        assert entry["status"] == "EXPIRED"
        assert entry["queue_position"] is None

    @pytest.mark.anyio
    async def test_staff_list(
        self, client: AsyncClient, librarian, patron, borrowed_item, headers_for
    ):
        item, _ = borrowed_item
        await _reserve(client, patron, item, headers_for)

        response = await client.get(
            RESERVATIONS_URL, params={"status": "PENDING"}, headers=headers_for(librarian)
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1
