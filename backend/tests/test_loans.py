"""
Integration tests for circulation: borrow, return, renew and loan queries.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from lms.models.fine import Fine
from lms.models.enums import FineStatus, ItemStatus, LoanStatus, UserRole

BORROW_URL = "/api/v1/loans/borrow"
LOANS_URL = "/api/v1/loans"


def _parse(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=None)


async def _fines_for_loan(test_db, loan_id) -> list[Fine]:
    result = await test_db.execute(select(Fine).where(Fine.loan_id == loan_id))
    return list(result.scalars().all())


class TestBorrow:
    """POST /api/v1/loans/borrow."""

    @pytest.mark.anyio
    async def test_borrow_success(
        self, client: AsyncClient, student, make_item, test_db, sent_mail, headers_for
    ):
        item = await make_item("Dune")

        response = await client.post(BORROW_URL, json={"item_id": str(item.id)}, headers=headers_for(student))

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "BORROWED"
        assert data["user_id"] == str(student.id)
        assert data["item_title"] == "Dune"
        assert data["renewal_count"] == 0
        assert data["is_overdue"] is False
        assert _parse(data["due_date"]) - _parse(data["loan_date"]) == timedelta(days=14)

        await test_db.refresh(item)
        assert item.status == ItemStatus.BORROWED
        # Checkout receipt
        assert sent_mail.await_args.args[0] == student.email

    @pytest.mark.anyio
    async def test_borrow_already_borrowed(
        self, client: AsyncClient, student, make_user, make_item, make_loan, headers_for
    ):
        other = await make_user(UserRole.TEACHER)
        item = await make_item()
        await make_loan(other, item)

        response = await client.post(BORROW_URL, json={"item_id": str(item.id)}, headers=headers_for(student))

        assert response.status_code == 400
        assert response.json()["message"] == "Item already borrowed"

    @pytest.mark.anyio
    async def test_borrow_item_in_maintenance(self, client: AsyncClient, student, make_item, headers_for):
        item = await make_item(status=ItemStatus.MAINTENANCE)

        response = await client.post(BORROW_URL, json={"item_id": str(item.id)}, headers=headers_for(student))

        assert response.status_code == 400
        assert "MAINTENANCE" in response.json()["message"]

    @pytest.mark.anyio
    async def test_borrow_archived_item(self, client: AsyncClient, student, make_item, headers_for):
        item = await make_item(is_archived=True)

        response = await client.post(BORROW_URL, json={"item_id": str(item.id)}, headers=headers_for(student))

        assert response.status_code == 400
        assert response.json()["message"] == "Item is archived"

    @pytest.mark.anyio
    async def test_borrow_unknown_item(self, client: AsyncClient, student, headers_for):
        response = await client.post(
            BORROW_URL, json={"item_id": str(uuid.uuid4())}, headers=headers_for(student)
        )

        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_loan_limit(self, client: AsyncClient, student, make_item, make_loan, headers_for):
        for i in range(5):
            await make_loan(student, await make_item(f"Book {i}"))
        sixth = await make_item("One too many")

        response = await client.post(BORROW_URL, json={"item_id": str(sixth.id)}, headers=headers_for(student))

        assert response.status_code == 400
        assert response.json()["message"] == "User already has 5 active loans"

    @pytest.mark.anyio
    async def test_returned_loans_do_not_count(
        self, client: AsyncClient, student, librarian, make_item, make_loan, headers_for
    ):
        loans = [await make_loan(student, await make_item(f"Book {i}")) for i in range(5)]
        await client.patch(f"{LOANS_URL}/{loans[0].id}/return", headers=headers_for(librarian))
        item = await make_item("Now allowed")

        response = await client.post(BORROW_URL, json={"item_id": str(item.id)}, headers=headers_for(student))

        assert response.status_code == 201

    @pytest.mark.anyio
    async def test_requires_authentication(self, client: AsyncClient, make_item):
        item = await make_item()

        response = await client.post(BORROW_URL, json={"item_id": str(item.id)})

        assert response.status_code == 401

    @pytest.mark.anyio
    async def test_desk_checkout_for_patron(
        self, client: AsyncClient, librarian, student, make_item, headers_for
    ):
        item = await make_item()

        response = await client.post(
            f"{LOANS_URL}/create-for-user",
            json={"user_id": str(student.id), "item_id": str(item.id)},
            headers=headers_for(librarian),
        )

        assert response.status_code == 201
        assert response.json()["user_id"] == str(student.id)

    @pytest.mark.anyio
    async def test_desk_checkout_for_unverified_patron(
        self, client: AsyncClient, librarian, make_user, make_item, headers_for
    ):
        patron = await make_user(UserRole.STUDENT, is_verified=False)
        item = await make_item()

        response = await client.post(
            f"{LOANS_URL}/create-for-user",
            json={"user_id": str(patron.id), "item_id": str(item.id)},
            headers=headers_for(librarian),
        )

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_patron_cannot_use_desk_checkout(
        self, client: AsyncClient, student, make_item, headers_for
    ):
        item = await make_item()

        response = await client.post(
            f"{LOANS_URL}/create-for-user",
            json={"user_id": str(student.id), "item_id": str(item.id)},
            headers=headers_for(student),
        )

        assert response.status_code == 403


class TestReturn:
    """PATCH /api/v1/loans/{id}/return."""

    @pytest.mark.anyio
    async def test_return_frees_item(
        self, client: AsyncClient, librarian, student, make_item, make_loan, test_db, headers_for
    ):
        item = await make_item()
        loan = await make_loan(student, item)

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        assert response.status_code == 200
        data = response.json()
        assert data["loan"]["status"] == "RETURNED"
        assert data["loan"]["return_date"] is not None
        assert data["message"] == "Item returned successfully"
        assert data["reservation_notified"] is False

        await test_db.refresh(item)
        assert item.status == ItemStatus.AVAILABLE

    @pytest.mark.anyio
    async def test_return_twice(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item())
        await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        assert response.status_code == 409
        assert response.json()["message"] == "Loan already returned"

    @pytest.mark.anyio
    async def test_late_return_issues_fine(
        self, client: AsyncClient, librarian, student, make_item, make_loan, test_db, headers_for
    ):
        loan = await make_loan(student, await make_item(), days_overdue=10)

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        assert response.status_code == 200
        data = response.json()
        assert "10 day(s) late" in data["message"]
        assert data["fine_amount"] == "15.00"
        assert data["loan"]["is_overdue"] is False

        fines = await _fines_for_loan(test_db, loan.id)
        assert len(fines) == 1
        assert fines[0].user_id == student.id
        assert fines[0].amount == Decimal("15.00")
        assert fines[0].status == FineStatus.PENDING
        assert fines[0].reason == "Late return fee - 10 days overdue"

        # The returned loan is no longer scanned, and is never fined twice
        calculation = await client.post("/api/v1/fines/calculate-overdue", headers=headers_for(librarian))
        assert calculation.json()["fines_created"] == 0
        assert len(await _fines_for_loan(test_db, loan.id)) == 1

    @pytest.mark.anyio
    async def test_late_return_after_calculation_keeps_single_fine(
        self, client: AsyncClient, librarian, student, make_item, make_loan, test_db, headers_for
    ):
        loan = await make_loan(student, await make_item(), days_overdue=3)
        await client.post("/api/v1/fines/calculate-overdue", headers=headers_for(librarian))

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        assert response.status_code == 200
        assert response.json()["fine_amount"] is None
        assert "already issued" in response.json()["message"]
        fines = await _fines_for_loan(test_db, loan.id)
        assert [fine.amount for fine in fines] == [Decimal("4.50")]

    @pytest.mark.anyio
    async def test_on_time_return_issues_no_fine(
        self, client: AsyncClient, librarian, student, make_item, make_loan, test_db, headers_for
    ):
        loan = await make_loan(student, await make_item())

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        assert response.json()["message"] == "Item returned successfully"
        assert response.json()["fine_amount"] is None
        assert await _fines_for_loan(test_db, loan.id) == []

    @pytest.mark.anyio
    async def test_patron_cannot_return(
        self, client: AsyncClient, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item())

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_return_unknown_loan(self, client: AsyncClient, librarian, headers_for):
        response = await client.patch(f"{LOANS_URL}/{uuid.uuid4()}/return", headers=headers_for(librarian))

        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_return_notifies_reservation_holder(
        self, client: AsyncClient, librarian, student, make_user, make_item, make_loan, sent_mail, headers_for
    ):
        waiting = await make_user(UserRole.TEACHER, email="waiting@example.com")
        item = await make_item()
        loan = await make_loan(student, item)
        reserved = await client.post(
            "/api/v1/reservations", json={"item_id": str(item.id)}, headers=headers_for(waiting)
        )
        assert reserved.status_code == 201

        response = await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        assert response.json()["reservation_notified"] is True
        recipients = [call.args[0] for call in sent_mail.await_args_list]
        assert "waiting@example.com" in recipients


class TestRenew:
    """PATCH /api/v1/loans/{id}/renew."""

    @pytest.mark.anyio
    async def test_renew_extends_due_date(
        self, client: AsyncClient, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item())

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))

        assert response.status_code == 200
        data = response.json()
        assert data["loan"]["renewal_count"] == 1
        assert _parse(data["new_due_date"]) - _parse(data["previous_due_date"]) == timedelta(days=14)

    @pytest.mark.anyio
    async def test_renewal_limit(self, client: AsyncClient, student, make_item, make_loan, headers_for):
        loan = await make_loan(student, await make_item())
        for _ in range(2):
            ok = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))
            assert ok.status_code == 200

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))

        assert response.status_code == 400
        assert response.json()["message"] == "Renewal limit reached (max 2)"

    @pytest.mark.anyio
    async def test_cannot_renew_overdue(
        self, client: AsyncClient, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item(), days_overdue=1)

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot renew an overdue loan"

    @pytest.mark.anyio
    async def test_cannot_renew_someone_elses_loan(
        self, client: AsyncClient, student, make_user, make_item, make_loan, headers_for
    ):
        other = await make_user(UserRole.TEACHER)
        loan = await make_loan(other, await make_item())

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_staff_can_renew_for_patron(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item())

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(librarian))

        assert response.status_code == 200

    @pytest.mark.anyio
    async def test_cannot_renew_returned_loan(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item())
        await client.patch(f"{LOANS_URL}/{loan.id}/return", headers=headers_for(librarian))

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))

        assert response.status_code == 409

    @pytest.mark.anyio
    async def test_pending_reservation_blocks_renewal(
        self, client: AsyncClient, student, make_user, make_item, make_loan, headers_for
    ):
        waiting = await make_user(UserRole.TEACHER)
        item = await make_item()
        loan = await make_loan(student, item)
        await client.post("/api/v1/reservations", json={"item_id": str(item.id)}, headers=headers_for(waiting))

        response = await client.patch(f"{LOANS_URL}/{loan.id}/renew", headers=headers_for(student))

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot renew: the item has pending reservations"


class TestLoanQueries:

    @pytest.mark.anyio
    async def test_overdue_fields_are_derived(
        self, client: AsyncClient, student, make_item, make_loan, headers_for
    ):
        loan = await make_loan(student, await make_item(), days_overdue=4)

        response = await client.get(f"{LOANS_URL}/{loan.id}", headers=headers_for(student))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "BORROWED"
        assert data["is_overdue"] is True
        assert data["days_overdue"] == 4
        assert Decimal(data["accrued_fine"]) == Decimal("6.00")

    @pytest.mark.anyio
    async def test_other_patron_cannot_read_loan(
        self, client: AsyncClient, student, make_user, make_item, make_loan, headers_for
    ):
        other = await make_user(UserRole.TEACHER)
        loan = await make_loan(other, await make_item())

        response = await client.get(f"{LOANS_URL}/{loan.id}", headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_my_loans(self, client: AsyncClient, student, make_user, make_item, make_loan, headers_for):
        other = await make_user(UserRole.TEACHER)
        await make_loan(student, await make_item("Mine"))
        await make_loan(other, await make_item("Theirs"))

        response = await client.get(f"{LOANS_URL}/my-loans", headers=headers_for(student))

        assert response.status_code == 200
        assert [loan["item_title"] for loan in response.json()] == ["Mine"]

    @pytest.mark.anyio
    async def test_overdue_listing(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        late = await make_loan(student, await make_item("Late"), days_overdue=2)
        await make_loan(student, await make_item("On time"))

        response = await client.get(f"{LOANS_URL}/overdue", headers=headers_for(librarian))

        assert response.status_code == 200
        assert [loan["id"] for loan in response.json()] == [str(late.id)]

    @pytest.mark.anyio
    async def test_all_loans_status_filter(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        returned = await make_loan(student, await make_item("Back"))
        await make_loan(student, await make_item("Out"))
        await client.patch(f"{LOANS_URL}/{returned.id}/return", headers=headers_for(librarian))

        response = await client.get(
            f"{LOANS_URL}/all", params={"status": "returned"}, headers=headers_for(librarian)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == str(returned.id)

    @pytest.mark.anyio
    async def test_all_loans_rejects_unknown_status(self, client: AsyncClient, librarian, headers_for):
        response = await client.get(
            f"{LOANS_URL}/all", params={"status": "lost"}, headers=headers_for(librarian)
        )

        assert response.status_code == 422

    @pytest.mark.anyio
    async def test_overdue_notifications(
        self, client: AsyncClient, librarian, student, make_item, make_loan, sent_mail, headers_for
    ):
        await make_loan(student, await make_item(), days_overdue=2)

        response = await client.post(f"{LOANS_URL}/send-overdue-notifications", headers=headers_for(librarian))

        assert response.status_code == 200
        assert response.json()["notified"] == 1
        assert sent_mail.await_args.args[0] == student.email

    @pytest.mark.anyio
    async def test_due_reminders_only_for_loans_due_soon(
        self, client: AsyncClient, librarian, student, make_item, make_loan, test_db, headers_for
    ):
        soon = await make_loan(student, await make_item("Soon"))
        soon.due_date = datetime.utcnow() + timedelta(hours=12)
        await test_db.commit()
        await make_loan(student, await make_item("Later"))

        response = await client.post(f"{LOANS_URL}/send-due-reminders", headers=headers_for(librarian))

        assert response.status_code == 200
        assert response.json()["notified"] == 1


@pytest.mark.anyio
async def test_loan_status_is_never_overdue(student, make_item, make_loan):
    loan = await make_loan(student, await make_item(), days_overdue=5)

    assert loan.status == LoanStatus.BORROWED
    assert loan.is_overdue is True
