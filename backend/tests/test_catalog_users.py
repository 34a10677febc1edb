"""
Integration tests for the catalog, user management, activities and stats.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient

from lms.models.enums import ItemStatus, ItemType, UserRole

ITEMS_URL = "/api/v1/items"
USERS_URL = "/api/v1/users"


class TestCatalog:
    """Items and categories."""

    @pytest.mark.anyio
    async def test_create_item_with_category(self, client: AsyncClient, librarian, headers_for):
        category = await client.post(
            "/api/v1/categories", json={"name": "Fiction"}, headers=headers_for(librarian)
        )
        assert category.status_code == 201

        response = await client.post(
            ITEMS_URL,
            json={
                "title": "Dune",
                "type": "BOOK",
                "metadata": {"author": "Frank Herbert", "isbn": "9780441013593"},
                "category_ids": [category.json()["id"]],
            },
            headers=headers_for(librarian),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "AVAILABLE"
        assert data["unique_item_id"]
        assert data["metadata"]["author"] == "Frank Herbert"
        assert [c["name"] for c in data["categories"]] == ["Fiction"]

    @pytest.mark.anyio
    async def test_duplicate_category(self, client: AsyncClient, librarian, headers_for):
        await client.post("/api/v1/categories", json={"name": "Poetry"}, headers=headers_for(librarian))

        response = await client.post(
            "/api/v1/categories", json={"name": "Poetry"}, headers=headers_for(librarian)
        )

        assert response.status_code == 409

    @pytest.mark.anyio
    async def test_unknown_category(self, client: AsyncClient, librarian, headers_for):
        response = await client.post(
            ITEMS_URL,
            json={"title": "Orphan", "category_ids": ["00000000-0000-0000-0000-000000000000"]},
            headers=headers_for(librarian),
        )

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_patron_cannot_add_items(self, client: AsyncClient, student, headers_for):
        response = await client.post(ITEMS_URL, json={"title": "Nope"}, headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_search_and_filters(self, client: AsyncClient, student, make_item, headers_for):
        await make_item("Dune")
        await make_item("Dune Messiah", status=ItemStatus.MAINTENANCE)
        await make_item("Cosmos", item_type=ItemType.DVD)

        search = await client.get(ITEMS_URL, params={"search": "dune"}, headers=headers_for(student))
        available = await client.get(
            ITEMS_URL, params={"search": "dune", "available": True}, headers=headers_for(student)
        )
        dvds = await client.get(ITEMS_URL, params={"type": "DVD"}, headers=headers_for(student))

        assert search.json()["total"] == 2
        assert [i["title"] for i in available.json()["items"]] == ["Dune"]
        assert [i["title"] for i in dvds.json()["items"]] == ["Cosmos"]

    @pytest.mark.anyio
    async def test_archived_items_hidden_from_patrons(
        self, client: AsyncClient, student, librarian, make_item, headers_for
    ):
        item = await make_item("Old", is_archived=True)

        patron_list = await client.get(
            ITEMS_URL, params={"include_archived": True}, headers=headers_for(student)
        )
        staff_list = await client.get(
            ITEMS_URL, params={"include_archived": True}, headers=headers_for(librarian)
        )
        patron_get = await client.get(f"{ITEMS_URL}/{item.id}", headers=headers_for(student))

        assert patron_list.json()["total"] == 0
        assert staff_list.json()["total"] == 1
        assert patron_get.status_code == 404

    @pytest.mark.anyio
    async def test_archive_and_restore(self, client: AsyncClient, librarian, make_item, headers_for):
        item = await make_item()

        archived = await client.delete(f"{ITEMS_URL}/{item.id}", headers=headers_for(librarian))
        restored = await client.patch(f"{ITEMS_URL}/{item.id}/unarchive", headers=headers_for(librarian))

        assert archived.json()["is_archived"] is True
        assert restored.json()["is_archived"] is False

    @pytest.mark.anyio
    async def test_cannot_archive_borrowed_item(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        item = await make_item()
        await make_loan(student, item)

        response = await client.delete(f"{ITEMS_URL}/{item.id}", headers=headers_for(librarian))

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_status_borrowed_cannot_be_set_by_hand(
        self, client: AsyncClient, librarian, make_item, headers_for
    ):
        item = await make_item()

        response = await client.patch(
            f"{ITEMS_URL}/{item.id}", json={"status": "BORROWED"}, headers=headers_for(librarian)
        )

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_update_merges_metadata(self, client: AsyncClient, librarian, make_item, headers_for):
        item = await make_item()

        response = await client.patch(
            f"{ITEMS_URL}/{item.id}",
            json={"status": "MAINTENANCE", "metadata": {"isbn": "123"}},
            headers=headers_for(librarian),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "MAINTENANCE"
        assert data["metadata"] == {"author": "Frank Herbert", "isbn": "123"}


class TestUsers:
    """User management."""

    @pytest.mark.anyio
    async def test_admin_creates_librarian(self, client: AsyncClient, admin, headers_for):
        response = await client.post(
            USERS_URL,
            json={"name": "New Lib", "email": "newlib@example.com", "password": "Secret123", "role": "LIBRARIAN"},
            headers=headers_for(admin),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == "LIBRARIAN"
        assert data["is_verified"] is True

    @pytest.mark.anyio
    async def test_librarian_creates_patron_only(self, client: AsyncClient, librarian, headers_for):
        patron = await client.post(
            f"{USERS_URL}/patrons",
            json={"name": "Pat", "email": "pat@example.com", "password": "Secret123", "role": "TEACHER"},
            headers=headers_for(librarian),
        )
        staff = await client.post(
            f"{USERS_URL}/patrons",
            json={"name": "Sneaky", "email": "sneaky@example.com", "password": "Secret123", "role": "ADMIN"},
            headers=headers_for(librarian),
        )

        assert patron.status_code == 201
        assert staff.status_code == 422

    @pytest.mark.anyio
    async def test_librarian_cannot_create_staff(self, client: AsyncClient, librarian, headers_for):
        response = await client.post(
            USERS_URL,
            json={"name": "Lib", "email": "lib2@example.com", "password": "Secret123", "role": "LIBRARIAN"},
            headers=headers_for(librarian),
        )

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_patron_cannot_list_users(self, client: AsyncClient, student, headers_for):
        response = await client.get(USERS_URL, headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_list_filters_by_role(self, client: AsyncClient, librarian, student, headers_for):
        response = await client.get(USERS_URL, params={"role": "STUDENT"}, headers=headers_for(librarian))

        assert response.status_code == 200
        assert [u["email"] for u in response.json()["items"]] == [student.email]

    @pytest.mark.anyio
    async def test_change_role(self, client: AsyncClient, admin, student, headers_for):
        response = await client.patch(
            f"{USERS_URL}/{student.id}/role", json={"role": "TEACHER"}, headers=headers_for(admin)
        )

        assert response.status_code == 200
        assert response.json()["role"] == "TEACHER"

    @pytest.mark.anyio
    async def test_admin_cannot_deactivate_self(self, client: AsyncClient, admin, headers_for):
        response = await client.patch(f"{USERS_URL}/{admin.id}/deactivate", headers=headers_for(admin))

        assert response.status_code == 400

    @pytest.mark.anyio
    async def test_librarian_approval(self, client: AsyncClient, admin, make_user, headers_for):
        pending = await make_user(UserRole.LIBRARIAN, is_active=False, is_approved=False)

        requests = await client.get(f"{USERS_URL}/librarian-requests", headers=headers_for(admin))
        assert [u["id"] for u in requests.json()] == [str(pending.id)]

        response = await client.patch(f"{USERS_URL}/{pending.id}/activate", headers=headers_for(admin))

        assert response.json()["is_active"] is True
        requests = await client.get(f"{USERS_URL}/librarian-requests", headers=headers_for(admin))
        assert requests.json() == []

    @pytest.mark.anyio
    async def test_deactivated_librarian_is_not_a_request(
        self, client: AsyncClient, admin, librarian, headers_for
    ):
        await client.patch(f"{USERS_URL}/{librarian.id}/deactivate", headers=headers_for(admin))

        requests = await client.get(f"{USERS_URL}/librarian-requests", headers=headers_for(admin))
        stats = await client.get(f"{USERS_URL}/statistics", headers=headers_for(admin))

        assert requests.json() == []
        assert stats.json()["pending_librarians"] == 0

    @pytest.mark.anyio
    async def test_deactivated_user_is_locked_out(self, client: AsyncClient, admin, student, headers_for):
        await client.patch(f"{USERS_URL}/{student.id}/deactivate", headers=headers_for(admin))

        response = await client.get("/api/v1/auth/me", headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_update_own_profile(self, client: AsyncClient, student, headers_for):
        response = await client.patch(
            f"{USERS_URL}/me",
            json={"name": "Samuel Student", "metadata": {"phone": "555-0100"}},
            headers=headers_for(student),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Samuel Student"
        assert data["metadata"]["phone"] == "555-0100"

    @pytest.mark.anyio
    async def test_statistics(self, client: AsyncClient, admin, student, librarian, headers_for):
        response = await client.get(f"{USERS_URL}/statistics", headers=headers_for(admin))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["by_role"]["STUDENT"] == 1
        assert data["by_role"]["TEACHER"] == 0


class TestActivitiesAndStats:

    @pytest.mark.anyio
    async def test_borrow_is_recorded(self, client: AsyncClient, student, make_item, headers_for):
        item = await make_item()
        await client.post("/api/v1/loans/borrow", json={"item_id": str(item.id)}, headers=headers_for(student))

        response = await client.get("/api/v1/activities/my", headers=headers_for(student))

        assert response.status_code == 200
        actions = [a["action"] for a in response.json()["items"]]
        assert "LOAN_CREATED" in actions

    @pytest.mark.anyio
    async def test_patron_cannot_list_all_activities(self, client: AsyncClient, student, headers_for):
        response = await client.get("/api/v1/activities", headers=headers_for(student))

        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_system_stats(
        self, client: AsyncClient, librarian, student, make_item, make_loan, headers_for
    ):
        await make_loan(student, await make_item("Late"), days_overdue=2)
        await make_loan(student, await make_item("On time"))
        await make_item("Shelf")
        await client.post("/api/v1/fines/calculate-overdue", headers=headers_for(librarian))

        response = await client.get("/api/v1/system/stats", headers=headers_for(librarian))

        assert response.status_code == 200
        data = response.json()
        assert data["items_total"] == 3
        assert data["items_by_status"]["BORROWED"] == 2
        assert data["open_loans"] == 2
        assert data["overdue_loans"] == 1
        assert data["pending_fines"] == 1
        assert Decimal(data["pending_fines_amount"]) == Decimal("3.00")
        assert data["users_total"] == 2
