"""
Generic CRUD resource tests.

Verifies:
- Case-insensitive search and pagination metadata
- Payload validation through the field allowlist
- Bulk delete is all-or-nothing
- Delete guards for referenced rows
- Transactions are read-only
"""

import pytest

from stockdesk.extensions import db
from stockdesk.models import Customer
from stockdesk.services import loan_service
from stockdesk.services.crud_service import get_resource
from stockdesk.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def customers():
    return get_resource("customers")


class TestList:

    def test_search_is_case_insensitive(self, db_session, customers):
        for name, email in [("Alice", "alice@shop.test"), ("Bob", "BOB@corp.test"), ("Carol", None)]:
            customers.create({"name": name, "email": email})

        result = customers.list(search="CORP")
        assert [c["name"] for c in result["items"]] == ["Bob"]
        assert result["count"] == 1

    def test_pagination(self, db_session, customers):
        for i in range(5):
            customers.create({"name": f"Customer {i}"})

        result = customers.list(page=2, page_size=2)

        assert [c["name"] for c in result["items"]] == ["Customer 2", "Customer 3"]
        assert result["pagination"] == {
            "page": 2,
            "per_page": 2,
            "total": 5,
            "total_pages": 3,
            "has_next": True,
            "has_prev": True,
        }

    def test_empty_table(self, db_session, customers):
        result = customers.list()
        assert result["items"] == []
        assert result["pagination"]["total_pages"] == 1
        assert result["pagination"]["has_next"] is False


class TestWrites:

    def test_unknown_field_rejected(self, db_session, customers):
        with pytest.raises(ValidationError, match="Field not allowed: id"):
            customers.create({"name": "Dave", "id": 7})

    def test_required_field(self, db_session, customers):
        with pytest.raises(ValidationError, match="Missing required fields: name"):
            customers.create({"email": "x@y.test"})

    def test_invalid_email(self, db_session, customers):
        with pytest.raises(ValidationError, match="email is invalid"):
            customers.create({"name": "Eve", "email": "not-an-email"})

    def test_update_is_partial(self, db_session, customers):
        row = customers.create({"name": "Frank", "phone": "123"})
        updated = customers.update(row.id, {"phone": "456"})
        assert (updated.name, updated.phone) == ("Frank", "456")

    def test_update_missing(self, db_session, customers):
        with pytest.raises(NotFoundError, match="Customer not found"):
            customers.update(404, {"phone": "1"})

    def test_expense_requires_existing_category(self, db_session):
        expenses = get_resource("expenses")
        with pytest.raises(NotFoundError, match="Expense category not found"):
            expenses.create({"amount_cents": 500, "expense_date": "2026-02-01", "category_id": 77})
        with pytest.raises(ValidationError):
            expenses.create({"amount_cents": 0, "expense_date": "2026-02-01"})

    def test_ticket_status_validated(self, db_session):
        tickets = get_resource("support_tickets")
        row = tickets.create({"subject": "Till drawer stuck"})
        assert row.status == "open"
        with pytest.raises(ValidationError):
            tickets.update(row.id, {"status": "someday"})


class TestDelete:

    def test_bulk_delete_all_or_nothing(self, db_session, customers):
        a = customers.create({"name": "A"})
        b = customers.create({"name": "B"})

        with pytest.raises(NotFoundError, match="Customer not found: 999"):
            customers.bulk_delete([a.id, b.id, 999])
        assert db.session.query(Customer).count() == 2

        assert customers.bulk_delete([a.id, b.id]) == 2
        assert db.session.query(Customer).count() == 0

    def test_bulk_delete_validates_ids(self, db_session, customers):
        with pytest.raises(ValidationError):
            customers.bulk_delete([])
        with pytest.raises(ValidationError):
            customers.bulk_delete(["1"])

    def test_guard_blocks_referenced_customer(self, db_session, customers):
        row = customers.create({"name": "Borrower"})
        loan_service.create_loan(row.id, 1_000)

        with pytest.raises(ConflictError, match="customer has loans"):
            customers.delete(row.id)
        with pytest.raises(ConflictError):
            customers.bulk_delete([row.id])
        assert db.session.get(Customer, row.id) is not None

    def test_guard_blocks_category_in_use(self, db_session, category, make_product):
        make_product("Juice", category_id=category.id)
        with pytest.raises(ConflictError, match="category is used by products"):
            get_resource("categories").delete(category.id)

    def test_transactions_are_read_only(self, db_session):
        transactions = get_resource("transactions")
        with pytest.raises(ConflictError, match="read-only"):
            transactions.create({})
        with pytest.raises(ConflictError):
            transactions.bulk_delete([1])


def test_unknown_resource():
    with pytest.raises(NotFoundError):
        get_resource("spaceships")
