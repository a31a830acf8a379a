"""Tests for PostgresClient - pooled connections and explicit transactions."""

import threading

import psycopg2
import psycopg2.extensions
import pytest
from uuid import uuid4


class TestPostgresClientInit:
    """Connection pool initialization."""

    def test_creates_pool_with_valid_url(self, db):
        """Valid URL creates working connection pool."""
        result = db.execute_scalar("SELECT 1")
        assert result == 1


class TestExecuteMethods:
    """Query execution methods."""

    def test_execute_returns_list_of_dicts(self, db):
        """execute() returns list of row dicts."""
        results = db.execute("SELECT 1 as num, 'hello' as word")
        assert results == [{"num": 1, "word": "hello"}]

    def test_execute_empty_returns_empty_list(self, db):
        """No matching rows returns [], not None."""
        results = db.execute("SELECT 1 WHERE false")
        assert results == []

    def test_execute_without_result_set_returns_empty_list(self, db, owner_id):
        """Statements without RETURNING give []."""
        assert db.execute("UPDATE owners SET phone = %s WHERE id = %s", ("600", owner_id)) == []

    def test_execute_single_returns_dict(self, db):
        """execute_single() returns first row as dict."""
        result = db.execute_single("SELECT 42 as answer")
        assert result == {"answer": 42}

    def test_execute_single_no_rows_returns_none(self, db):
        """execute_single() returns None for empty result."""
        result = db.execute_single("SELECT 1 WHERE false")
        assert result is None

    def test_execute_scalar_returns_value(self, db):
        """execute_scalar() returns first value of first row."""
        result = db.execute_scalar("SELECT 'test'")
        assert result == "test"

    def test_execute_scalar_no_rows_returns_none(self, db):
        """execute_scalar() returns None for empty result."""
        result = db.execute_scalar("SELECT 1 WHERE false")
        assert result is None

    def test_execute_returning_gives_rows(self, db):
        """execute_returning() returns the RETURNING rows."""
        owner_id = uuid4()
        rows = db.execute_returning(
            "INSERT INTO owners (id, name) VALUES (%s, %s) RETURNING id, last_invoice_number",
            (owner_id, "Returning Owner")
        )
        assert rows == [{"id": owner_id, "last_invoice_number": 0}]

    def test_uuid_round_trip(self, db):
        """UUID parameters and columns are adapted both ways."""
        value = uuid4()
        assert db.execute_scalar("SELECT %s::uuid", (value,)) == value


class TestTransaction:
    """transaction() commits or rolls back as one unit."""

    def test_commits_on_success(self, db):
        owner_id = uuid4()

        with db.transaction() as tx:
            tx.execute("INSERT INTO owners (id, name) VALUES (%s, %s)", (owner_id, "Committed"))
            tx.execute("UPDATE owners SET last_invoice_number = 5 WHERE id = %s", (owner_id,))

        assert db.execute_scalar("SELECT last_invoice_number FROM owners WHERE id = %s", (owner_id,)) == 5

    def test_rolls_back_and_reraises(self, db):
        owner_id = uuid4()

        with pytest.raises(RuntimeError, match="boom"):
            with db.transaction() as tx:
                tx.execute("INSERT INTO owners (id, name) VALUES (%s, %s)", (owner_id, "Discarded"))
                raise RuntimeError("boom")

        assert db.execute_single("SELECT id FROM owners WHERE id = %s", (owner_id,)) is None

    def test_database_error_rolls_back(self, db):
        owner_id = uuid4()

        with pytest.raises(psycopg2.errors.CheckViolation):
            with db.transaction() as tx:
                tx.execute("INSERT INTO owners (id, name) VALUES (%s, %s)", (owner_id, "Negative"))
                tx.execute("UPDATE owners SET last_invoice_number = -1 WHERE id = %s", (owner_id,))

        assert db.execute_single("SELECT id FROM owners WHERE id = %s", (owner_id,)) is None

    def test_yields_dict_rows(self, db):
        with db.transaction() as tx:
            tx.execute("SELECT 7 AS seven")
            assert tx.fetchone()["seven"] == 7

    def test_row_lock_held_until_exit(self, db, owner_id):
        """A FOR UPDATE lock taken in transaction() blocks other lockers until commit."""
        order = []
        locked = threading.Event()

        def contender():
            locked.wait()
            with db.transaction() as tx:
                tx.execute("SELECT id FROM owners WHERE id = %s FOR UPDATE", (owner_id,))
                order.append("contender")

        worker = threading.Thread(target=contender)
        worker.start()

        with db.transaction() as tx:
            tx.execute("SELECT id FROM owners WHERE id = %s FOR UPDATE", (owner_id,))
            locked.set()
            worker.join(timeout=0.3)
            order.append("holder")

        worker.join(timeout=10)
        assert order == ["holder", "contender"]


class TestConnectionReturn:
    """Connections go back to the pool idle."""

    def test_open_transaction_rolled_back_on_return(self, db):
        with db.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")
            assert conn.get_transaction_status() == psycopg2.extensions.TRANSACTION_STATUS_INTRANS

        assert conn.get_transaction_status() == psycopg2.extensions.TRANSACTION_STATUS_IDLE
