import threading
from unittest.mock import MagicMock, patch

import psycopg2
import psycopg2.pool
import pytest
from psycopg2.extras import Json

from db.client import TableQuery
from db.connection import ConnectionPool
from db.postgres_client import PostgresDatabase, compile_query


def _make_db(rows=None, description=(("id",),)):
    cursor = MagicMock()
    cursor.description = description
    cursor.fetchall.return_value = rows or []
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    pool = MagicMock(spec=ConnectionPool)
    pool.connection.return_value.__enter__.return_value = conn
    return PostgresDatabase(pool), pool, cursor


def test_select_returns_rows_as_dicts():
    db, _, cursor = _make_db(rows=[{"id": 1, "name": "Aria"}])

    data, error = db.table("characters").select("*").execute()

    assert error is None
    assert data == [{"id": 1, "name": "Aria"}]
    assert cursor.execute.call_count == 1


def test_update_binds_patch_then_filter_values():
    db, _, cursor = _make_db(rows=[{"id": 42, "name": "Renamed"}])

    data, error = db.table("characters").update({"name": "Renamed"}).eq("id", "42").select().execute()

    assert error is None
    assert data == [{"id": 42, "name": "Renamed"}]
    _, params = cursor.execute.call_args.args
    assert params == ["Renamed", "42"]


def test_insert_wraps_nested_values_as_json():
    db, _, cursor = _make_db(rows=[{"id": 1}])

    db.table("characters").insert([{"name": "Aria", "abilities": ["flight"], "metadata": {"a": 1}}]).select().execute()

    _, params = cursor.execute.call_args.args
    assert params[0] == "Aria"
    assert isinstance(params[1], Json)
    assert isinstance(params[2], Json)


def test_delete_without_returning_yields_empty_list():
    db, _, cursor = _make_db(description=None)

    data, error = db.table("characters").delete().eq("id", "3").execute()

    assert error is None
    assert data == []
    cursor.fetchall.assert_not_called()


@pytest.mark.parametrize("payload", [[None], None, ["Aria"], []])
def test_insert_rejects_non_object_rows_without_querying(payload):
    db, pool, _ = _make_db()

    data, error = db.table("characters").insert(payload).select().execute()

    assert data is None
    assert error.message == "insert payload must be an object or a list of objects"
    pool.connection.assert_not_called()


@pytest.mark.parametrize("patch_body", [None, {}, ["name"]])
def test_update_rejects_empty_or_non_object_patch(patch_body):
    db, pool, _ = _make_db()

    _, error = db.table("characters").update(patch_body).eq("id", "1").execute()

    assert error.message == "update payload must be a non-empty object"
    pool.connection.assert_not_called()


def test_unfiltered_delete_is_refused():
    with pytest.raises(ValueError, match="DELETE requires a WHERE clause"):
        compile_query(TableQuery(client=None, table="characters", action="delete"))


def test_driver_error_becomes_error_result():
    db, _, cursor = _make_db()
    cursor.execute.side_effect = psycopg2.Error("connection reset by peer")

    data, error = db.table("characters").select("*").execute()

    assert data is None
    assert error.message == "connection reset by peer"


def test_close_closes_pool():
    db, pool, _ = _make_db()

    db.close()

    pool.close.assert_called_once()


# == ConnectionPool ==

@patch("db.connection.pool.ThreadedConnectionPool")
def test_connection_commits_on_success(pool_cls):
    raw_pool = pool_cls.return_value
    conn = raw_pool.getconn.return_value
    pool = ConnectionPool("postgresql://localhost/lore")
    pool.init()

    with pool.connection() as c:
        assert c is conn

    conn.commit.assert_called_once()
    raw_pool.putconn.assert_called_once_with(conn)


@patch("db.connection.pool.ThreadedConnectionPool")
def test_connection_rolls_back_on_error(pool_cls):
    raw_pool = pool_cls.return_value
    conn = raw_pool.getconn.return_value
    pool = ConnectionPool("postgresql://localhost/lore")
    pool.init()

    with pytest.raises(psycopg2.Error):
        with pool.connection():
            raise psycopg2.Error("boom")

    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    raw_pool.putconn.assert_called_once_with(conn)


def test_connection_before_init_raises():
    with pytest.raises(RuntimeError):
        ConnectionPool("postgresql://localhost/lore").get_connection()


@patch("db.connection.pool.ThreadedConnectionPool")
def test_exhausted_pool_waits_for_a_release(pool_cls):
    raw_pool = pool_cls.return_value
    raw_pool.getconn.side_effect = lambda: MagicMock()
    pool = ConnectionPool("postgresql://localhost/lore", min_conn=1, max_conn=2)
    pool.init()
    first = pool.get_connection()
    pool.get_connection()

    checked_out = threading.Event()

    def third_request():
        pool.get_connection()
        checked_out.set()

    worker = threading.Thread(target=third_request, daemon=True)
    worker.start()

    assert not checked_out.wait(0.2)
    assert raw_pool.getconn.call_count == 2

    pool.release_connection(first)

    assert checked_out.wait(2)
    worker.join(2)
    assert raw_pool.getconn.call_count == 3


@patch("db.connection.pool.ThreadedConnectionPool")
def test_failed_checkout_frees_its_slot(pool_cls):
    raw_pool = pool_cls.return_value
    raw_pool.getconn.side_effect = [psycopg2.pool.PoolError("connection pool exhausted"), MagicMock()]
    pool = ConnectionPool("postgresql://localhost/lore", min_conn=1, max_conn=1)
    pool.init()

    with pytest.raises(psycopg2.pool.PoolError):
        pool.get_connection()

    # the only slot is free again, so this does not block
    assert pool.get_connection() is not None
