"""End-to-end tests against an in-memory SQLite database (aiosqlite)."""

import asyncio
import datetime

import pytest

from generic_dao.config.connection_engine import create_connection_engine
from generic_dao.daos.generic_dao import GenericDao
from generic_dao.errors import NotFoundError, ValidationErrorList
from generic_dao.helpers.transactionManagement import transactional
from generic_dao.query.conditions import Param, eq, gte, like
from generic_dao.query.data_context import DataContext

from tests.conftest import PERSISTED_TABLES


def run_scenario(metadata, database, scenario):
    """Create the tables on a fresh engine, run `scenario(dc)`, dispose the engine."""

    async def main():
        engine = create_connection_engine("sqlite+aiosqlite:///:memory:")
        try:
            tables = [metadata.tables[name] for name in PERSISTED_TABLES]
            async with engine.begin() as conn:
                await conn.run_sync(metadata.create_all, tables=tables)
            return await scenario(DataContext(database, engine))
        finally:
            await engine.dispose()

    return asyncio.run(main())


def test_create_then_retrieve_by_id_round_trip(metadata, database):
    async def scenario(dc):
        users = GenericDao(dc, "users")
        user = {"first": "Jane", "last": "Doe"}

        created = await users.create(user)
        fetched = await users.retrieveByID(created["ID"])
        return created, fetched

    created, fetched = run_scenario(metadata, database, scenario)

    assert isinstance(created["ID"], int)
    assert fetched == created


def test_retrieve_with_condition_and_order(metadata, database):
    async def scenario(dc):
        users = GenericDao(dc, "users")
        for first in ("Bob", "Alice", "Barbara"):
            await users.create({"first": first, "last": "Smith"})

        matches = await users.retrieve(like("users.first", Param("first")), {"first": "B%"})
        ordered = await dc.from_("users").orderBy(("users.first", "DESC")).select().execute()
        return matches, ordered

    matches, ordered = run_scenario(metadata, database, scenario)

    assert sorted(u["first"] for u in matches) == ["Barbara", "Bob"]
    assert [u["first"] for u in ordered["users"]] == ["Bob", "Barbara", "Alice"]


def test_update_and_delete_by_primary_key(metadata, database):
    async def scenario(dc):
        users = GenericDao(dc, "users")
        user = await users.create({"first": "Jane", "last": "Doe"})

        await users.update({"ID": user["ID"], "last": "Roe"})
        renamed = await users.retrieveByID(user["ID"])

        await users.delete({"ID": user["ID"]})
        with pytest.raises(NotFoundError):
            await users.retrieveByID(user["ID"])
        with pytest.raises(NotFoundError):
            await users.update({"ID": user["ID"], "last": "Gone"})
        with pytest.raises(NotFoundError):
            await users.delete({"ID": user["ID"]})
        return renamed

    renamed = run_scenario(metadata, database, scenario)

    assert renamed["first"] == "Jane"
    assert renamed["last"] == "Roe"


def test_is_unique_against_stored_rows(metadata, database):
    async def scenario(dc):
        courses = GenericDao(dc, "users_courses")
        users = GenericDao(dc, "users")
        user = await users.create({"first": "Jane", "last": "Doe"})
        course = await courses.create({"userID": user["ID"], "name": "Shady Oaks"})

        where = {"$eq": {"usersCourses.name": ":name"}}
        free = await courses.isUnique(where, {"name": "Pebble Beach"})
        try:
            await courses.isUnique(where, {"name": "Shady Oaks"})
        except Exception as err:
            return free, course, err

    free, course, err = run_scenario(metadata, database, scenario)

    assert free is True
    assert err.name == "DuplicateError"
    assert err.id == course["userCourseID"]


def test_replace_children(metadata, database):
    async def scenario(dc):
        users = GenericDao(dc, "users")
        phones = GenericDao(dc, "phone_numbers")
        jane = await users.create({"first": "Jane", "last": "Doe"})
        john = await users.create({"first": "John", "last": "Doe"})

        await phones.create({"uID": jane["ID"], "phoneNumber": "555-0001"})
        await phones.create({"uID": jane["ID"], "phoneNumber": "555-0002"})
        johns = await phones.create({"uID": john["ID"], "phoneNumber": "555-0003"})

        new_numbers = [
            {"ID": johns["ID"], "phoneNumber": "555-1000", "type": "mobile"},
            {"phoneNumber": "555-2000"},
        ]
        async with dc.transaction():
            inserted = await phones.replace("users", jane["ID"], new_numbers)

        janes = await phones.retrieve(eq("phoneNumbers.uID", Param("uID")), {"uID": jane["ID"]})
        still_johns = await phones.retrieveByID(johns["ID"])
        return jane, inserted, janes, still_johns

    jane, inserted, janes, still_johns = run_scenario(metadata, database, scenario)

    assert sorted(p["phoneNumber"] for p in janes) == ["555-1000", "555-2000"]
    assert all(p["uID"] == jane["ID"] for p in inserted)
    assert {p["ID"] for p in inserted} == {p["ID"] for p in janes}
    assert still_johns["phoneNumber"] == "555-0003"


def test_replace_validation_failure_keeps_existing_children(metadata, database):
    async def scenario(dc):
        users = GenericDao(dc, "users")
        phones = GenericDao(dc, "phone_numbers")
        jane = await users.create({"first": "Jane", "last": "Doe"})
        await phones.create({"uID": jane["ID"], "phoneNumber": "555-0001"})

        with pytest.raises(ValidationErrorList):
            await phones.replace("users", jane["ID"], [{"type": "home"}])
        return await phones.retrieve()

    remaining = run_scenario(metadata, database, scenario)

    assert [p["phoneNumber"] for p in remaining] == ["555-0001"]


def test_transaction_rolls_back_on_error(metadata, database):
    async def scenario(dc):
        users = GenericDao(dc, "users")

        @transactional(dc)
        async def create_then_fail():
            await users.create({"first": "Jane", "last": "Doe"})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await create_then_fail()
        return await users.retrieve()

    assert run_scenario(metadata, database, scenario) == []


def test_date_time_strings_are_stored_as_date_times(metadata, database):
    async def scenario(dc):
        events = GenericDao(dc, "events")
        event = await events.create({"name": "Launch", "at": "2024-01-01T09:30:00"})

        stored = await events.retrieveByID(event["ID"])
        later = await events.retrieve(gte("events.at", Param("from")), {"from": "2024-01-01T00:00:00"})
        return stored, later

    stored, later = run_scenario(metadata, database, scenario)

    assert stored["at"] == datetime.datetime(2024, 1, 1, 9, 30)
    assert [e["name"] for e in later] == ["Launch"]


def test_bulk_insert_assigns_identifiers_in_order(metadata, database):
    async def scenario(dc):
        user = await GenericDao(dc, "users").create({"first": "Jane", "last": "Doe"})
        phones = [
            {"uID": user["ID"], "phoneNumber": "555-0001"},
            {"uID": user["ID"], "phoneNumber": "555-0002", "type": "work"},
            {"uID": user["ID"], "phoneNumber": "555-0003"},
        ]
        inserted = await dc.insert({"phoneNumbers": phones}).execute()
        stored = await dc.from_("phone_numbers").orderBy("phoneNumbers.ID").select().execute()
        return inserted, stored["phoneNumbers"]

    inserted, stored = run_scenario(metadata, database, scenario)

    assert [p["phoneNumber"] for p in inserted] == ["555-0001", "555-0002", "555-0003"]
    assert [(p["ID"], p["phoneNumber"], p["type"]) for p in stored] == [
        (inserted[0]["ID"], "555-0001", None),
        (inserted[1]["ID"], "555-0002", "work"),
        (inserted[2]["ID"], "555-0003", None),
    ]


def test_bulk_insert_row_by_row_without_ordered_returning(metadata, database):
    async def scenario(dc):
        dc.engine.sync_engine.dialect.insert_executemany_returning_sort_by_parameter_order = False
        users = [{"first": "Jane", "last": "Doe"}, {"first": "John", "last": "Doe"}]
        inserted = await dc.insert({"users": users}).execute()
        stored = await dc.from_("users").orderBy("users.ID").select().execute()
        return inserted, stored["users"]

    inserted, stored = run_scenario(metadata, database, scenario)

    assert [u["ID"] for u in inserted] == [u["ID"] for u in stored]
    assert [u["first"] for u in stored] == ["Jane", "John"]
