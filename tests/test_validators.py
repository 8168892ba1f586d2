import asyncio
import datetime

import pytest

from generic_dao.errors import ConfigurationError, ValidationErrorList
from generic_dao.query.conditions import Param, eq
from generic_dao.validation.validators import (
    DeleteValidator,
    InsertValidator,
    ModelValidator,
    UpdateValidator,
)


def _messages(validator):
    with pytest.raises(ValidationErrorList) as exc_info:
        asyncio.run(validator.validate())
    assert exc_info.value.code == "VAL_ERROR_LIST"
    return [e.message for e in exc_info.value.errors]


def test_params_type_checked(database):
    validator = ModelValidator({"userID": "asdf"}, "usersCourses", database)

    assert _messages(validator) == ["userID is not a valid integer."]


def test_params_null_only_for_nullable_columns(database):
    assert asyncio.run(ModelValidator({"city": None}, "usersCourses", database).validate()) is True
    assert _messages(ModelValidator({"userID": None}, "usersCourses", database)) == ["userID cannot be null."]


def test_params_ignore_unknown_keys_and_check_lists(database):
    assert asyncio.run(ModelValidator({"whatever": object()}, "usersCourses", database).validate()) is True
    assert asyncio.run(ModelValidator({"userID": [1, "2"]}, "usersCourses", database).validate()) is True
    assert _messages(ModelValidator({"userID": [1, "x"]}, "usersCourses", database)) == [
        "userID is not a valid integer."
    ]


def test_insert_requires_fields_in_column_order(database):
    validator = InsertValidator({}, "usersCourses", database)

    assert _messages(validator) == ["userID is required.", "name is required."]


def test_insert_accepts_valid_resource(database):
    resource = {"userID": 3, "name": "Mackey"}

    assert asyncio.run(InsertValidator(resource, "usersCourses", database).validate()) is True


def test_insert_rejects_unknown_properties_and_long_strings(database):
    resource = {"uID": 1, "phoneNumber": "5" * 40, "color": "red"}
    messages = _messages(InsertValidator(resource, "phoneNumbers", database))

    assert messages == ["phoneNumber must be at most 32 characters.", "color is not a valid property."]


def test_insert_checks_booleans(database):
    resource = {"description": "Widget", "isActive": "maybe"}

    assert _messages(InsertValidator(resource, "products", database)) == ["isActive is not a valid boolean."]


def test_update_requires_primary_key(database):
    validator = UpdateValidator({"userID": 3, "name": "Makey"}, "usersCourses", database)

    assert _messages(validator) == ["userCourseID is required."]


def test_update_allows_partial_resources(database):
    validator = UpdateValidator({"userCourseID": 12, "city": "Boston"}, "usersCourses", database)

    assert asyncio.run(validator.validate()) is True


def test_delete_checks_only_primary_key(database):
    assert asyncio.run(DeleteValidator({"ID": 4, "first": 17}, "users", database).validate()) is True
    assert _messages(DeleteValidator({"ID": "not-an-integer"}, "users", database)) == ["ID is not a valid integer."]
    assert _messages(DeleteValidator({}, "users", database)) == ["ID is required."]


def test_valid_values_are_converted_in_place(database):
    resource = {"name": "Launch", "at": "2024-01-01T09:30:00"}

    asyncio.run(InsertValidator(resource, "events", database).validate())

    assert resource["at"] == datetime.datetime(2024, 1, 1, 9, 30)


def test_invalid_payload_is_left_unconverted(database):
    params = {"userID": "3", "userCourseID": "x"}

    _messages(ModelValidator(params, "usersCourses", database))

    assert params == {"userID": "3", "userCourseID": "x"}


def test_params_follow_the_condition_placeholders(database):
    params = {"first": "12", "unused": "anything"}
    validator = ModelValidator(params, "users", database, condition=eq("users.ID", Param("first")))

    assert asyncio.run(validator.validate()) is True
    assert params == {"first": 12, "unused": "anything"}


def test_condition_outside_the_table_is_a_configuration_error(database):
    validator = ModelValidator({"x": 1}, "users", database, condition=eq("phoneNumbers.ID", Param("x")))

    with pytest.raises(ConfigurationError):
        asyncio.run(validator.validate())
