import pytest
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, MetaData, String, Table

from generic_dao.schema.catalog import Database


def build_metadata() -> MetaData:
    metadata = MetaData()

    Table(
        "users",
        metadata,
        Column("userID", Integer, key="ID", primary_key=True),
        Column("firstName", String(255), key="first", nullable=False),
        Column("lastName", String(255), key="last", nullable=False),
    )

    Table(
        "phone_numbers",
        metadata,
        Column("phoneNumberID", Integer, key="ID", primary_key=True),
        Column("userID", Integer, ForeignKey("users.userID", name="fk_userID_users_userID", link_to_name=True), key="uID", nullable=False),
        Column("phoneNumber", String(32), nullable=False),
        Column("type", String(32), nullable=True),
        info={"alias": "phoneNumbers"},
    )

    Table(
        "products",
        metadata,
        Column("productID", Integer, key="ID", primary_key=True),
        Column("description", String(255), nullable=False),
        Column("isActive", Boolean, nullable=False, default=True),
        Column("primaryPhotoID", Integer, ForeignKey("photos.photoID"), nullable=True),
    )

    # Two self-references plus a circular reference back to products.
    Table(
        "photos",
        metadata,
        Column("photoID", Integer, primary_key=True),
        Column("photoURL", String(255)),
        Column("largeThumbnailID", Integer, ForeignKey("photos.photoID")),
        Column("smallThumbnailID", Integer, ForeignKey("photos.photoID")),
        Column("prodID", Integer, ForeignKey("products.productID", link_to_name=True)),
    )

    Table(
        "users_courses",
        metadata,
        Column("userCourseID", Integer, primary_key=True),
        Column("userID", Integer, ForeignKey("users.userID", link_to_name=True), nullable=False),
        Column("name", String(255), nullable=False),
        Column("city", String(255), nullable=True),
        info={"alias": "usersCourses"},
    )

    Table(
        "events",
        metadata,
        Column("eventID", Integer, key="ID", primary_key=True),
        Column("name", String(64), nullable=False),
        Column("at", DateTime, nullable=False),
    )

    return metadata


# Tables without circular references; these are created in SQLite.
PERSISTED_TABLES = ("users", "phone_numbers", "users_courses", "events")


class FakeQuery:
    """Records a builder chain; `execute` returns the scripted result for its kind."""

    def __init__(self, dc, kind, table, payload=None):
        self.dc = dc
        self.kind = kind
        self.table = table
        self.payload = payload
        self.condition = None
        self.params = {}

    def where(self, condition, params=None):
        self.condition = condition
        self.params = dict(params or {})
        return self

    def orderBy(self, *columns):
        return self

    def select(self):
        return self

    async def execute(self):
        self.dc.calls.append(self)
        result = self.dc.results[self.kind]
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            return result(self)
        if self.kind == "select":
            return {self.table.alias: list(result)}
        return result


def _assign_ids(query):
    if isinstance(query.payload, list):
        pk = query.table.primaryKey[0].mapping
        for offset, resource in enumerate(query.payload):
            resource[pk] = 100 + offset
        return query.payload
    return 42


class RecordingDataContext:
    """Stand-in for DataContext that records every executed statement."""

    def __init__(self, database):
        self.database = database
        self.calls = []
        self.results = {
            "select": [],
            "insert": _assign_ids,
            "update": 1,
            "delete": 1,
            "deleteFrom": 0,
        }

    def getDatabase(self):
        return self.database

    def from_(self, table_name):
        return FakeQuery(self, "select", self.database.getTableByName(table_name))

    def deleteFrom(self, table_name):
        return FakeQuery(self, "deleteFrom", self.database.getTableByName(table_name))

    def _model(self, kind, model):
        (alias, payload), = model.items()
        return FakeQuery(self, kind, self.database.getTableByAlias(alias), payload)

    def insert(self, model):
        return self._model("insert", model)

    def update(self, model):
        return self._model("update", model)

    def delete(self, model):
        return self._model("delete", model)

    def kinds(self):
        return [call.kind for call in self.calls]


@pytest.fixture()
def metadata():
    return build_metadata()


@pytest.fixture()
def database(metadata):
    return Database(metadata, name="testDB")


@pytest.fixture()
def fake_dc(database):
    return RecordingDataContext(database)
