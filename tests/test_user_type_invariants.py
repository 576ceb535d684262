import os
import random
import unittest

from sqlalchemy import create_engine, func
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

from app.models.field_definition import FieldDefinition
from app.models.request import Request
from app.models.user_type import STATE_ACTIVE, UserType
from app.models.user_type_field import UserTypeField
from app.services import field_catalog, request_lifecycle, user_types
from app.services.errors import DomainError, DuplicateName, LastActiveType


class UserTypeInvariantTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        for model in (FieldDefinition, UserType, UserTypeField, Request):
            model.__table__.create(bind=self.engine)
        self.db = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)()
        self.field_id = field_catalog.create_field(self.db, name="email", label="Email", kind="email")["id"]

    def tearDown(self):
        self.db.close()
        self.engine.dispose()

    def _fields(self):
        return [{"field_id": self.field_id, "required": True, "sort_order": 1}]

    def _active_count(self) -> int:
        return int(self.db.query(func.count(UserType.id)).filter(UserType.state == STATE_ACTIVE).scalar())

    def test_random_state_changes_never_leave_zero_active_types(self):
        rng = random.Random(20261016)
        ids = [user_types.create_user_type(self.db, name=f"type_{i}", fields=self._fields())["id"] for i in range(4)]
        for i, type_id in enumerate(ids):
            request_lifecycle.submit_request(self.db, user_type_id=type_id, payload={"email": f"u{i}@example.com"})
        before = {
            str(row.id): (row.status, dict(row.payload)) for row in self.db.query(Request).all()
        }

        for _ in range(60):
            type_id = rng.choice(ids)
            action = rng.choice(["deactivate", "activate", "delete"])
            try:
                if action == "delete":
                    user_types.delete_user_type(self.db, type_id, confirmed=True)
                else:
                    user_types.set_user_type_active(self.db, type_id, active=action == "activate")
            except LastActiveType:
                self.assertEqual(self._active_count(), 1)
            except DomainError:
                pass
            self.assertGreaterEqual(self._active_count(), 1)

        after = {
            str(row.id): (row.status, dict(row.payload)) for row in self.db.query(Request).all()
        }
        self.assertEqual(before, after)

    def test_names_stay_unique_ignoring_case(self):
        user_types.create_user_type(self.db, name="Student", fields=self._fields())
        for candidate in ("student", "STUDENT", " Student "):
            with self.subTest(candidate=candidate):
                with self.assertRaises(DuplicateName):
                    user_types.create_user_type(self.db, name=candidate, fields=self._fields())
        names = [row.name_key for row in self.db.query(UserType).all()]
        self.assertEqual(names, ["student"])

    def test_orders_stay_unique_within_a_schema(self):
        other = field_catalog.create_field(self.db, name="age", label="Age", kind="number")["id"]
        created = user_types.create_user_type(
            self.db,
            name="agent",
            fields=[
                {"field_id": self.field_id, "required": True, "sort_order": 1},
                {"field_id": other, "required": False, "sort_order": 2},
            ],
        )
        user_types.update_user_type(
            self.db,
            created["id"],
            name="agent",
            fields=[
                {"field_id": self.field_id, "required": True, "sort_order": 2},
                {"field_id": other, "required": False, "sort_order": 1},
            ],
        )
        orders = [row.sort_order for row in self.db.query(UserTypeField).all()]
        self.assertEqual(sorted(orders), [1, 2])
