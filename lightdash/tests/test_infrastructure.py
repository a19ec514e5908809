"""Tests for encryption, configuration and database helpers."""

import uuid
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from lightdash.core.config import DEVELOPMENT_SECRET, get_config
from lightdash.core.db import is_constraint_violation, parse_uuid, upsert
from lightdash.core.db.models import CachedWarehouse, ProjectMembership
from lightdash.core.encryption import EncryptionError, EncryptionService
from lightdash.core.errors import NotExistsError, ParseError


class TestEncryptionService:

    def test_round_trip(self):
        service = EncryptionService("secret")
        encrypted = service.encrypt('{"password": "hunter2"}')
        assert b"hunter2" not in encrypted
        assert service.decrypt(encrypted) == '{"password": "hunter2"}'

    def test_wrong_secret_fails(self):
        encrypted = EncryptionService("secret").encrypt("value")
        with pytest.raises(EncryptionError):
            EncryptionService("other").decrypt(encrypted)

    def test_empty_secret_is_rejected(self):
        with pytest.raises(ValueError):
            EncryptionService("")


class TestConfig:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("LIGHTDASH_SECRET", "s3cret")
        monkeypatch.setenv("LIGHTDASH_DB_POOL_SIZE", "3")
        get_config.cache_clear()

        with patch("lightdash.core.config.load_dotenv"):
            config = get_config()
        get_config.cache_clear()

        assert config.database_url == "sqlite://"
        assert config.lightdash_secret == "s3cret"
        assert config.db_pool_size == 3

    def test_missing_secret_is_required(self, monkeypatch):
        monkeypatch.delenv("LIGHTDASH_SECRET", raising=False)
        monkeypatch.delenv("LIGHTDASH_ENV", raising=False)
        get_config.cache_clear()

        with patch("lightdash.core.config.load_dotenv"):
            with pytest.raises(ParseError, match="Must specify LIGHTDASH_SECRET"):
                get_config()
        get_config.cache_clear()

    def test_missing_secret_in_development_warns(self, monkeypatch, caplog):
        monkeypatch.delenv("LIGHTDASH_SECRET", raising=False)
        monkeypatch.setenv("LIGHTDASH_ENV", "development")
        get_config.cache_clear()

        with patch("lightdash.core.config.load_dotenv"), caplog.at_level("WARNING"):
            config = get_config()
        get_config.cache_clear()

        assert config.lightdash_secret == DEVELOPMENT_SECRET
        assert "LIGHTDASH_SECRET is not set" in caplog.text


class TestParseUuid:

    def test_valid(self):
        value = uuid.uuid4()
        assert parse_uuid(str(value)) == value

    def test_malformed_raises_not_exists(self):
        with pytest.raises(NotExistsError, match="Cannot find user with id: 42"):
            parse_uuid("42", "user")


class TestConstraintViolation:

    def _constraint(self):
        return next(
            c for c in ProjectMembership.__table__.constraints
            if c.name == "project_memberships_project_id_user_id_unique"
        )

    def test_postgres_constraint_name(self):
        orig = MagicMock()
        orig.diag.constraint_name = "project_memberships_project_id_user_id_unique"
        error = IntegrityError("INSERT", {}, orig)
        assert is_constraint_violation(error, self._constraint())

    def test_postgres_other_constraint(self):
        orig = MagicMock()
        orig.diag.constraint_name = "emails_email_key"
        error = IntegrityError("INSERT", {}, orig)
        assert not is_constraint_violation(error, self._constraint())

    def test_sqlite_message(self):
        error = IntegrityError("INSERT", {}, Exception(
            "UNIQUE constraint failed: project_memberships.project_id, project_memberships.user_id"
        ))
        assert is_constraint_violation(error, self._constraint())


class TestUpsert:

    def test_insert_then_update(self, db_manager, source_project):
        with db_manager.get_session() as session:
            upsert(session, CachedWarehouse,
                   {"project_uuid": source_project.project_uuid, "warehouse": {"a": 1}},
                   conflict_columns=["project_uuid"])
        with db_manager.get_session() as session:
            row = upsert(session, CachedWarehouse,
                         {"project_uuid": source_project.project_uuid, "warehouse": {"b": 2}},
                         conflict_columns=["project_uuid"])
            assert row.warehouse == {"b": 2}
            assert session.query(CachedWarehouse).count() == 1

    def test_unsupported_dialect(self):
        session = MagicMock()
        session.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(NotImplementedError):
            upsert(session, CachedWarehouse, {"project_uuid": None}, conflict_columns=["project_uuid"])
