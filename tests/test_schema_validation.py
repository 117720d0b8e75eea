"""Schema validation tests to prevent SQL query mismatches."""

import re
import sqlite3
from pathlib import Path

import pytest

from metastore.database import Database
from metastore.repositories import conflict_repository, version_repository


@pytest.fixture
def test_db(tmp_path):
    """
    Create a temporary test database with schema.
    """
    db_path = tmp_path / "test.db"
    Database(str(db_path)).init_schema()
    return db_path


def get_table_columns(db_path: Path, table_name: str) -> set:
    """
    Get all column names for a table from the database schema.
    """
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute(f"PRAGMA table_info({table_name})")
    columns = {row[1] for row in cursor.fetchall()}
    conn.close()
    return columns


def split_columns(columns_str: str) -> set:
    return {col.strip().lower() for col in re.split(r",", columns_str) if col.strip()}


class TestFileMetadataSchema:
    def test_file_metadata_columns(self, test_db):
        assert get_table_columns(test_db, "file_metadata") == {
            "file_id",
            "path",
            "checksum",
            "creation_timestamp",
            "last_modified_timestamp",
            "owner",
            "owner_group",
            "current_version_number",
        }

    def test_version_number_check_constraint(self, test_db):
        conn = sqlite3.connect(test_db)
        try:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO file_metadata VALUES ('f1', '/a', 'c1', 't', 't', 'alice', 'staff', 0)"
                )
        finally:
            conn.close()


class TestVersionsSchema:
    def test_versions_columns_match_repository(self, test_db):
        expected = split_columns(version_repository._SELECT_COLUMNS)
        assert get_table_columns(test_db, "versions") == expected

    def test_file_and_number_unique(self, test_db):
        conn = sqlite3.connect(test_db)
        try:
            conn.execute("INSERT INTO versions VALUES ('v1', 'f1', 1, 't', 'c1', NULL)")
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute("INSERT INTO versions VALUES ('v2', 'f1', 1, 't', 'c2', NULL)")
        finally:
            conn.close()

    def test_versions_index_exists(self, test_db):
        conn = sqlite3.connect(test_db)
        cursor = conn.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='index' AND name='idx_versions_file_id'")
        result = cursor.fetchone()
        conn.close()
        assert result is not None


class TestConflictResolutionsSchema:
    def test_conflict_columns_match_repository(self, test_db):
        expected = split_columns(conflict_repository._SELECT_COLUMNS)
        assert get_table_columns(test_db, "conflict_resolutions") == expected
