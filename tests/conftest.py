"""Shared pytest fixtures for sqlscaffold tests."""

import pytest
from pathlib import Path
from sqlalchemy import create_engine
from sqlscaffold.config import Configuration
from sqlscaffold.model import CatalogColumn
from sqlscaffold.source import CatalogMetadataSource, DdlMetadataSource, StaticParameterMetadata


@pytest.fixture
def schema_path():
    """Path to DDL of the test tables."""
    return Path(__file__).parent / "data" / "schema.sql"


@pytest.fixture
def shop_schema():
    """Columns of the test tables, as a metadata source reports them."""
    return {
        "customers": [
            CatalogColumn("customer_id", "INTEGER", False),
            CatalogColumn("customer_name", "VARCHAR(100)", False),
            CatalogColumn("email", "VARCHAR(255)"),
            CatalogColumn("status", "VARCHAR(20)"),
            CatalogColumn("credit_limit", "DECIMAL(10, 2)"),
            CatalogColumn("date_of_birth", "DATE"),
            CatalogColumn("created_at", "TIMESTAMP"),
        ],
        "orders": [
            CatalogColumn("order_id", "INTEGER", False),
            CatalogColumn("customer_id", "INTEGER", False),
            CatalogColumn("order_date", "DATE"),
            CatalogColumn("total", "DECIMAL(12, 2)"),
            CatalogColumn("status", "VARCHAR(20)"),
        ],
    }


@pytest.fixture
def test_config():
    """Configuration object for tests."""
    config = Configuration()
    config.base_package = "com.example.shop"
    return config


@pytest.fixture
def shop_engine(tmp_path, schema_path):
    """SQLite database with the test tables."""
    engine = create_engine(
        f"sqlite+pysqlite:///{(tmp_path / 'shop.db').as_posix()}", connect_args={"check_same_thread": False}
    )
    with engine.begin() as connection:
        for statement in schema_path.read_text(encoding="UTF-8").split(";"):
            if statement.strip():
                connection.exec_driver_sql(statement)
    yield engine
    engine.dispose()


@pytest.fixture
def catalog_source(shop_engine):
    """Metadata source reading the SQLite catalog."""
    return CatalogMetadataSource(shop_engine)


@pytest.fixture
def ddl_source(schema_path):
    """Metadata source reading the DDL file."""
    return DdlMetadataSource.from_file(schema_path)


class FakeMetadataSource:
    """Metadata source with fixed parameter types, records what was asked."""

    def __init__(self, types=(), tables=None, error=None):
        self.types = list(types)
        self.tables = {name.lower(): columns for name, columns in (tables or {}).items()}
        self.error = error
        self.prepared = []
        self.requested = []

    def prepare(self, sql):
        self.prepared.append(sql)
        if self.error is not None:
            raise self.error
        return StaticParameterMetadata(self.types)

    def table_columns(self, table):
        self.requested.append(table)
        if self.error is not None:
            raise self.error
        return list(self.tables.get(table.lower(), []))


@pytest.fixture
def fake_source(shop_schema):
    """Factory for creating fake metadata sources.

    Usage:
        fake_source(types=["INTEGER", None], error=MetadataSourceError("down"))
    """

    def _create(types=(), tables=None, error=None):
        return FakeMetadataSource(types, shop_schema if tables is None else tables, error)

    return _create
