"""
Unit tests for the metadata catalog
"""

import sqlite3

import pytest

from rowaudit.columns import build_columns
from rowaudit.compare.classifier import ComparisonType
from rowaudit.metadata import (
    MetadataCatalog,
    MetadataField,
    apply_metadata,
    catalog_key_ordinals,
    catalog_names,
)

CATALOG_ROWS = [
    ("CUSTOMERS", "id", "NUMBER(10)", "cust_no", "cust_mast", "Y", "CRM", "Loaded", 1),
    ("customers", "name", "varchar(40)", "cust_nm", "cust_mast", "N", "CRM", "Loaded", 2),
    ("customers", "created", "DATE", "crt_dt", "cust_mast", "N", "CRM", "Loaded", 3),
    ("customers", "legacy", "char(1)", "lg", "cust_mast", "N", "CRM", "Removed 2019", 4),
    ("customers", "fax", "varchar(20)", "fax", "cust_mast", "N", "CRM", "Deferred", 5),
    ("customers", "balance", "decimal(12,2)", "bal", "gl_bal", "N", "GL", "Loaded", 6),
    ("orders", "order_id", "int", "ord", "ord", "Y", "CRM", "Loaded", 1),
]


@pytest.fixture
def catalog_connection():
    connection = sqlite3.connect(":memory:")
    connection.execute(
        "CREATE TABLE meta_dwh_table_field ("
        " table_name TEXT, field_name TEXT, source_field_type TEXT, source_field_name TEXT,"
        " source_table_name TEXT, primary_unique_key_ind TEXT, source_system_name TEXT,"
        " design_status TEXT, design_sequence INTEGER)"
    )
    connection.executemany(
        "INSERT INTO meta_dwh_table_field VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)", CATALOG_ROWS
    )
    yield connection
    connection.close()


class TestMetadataCatalog:
    """Test reading the catalog"""

    def test_fields_in_design_order(self, catalog_connection):
        fields = MetadataCatalog(catalog_connection).fields("customers")

        assert catalog_names(fields) == ["id", "name", "created", "balance"]
        assert fields[0].is_key is True
        assert fields[0].source_field_name == "cust_no"

    def test_source_system_filter_keeps_keys(self, catalog_connection):
        fields = MetadataCatalog(catalog_connection, source_system="gl").fields("customers")
        assert catalog_names(fields) == ["id", "balance"]

    def test_missing_catalog_is_not_fatal(self, caplog):
        connection = sqlite3.connect(":memory:")

        fields = MetadataCatalog(connection).fields("customers")

        assert fields == []
        assert "could not be read" in caplog.text

    def test_excluded_statuses(self):
        assert MetadataField("a", design_status="Don't Use").excluded
        assert MetadataField("a", design_status="DEFERRED").excluded
        assert not MetadataField("a", design_status="Loaded").excluded


class TestApplyMetadata:
    """Test applying catalog rows to a layout"""

    @pytest.fixture
    def fields(self):
        return [
            MetadataField("id", "number(10)", "cust_no", "cust_mast", is_key=True),
            MetadataField("Created", "date", "crt_dt", "cust_mast"),
            MetadataField("balance", "decimal(12,2)", "bal", "gl_bal"),
            MetadataField("load_ts", "timestamp", "ts", "etl"),
        ]

    def test_provenance_and_initial_types(self, fields):
        columns = build_columns(["id", "created", "balance", "name"], [0])

        unaudited = apply_metadata(columns, fields)

        assert unaudited == ["load_ts"]
        assert columns[1].source_column == "crt_dt"
        assert columns[1].comparison_type == ComparisonType.DATE
        assert columns[2].comparison_type == ComparisonType.NUMERIC
        assert columns[3].source_type is None
        assert columns[0].comparison_type == ComparisonType.CHARACTER

    def test_key_ordinals_from_catalog(self, fields):
        assert catalog_key_ordinals(fields, ["name", "ID", "balance"]) == [1]
        assert catalog_key_ordinals(fields, ["name"]) == []
