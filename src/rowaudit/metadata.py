"""
Optional column metadata catalog.

A catalog table (meta_dwh_table_field by default) describes each column of
a warehouse table: its order (design_sequence), the source system field it
was loaded from, the source type and whether it is part of the primary or
unique key. When configured, the catalog supplies column provenance for the
report, an initial comparison type per column and, when no key positions
are given on the command line, the key columns.
"""

import logging
from dataclasses import dataclass
from typing import Any

from utils.database_types import DatabaseType

from .columns import ColumnDescriptor
from .compare.classifier import type_from_metadata
from .target.quoting import quote_identifier

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_TABLE = "meta_dwh_table_field"

# Design statuses whose rows are not part of the loaded table
_EXCLUDED_STATUS_MARKERS = ("deferred", "remove", "don't use", "dont use", "don`t use")


@dataclass(frozen=True)
class MetadataField:
    """One catalog row describing a target column."""

    field_name: str
    source_field_type: str | None = None
    source_field_name: str | None = None
    source_table_name: str | None = None
    is_key: bool = False
    source_system: str | None = None
    design_status: str | None = None

    @property
    def excluded(self) -> bool:
        status = (self.design_status or "").strip().lower()
        return any(marker in status for marker in _EXCLUDED_STATUS_MARKERS)


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class MetadataCatalog:
    """
    Reads column metadata for a target table.

    Args:
        connection: DB-API connection holding the catalog table
        catalog_table: Catalog table name
        source_system: Only use rows for this source system (key rows are
            always used)
        db_type: Database type of the connection (detected if None)
    """

    def __init__(
        self,
        connection: Any,
        catalog_table: str = DEFAULT_CATALOG_TABLE,
        source_system: str | None = None,
        db_type: DatabaseType | None = None,
    ):
        self.connection = connection
        self.catalog_table = catalog_table
        self.source_system = source_system
        self.db_type = db_type or DatabaseType.from_connection(connection)

    def _query(self) -> str:
        quoting_connection = self.connection if self.db_type == DatabaseType.POSTGRESQL else None
        table = quote_identifier(self.catalog_table, self.db_type, quoting_connection)
        return (
            "SELECT field_name, source_field_type, source_field_name, source_table_name, "
            "primary_unique_key_ind, source_system_name, design_status "
            f"FROM {table} "
            f"WHERE lower(table_name) = lower({self.db_type.placeholder}) "
            "ORDER BY design_sequence"
        )

    def fields(self, table: str) -> list[MetadataField]:
        """
        Catalog rows for a table, in design order.

        A missing or unreadable catalog is not fatal: a warning is logged and
        an empty list returned, so the audit runs without provenance.

        Args:
            table: Target table name

        Returns:
            Usable catalog rows
        """
        cursor = self.connection.cursor()
        try:
            cursor.execute(self._query(), (table,))
            rows = cursor.fetchall()
        except Exception as e:
            logger.warning(f"Metadata catalog {self.catalog_table} could not be read for {table}: {e}")
            try:
                self.connection.rollback()
            except Exception as rollback_error:
                logger.debug(f"Rollback after catalog query failed: {rollback_error}")
            return []
        finally:
            cursor.close()

        fields = []
        for row in rows:
            field = MetadataField(
                field_name=_text(row[0]) or "",
                source_field_type=_text(row[1]),
                source_field_name=_text(row[2]),
                source_table_name=_text(row[3]),
                is_key=(_text(row[4]) or "").upper() == "Y",
                source_system=_text(row[5]),
                design_status=_text(row[6]),
            )
            if field.excluded or not field.field_name:
                continue
            if self.source_system and not field.is_key and not self._same_system(field):
                continue
            fields.append(field)

        logger.info(f"Metadata catalog describes {len(fields)} columns of {table}")
        return fields

    def _same_system(self, field: MetadataField) -> bool:
        return self.source_system.lower() in (field.source_system or "").lower()


def catalog_names(fields: list[MetadataField]) -> list[str]:
    return [field.field_name for field in fields]


def catalog_key_ordinals(fields: list[MetadataField], names: list[str]) -> list[int]:
    """
    Key ordinals from the catalog's key indicator.

    Args:
        fields: Catalog rows
        names: Column layout names

    Returns:
        0-based ordinals of layout columns flagged as keys, in layout order
    """
    key_names = {field.field_name.lower() for field in fields if field.is_key}
    return [index for index, name in enumerate(names) if name.strip().lower() in key_names]


def apply_metadata(columns: list[ColumnDescriptor], fields: list[MetadataField]) -> list[str]:
    """
    Copy provenance and initial types from the catalog onto the columns.

    Args:
        columns: Column layout
        fields: Catalog rows

    Returns:
        Catalog column names that are not part of the layout
    """
    by_name = {field.field_name.lower(): field for field in fields}
    matched = set()

    for column in columns:
        field = by_name.get(column.name.strip().lower())
        if field is None:
            continue
        matched.add(field.field_name.lower())
        column.source_type = field.source_field_type
        column.source_column = field.source_field_name
        column.source_table = field.source_table_name
        if column.audited and field.source_field_type:
            column.prime(type_from_metadata(field.source_field_type))

    return [field.field_name for field in fields if field.field_name.lower() not in matched]
