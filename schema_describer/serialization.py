"""JSON-compatible rendering of the schema model."""

from typing import Any, Dict, Optional

from .models import Column, ColumnType, DefaultValue, ForeignKey, Index, Schema, SchemaMetadata, Table


def _scalar(value: Any) -> Any:
    """Keep JSON-native values; render the rest (Decimal, dates, UUID) with str()."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_scalar(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _scalar(item) for key, item in value.items()}
    return str(value)


def column_type_to_dict(column_type: ColumnType) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "family": column_type.family.value,
        "native_type": column_type.native_type,
    }
    if column_type.length is not None:
        result["length"] = column_type.length
    if column_type.precision is not None:
        result["precision"] = column_type.precision
    if column_type.scale is not None:
        result["scale"] = column_type.scale
    if column_type.enum_name is not None:
        result["enum"] = column_type.enum_name
    if column_type.is_array:
        result["is_array"] = True
    return result


def default_to_dict(default: Optional[DefaultValue]) -> Optional[Dict[str, Any]]:
    if default is None:
        return None
    result: Dict[str, Any] = {"kind": default.kind.value}
    if default.is_literal:
        result["value"] = _scalar(default.value)
    elif default.is_sequence_next:
        result["sequence"] = default.sequence_name
    elif default.is_expression:
        result["expression"] = default.expression_text
    return result


def column_to_dict(column: Column) -> Dict[str, Any]:
    return {
        "name": column.name,
        "type": column_type_to_dict(column.column_type),
        "nullable": column.is_nullable,
        "default": default_to_dict(column.default),
        "identity": column.is_identity,
    }


def index_to_dict(index: Index) -> Dict[str, Any]:
    return {
        "name": index.name,
        "columns": list(index.columns),
        "unique": index.is_unique,
        "primary_key": index.is_primary_key,
    }


def foreign_key_to_dict(fk: ForeignKey) -> Dict[str, Any]:
    return {
        "name": fk.constraint_name,
        "columns": list(fk.columns),
        "referenced_table": fk.referenced_table,
        "referenced_columns": list(fk.referenced_columns),
        "on_delete": fk.on_delete.value,
        "on_update": fk.on_update.value,
    }


def table_to_dict(table: Table) -> Dict[str, Any]:
    return {
        "name": table.name,
        "columns": [column_to_dict(column) for column in table.columns],
        "indexes": [index_to_dict(index) for index in table.indexes],
        "foreign_keys": [foreign_key_to_dict(fk) for fk in table.foreign_keys],
    }


def schema_to_dict(schema: Schema) -> Dict[str, Any]:
    """Render a Schema as plain dicts and lists, ready for ``json.dumps``."""
    return {
        "name": schema.name,
        "engine": schema.engine,
        "tables": [table_to_dict(table) for table in schema.tables],
        "enums": [{"name": enum.name, "variants": list(enum.variants)} for enum in schema.enums],
        "sequences": [
            {
                "name": sequence.name,
                "start_value": sequence.start_value,
                "current_value": sequence.current_value,
                "increment": sequence.increment,
            }
            for sequence in schema.sequences
        ],
        "anomalies": [
            {
                "kind": anomaly.kind,
                "table": anomaly.table,
                "column": anomaly.column,
                "message": anomaly.message,
            }
            for anomaly in schema.anomalies
        ],
    }


def metadata_to_dict(metadata: SchemaMetadata) -> Dict[str, Any]:
    return {
        "schema": metadata.schema_name,
        "engine": metadata.engine,
        "table_count": metadata.table_count,
        "size_in_bytes": metadata.size_in_bytes,
        "version": metadata.version,
        "is_mariadb": metadata.is_mariadb,
    }
