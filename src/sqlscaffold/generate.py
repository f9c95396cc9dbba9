from contextlib import nullcontext
from dataclasses import dataclass
from typing import List, Optional
import logging
from sqlscaffold.builder import build
from sqlscaffold.classify import check_dialect, classify, parse
from sqlscaffold.config import Configuration
from sqlscaffold.emitters import ArtifactEmitter, JavaArtifact
from sqlscaffold.errors import InvalidArgument
from sqlscaffold.model import CodeModel, SelectMetadata, StatementKind, StatementMetadata
from sqlscaffold.naming import validate_business_name
from sqlscaffold.parameters import MAX_SQL_LENGTH, extract
from sqlscaffold.render import create_env, render
from sqlscaffold.resolve import (
    referenced_tables,
    resolve_delete,
    resolve_insert,
    resolve_projection,
    resolve_update,
    target_table,
)
from sqlscaffold.source import CatalogMetadataSource, DdlMetadataSource, MetadataSource

log = logging.getLogger(__name__)

_DML_RESOLVERS = {
    StatementKind.INSERT: resolve_insert,
    StatementKind.UPDATE: resolve_update,
    StatementKind.DELETE: resolve_delete,
}


@dataclass(frozen=True)
class GeneratedArtifact:
    artifact: JavaArtifact
    source: str


def create_source(config: Configuration) -> MetadataSource:
    """Metadata source of configuration, DDL file takes precedence over database."""
    if config.ddl_file is not None:
        log.info("Reading table schemas from %s", config.ddl_file)
        return DdlMetadataSource.from_file(config.ddl_file, dialect=config.dialect)
    if config.database_url is not None:
        return CatalogMetadataSource.from_url(config.database_url, schema=config.database_schema, dialect=config.dialect)
    raise ValueError("Either database_url or ddl_file has to be configured")


def _snapshot(source: MetadataSource):
    snapshot = getattr(source, "snapshot", None)
    return snapshot() if snapshot is not None else nullcontext(source)


def analyze(
    sql: str, source: MetadataSource, dialect: Optional[str] = None, max_length: int = MAX_SQL_LENGTH
) -> StatementMetadata:
    """Resolve statement metadata.

    Every table is read from the metadata source once, through a snapshot
    which belongs to this call only.

    :param sql: SQL with ``?`` placeholders
    :param source: metadata source
    :param dialect: sqlglot dialect name
    :param max_length: longest accepted SQL
    :raises InvalidArgument: SQL is empty, too long or not SELECT, INSERT, UPDATE or DELETE, or dialect is unknown
    :return: statement metadata
    """
    if sql is None or not sql.strip():
        raise InvalidArgument("SQL statement cannot be null or empty")
    if len(sql) > max_length:
        raise InvalidArgument(f"SQL statement is longer than {max_length} characters")
    check_dialect(dialect)
    kind = classify(sql, dialect)
    log.info("Statement is %s", kind.value)
    if kind == StatementKind.UNKNOWN:
        raise InvalidArgument("SQL statement must be SELECT, INSERT, UPDATE or DELETE")
    with _snapshot(source) as view:
        if kind == StatementKind.SELECT:
            schema = {table: view.table_columns(table) for table in referenced_tables(sql, dialect)}
            parameters = extract(sql, view, max_length)
            columns = resolve_projection(sql, schema, dialect)
            return SelectMetadata(tuple(columns), tuple(parameters), sql)
        statement = parse(sql, dialect)
        table = target_table(statement) if statement is not None else None
        if table is None:
            raise InvalidArgument(f"{kind.value} statement must specify a table")
        return _DML_RESOLVERS[kind](sql, view.table_columns(table), dialect)


def code_model(config: Configuration, sql: str, source: MetadataSource, business_name: str) -> CodeModel:
    validate_business_name(business_name)
    metadata = analyze(sql, source, config.dialect, config.max_sql_length)
    return build(metadata, business_name)


def generate(config: Configuration, sql: str, source: MetadataSource, business_name: str) -> List[GeneratedArtifact]:
    """Generate Java sources of a statement.

    :param config: configuration
    :param sql: SQL with ``?`` placeholders
    :param source: metadata source
    :param business_name: business domain name, validated before anything else
    :return: rendered artifacts, in configured order
    """
    model = code_model(config, sql, source, business_name)
    artifacts = ArtifactEmitter(model, config).emit()
    env = create_env(config)
    return [GeneratedArtifact(artifact, render(config, artifact, env)) for artifact in artifacts]
