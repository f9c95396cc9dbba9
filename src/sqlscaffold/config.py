"""Stuff related to application configuration."""

from pydantic import BaseModel, ConfigDict, field_validator
from typing import TypeAlias, List, Literal, Optional
from sqlscaffold.classify import check_dialect

#: General JSON type
JSON: TypeAlias = dict[str, "JSON"] | list["JSON"] | str | int | float | bool | None

Artifact = Literal["dto", "where_dto", "dao", "controller", "config"]


class ConfigurationTemplates(BaseModel):
    """Template of each generated artifact.

    Templates are looked up in ``templates`` directory of the package.
    """

    model_config = ConfigDict(extra="forbid")

    dto: str = "java/dto.java.jinja2"
    where_dto: str = "java/dto.java.jinja2"
    dao: str = "java/dao.java.jinja2"
    controller: str = "java/controller.java.jinja2"
    config: str = "java/config.java.jinja2"


class Configuration(BaseModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)
    #: Database connection string, see https://docs.sqlalchemy.org/en/20/core/connections.html
    database_url: Optional[str] = None
    #: Database schema tables are read from, default schema of connection if None.
    database_schema: Optional[str] = None
    #: File with CREATE TABLE statements, used instead of database when set.
    ddl_file: Optional[str] = None
    #: Dialect of SQL and DDL, as named by sqlglot (tsql, postgres, ...). None is generic SQL.
    dialect: Optional[str] = None
    #: File with the SQL statement.
    sql_file: Optional[str] = None
    #: Business domain name, used for packages and class names, like Customer.
    business_name: Optional[str] = None
    #: Root package of generated code.
    base_package: str = "com.jfeatures.msg"
    #: Prefix of endpoint paths.
    api_path: str = "/api"
    #: Longest SQL statement accepted.
    max_sql_length: int = 10_000
    #: DTOs with more fields are plain classes instead of Lombok value classes.
    max_lombok_fields: int = 255
    #: Artifacts to generate, in order.
    artifacts: List[Artifact] = ["dto", "where_dto", "dao", "controller", "config"]
    #: Templates of artifacts.
    templates: ConfigurationTemplates = ConfigurationTemplates()

    @field_validator("dialect")
    @classmethod
    def known_dialect(cls, value: Optional[str]) -> Optional[str]:
        return check_dialect(value)
