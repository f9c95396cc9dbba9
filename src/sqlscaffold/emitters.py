"""
Artifact emitters.

Each emitter applies Spring Boot conventions to the code model and returns a
:class:`JavaArtifact`, a renderer agnostic description of one Java source
file. Turning it into text is left to :mod:`sqlscaffold.render`.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from sqlscaffold.config import Configuration
from sqlscaffold.model import CodeField, CodeModel, ParameterStyle, StatementKind
from sqlscaffold.naming import accessor_name, class_name, member_name, package_name, to_package_segment
from sqlscaffold.type_mapping import java_import_for, result_getter_for

log = logging.getLogger(__name__)

_PREFIX = {
    StatementKind.SELECT: "",
    StatementKind.INSERT: "Insert",
    StatementKind.UPDATE: "Update",
    StatementKind.DELETE: "Delete",
}
_VERB = {
    StatementKind.SELECT: "get",
    StatementKind.INSERT: "insert",
    StatementKind.UPDATE: "update",
    StatementKind.DELETE: "delete",
}
_MAPPING = {
    StatementKind.SELECT: "Get",
    StatementKind.INSERT: "Post",
    StatementKind.UPDATE: "Put",
    StatementKind.DELETE: "Delete",
}

#: Path variable of the single WHERE column.
ID_PARAMETER = "id"

NOT_NULL = "jakarta.validation.constraints.NotNull"
LOMBOK = ("lombok.Builder", "lombok.Value", "lombok.extern.jackson.Jacksonized")


@dataclass(frozen=True)
class JavaField:
    name: str
    type: str
    #: Result set column label.
    column: str
    nullable: bool
    getter: str
    setter: str
    #: ``ResultSet`` method reading the column.
    result_getter: str
    #: 1-based column read by the getter instead of the label.
    position: Optional[int] = None


@dataclass(frozen=True)
class JavaParameter:
    name: str
    type: str
    #: Annotations of controller method parameter.
    annotation: str = ""
    #: Bind name in SQL.
    bind_name: str = ""
    #: Java expression giving the bound value in DAO.
    value: str = ""


@dataclass(frozen=True)
class JavaArtifact:
    """One Java source file to be rendered."""

    #: Kind of artifact, ``dto``, ``where_dto``, ``dao``, ``controller`` or ``config``.
    artifact: str
    package: str
    class_name: str
    template: str
    imports: Tuple[str, ...] = ()
    context: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def qualified_name(self) -> str:
        return f"{self.package}.{self.class_name}"

    @property
    def file_name(self) -> str:
        return f"{self.class_name}.java"

    @property
    def path(self) -> str:
        """Path of source file relative to source root."""
        return "/".join(self.package.split(".") + [self.file_name])


def _imports(*groups: Iterable[Optional[str]]) -> Tuple[str, ...]:
    return tuple(sorted({name for group in groups for name in group if name}))


def _java_field(code_field: CodeField) -> JavaField:
    return JavaField(
        name=code_field.identifier,
        type=code_field.target_type,
        column=code_field.label or code_field.source_column,
        nullable=code_field.nullable,
        getter=accessor_name("get", code_field.identifier),
        setter=accessor_name("set", code_field.identifier),
        result_getter=result_getter_for(code_field.target_type),
        position=code_field.position,
    )


def sql_text_block(sql: str) -> List[str]:
    """Lines of SQL escaped for a Java text block."""
    return [line.replace("\\", "\\\\").replace('"""', '\\"""') for line in sql.strip().splitlines()]


class ArtifactEmitter:
    """Emits Java artifacts of one code model."""

    def __init__(self, model: CodeModel, config: Optional[Configuration] = None):
        self.model = model
        self.config = config if config is not None else Configuration()
        self.kind = model.statement_kind
        if self.kind not in _PREFIX:
            raise ValueError(f"Cannot emit artifacts for {self.kind.value} statement")
        self.business_name = model.business_domain_name
        self.prefix = _PREFIX[self.kind]

    def package(self, layer: str) -> str:
        return package_name(self.config.base_package, self.business_name, layer)

    def class_name(self, suffix: str) -> str:
        return class_name(self.business_name, self.prefix + suffix)

    def qualified(self, layer: str, suffix: str) -> str:
        return f"{self.package(layer)}.{self.class_name(suffix)}"

    @property
    def dto_variable(self) -> str:
        return f"{self.prefix[:1].lower()}{self.prefix[1:]}Dto" if self.prefix else "dto"

    @property
    def dao_method(self) -> str:
        return _VERB[self.kind] + class_name(self.business_name, "")

    def _dto(self, artifact: str, suffix: str, fields: Sequence[CodeField], description: str) -> JavaArtifact:
        java_fields = [_java_field(code_field) for code_field in fields]
        lombok = len(java_fields) <= self.config.max_lombok_fields
        if not lombok:
            log.info("%s has %d fields, generating plain class", self.class_name(suffix), len(java_fields))
        validated = self.kind != StatementKind.SELECT and any(not java_field.nullable for java_field in java_fields)
        return JavaArtifact(
            artifact=artifact,
            package=self.package("dto"),
            class_name=self.class_name(suffix),
            template=getattr(self.config.templates, artifact),
            imports=_imports(
                (java_import_for(java_field.type) for java_field in java_fields),
                LOMBOK if lombok else (),
                [NOT_NULL] if validated else (),
            ),
            context={
                "fields": java_fields,
                "lombok": lombok,
                "validated": validated,
                "description": description,
            },
        )

    def dto(self) -> JavaArtifact:
        descriptions = {
            StatementKind.SELECT: f"Row of {self.business_name} query",
            StatementKind.INSERT: f"New {self.business_name} record",
            StatementKind.UPDATE: f"Updated values of {self.business_name} record",
            StatementKind.DELETE: f"Key of {self.business_name} record to delete",
        }
        return self._dto("dto", "DTO", self.model.fields, descriptions[self.kind])

    def where_dto(self) -> Optional[JavaArtifact]:
        """DTO of WHERE columns, only for UPDATE filtered by more than one column."""
        if self.kind != StatementKind.UPDATE or len(self.model.where_fields) < 2:
            return None
        return self._dto(
            "where_dto", "WhereDTO", self.model.where_fields, f"Filter of {self.business_name} records to update"
        )

    def _dao_parameters(self) -> List[JavaParameter]:
        fields = {code_field.identifier: _java_field(code_field) for code_field in self.model.fields}
        parameters = []
        for parameter in self.model.parameters:
            if parameter.style == ParameterStyle.BODY:
                value = f"{self.dto_variable}.{fields[parameter.identifier].getter}()"
            else:
                value = parameter.identifier
            parameters.append(
                JavaParameter(parameter.identifier, parameter.target_type, bind_name=parameter.bind_name, value=value)
            )
        return parameters

    def _method_parameters(self, controller: bool) -> List[JavaParameter]:
        """Parameters of DAO method, or controller method, in the same order."""
        result = []
        if self.model.parameters_with_style(ParameterStyle.BODY):
            annotation = "@Valid @RequestBody " if controller else ""
            result.append(JavaParameter(self.dto_variable, self.class_name("DTO"), annotation))
        for parameter in self.model.parameters:
            if parameter.style == ParameterStyle.BODY:
                continue
            annotation = ""
            if controller and parameter.style == ParameterStyle.PATH:
                annotation = f'@PathVariable("{ID_PARAMETER}") '
            elif controller:
                annotation = f'@RequestParam("{parameter.identifier}") '
            result.append(JavaParameter(parameter.identifier, parameter.target_type, annotation))
        return result

    def dao(self) -> JavaArtifact:
        fields = [_java_field(code_field) for code_field in self.model.fields]
        parameters = self._dao_parameters()
        method_parameters = self._method_parameters(controller=False)
        dto_class = self.qualified("dto", "DTO")
        framework = [
            "java.util.HashMap",
            "java.util.Map",
            "org.springframework.jdbc.core.namedparam.NamedParameterJdbcTemplate",
            "org.springframework.stereotype.Component",
        ]
        if self.kind == StatementKind.SELECT:
            framework += ["java.util.ArrayList", "java.util.List", "java.sql.ResultSet"]
        needs_dto = self.kind == StatementKind.SELECT or self.model.parameters_with_style(ParameterStyle.BODY)
        return JavaArtifact(
            artifact="dao",
            package=self.package("dao"),
            class_name=self.class_name("DAO"),
            template=self.config.templates.dao,
            imports=_imports(
                framework,
                [dto_class] if needs_dto else (),
                (java_import_for(parameter.type) for parameter in method_parameters),
            ),
            context={
                "kind": self.kind.value,
                "sql_constant": f"{self.kind.value}_SQL",
                "sql_lines": sql_text_block(self.model.rewritten_sql),
                "dto_class": self.class_name("DTO"),
                "method_name": self.dao_method,
                "method_parameters": method_parameters,
                "parameters": parameters,
                "fields": fields,
                "lombok": len(fields) <= self.config.max_lombok_fields,
            },
        )

    def controller(self) -> JavaArtifact:
        method_parameters = self._method_parameters(controller=True)
        has_path = bool(self.model.parameters_with_style(ParameterStyle.PATH))
        path = "/" + to_package_segment(self.business_name) + (f"/{{{ID_PARAMETER}}}" if has_path else "")
        mapping = _MAPPING[self.kind]
        framework = [
            "org.springframework.web.bind.annotation.RequestMapping",
            "org.springframework.web.bind.annotation.RestController",
            f"org.springframework.web.bind.annotation.{mapping}Mapping",
            "io.swagger.v3.oas.annotations.Operation",
            "io.swagger.v3.oas.annotations.tags.Tag",
        ]
        if self.kind == StatementKind.SELECT:
            framework += ["java.util.List", self.qualified("dto", "DTO")]
        else:
            framework += ["org.springframework.http.ResponseEntity"]
        if self.model.parameters_with_style(ParameterStyle.BODY):
            framework += ["jakarta.validation.Valid", "org.springframework.web.bind.annotation.RequestBody"]
            framework += [self.qualified("dto", "DTO")]
        if has_path:
            framework += ["org.springframework.web.bind.annotation.PathVariable"]
        if self.model.parameters_with_style(ParameterStyle.QUERY):
            framework += ["org.springframework.web.bind.annotation.RequestParam"]
        if self.kind == StatementKind.INSERT:
            framework += ["org.springframework.http.HttpStatus"]
        return JavaArtifact(
            artifact="controller",
            package=self.package("controller"),
            class_name=self.class_name("Controller"),
            template=self.config.templates.controller,
            imports=_imports(
                framework,
                [self.qualified("dao", "DAO")],
                (java_import_for(parameter.type) for parameter in method_parameters),
            ),
            context={
                "kind": self.kind.value,
                "api_path": self.config.api_path,
                "mapping": mapping,
                "path": path,
                "method_name": f"{_VERB[self.kind]}DataFor{class_name(self.business_name, '')}",
                "method_parameters": method_parameters,
                "dto_class": self.class_name("DTO"),
                "dao_class": self.class_name("DAO"),
                "dao_field": member_name(self.business_name, self.prefix + "DAO"),
                "dao_method": self.dao_method,
                "dao_arguments": ", ".join(parameter.name for parameter in method_parameters),
                "business_name": self.business_name,
            },
        )

    def database_config(self) -> JavaArtifact:
        return JavaArtifact(
            artifact="config",
            package=self.package("config"),
            class_name="DatabaseConfig",
            template=self.config.templates.config,
            imports=(
                "javax.sql.DataSource",
                "org.springframework.boot.autoconfigure.jdbc.DataSourceProperties",
                "org.springframework.boot.context.properties.ConfigurationProperties",
                "org.springframework.context.annotation.Bean",
                "org.springframework.context.annotation.Configuration",
                "org.springframework.jdbc.core.namedparam.NamedParameterJdbcTemplate",
            ),
            context={"business_name": self.business_name},
        )

    def emit(self, artifacts: Optional[Sequence[str]] = None) -> List[JavaArtifact]:
        """Emit artifacts, all configured ones by default."""
        emitters: Dict[str, Any] = {
            "dto": self.dto,
            "where_dto": self.where_dto,
            "dao": self.dao,
            "controller": self.controller,
            "config": self.database_config,
        }
        result = []
        for name in artifacts if artifacts is not None else self.config.artifacts:
            artifact = emitters[name]()
            if artifact is not None:
                result.append(artifact)
        return result
