"""Tests for Java artifact emitters and their rendering."""

import pytest
from sqlscaffold.builder import build
from sqlscaffold.emitters import ArtifactEmitter, sql_text_block
from sqlscaffold.model import (
    BoundParameter,
    CodeModel,
    ColumnDescriptor,
    DeleteMetadata,
    InsertMetadata,
    SelectMetadata,
    StatementKind,
    UpdateMetadata,
)
from sqlscaffold.render import create_env, render, render_all


def column(name, type_name="VARCHAR(100)", nullable=True, alias=None):
    return ColumnDescriptor(name, type_name, nullable, alias, "customers")


@pytest.fixture
def select_model():
    metadata = SelectMetadata(
        (
            column("customer_id", "INTEGER", False),
            column("customer_name", alias="name"),
            column("credit_limit", "DECIMAL(10, 2)"),
        ),
        (BoundParameter(1, "status", "String", "VARCHAR"),),
        "SELECT customer_id, customer_name AS name, credit_limit FROM customers WHERE status = ?",
    )
    return build(metadata, "Customer")


@pytest.fixture
def insert_model():
    metadata = InsertMetadata(
        "customers",
        (column("customer_name", nullable=False), column("email")),
        "INSERT INTO customers (customer_name, email) VALUES (?, ?)",
    )
    return build(metadata, "Customer")


@pytest.fixture
def update_model():
    def _create(where):
        sql = "UPDATE customers SET email = ? WHERE " + " AND ".join(f"{item.source_name} = ?" for item in where)
        return build(UpdateMetadata("customers", (column("email"),), where, sql), "Customer")

    return _create


@pytest.fixture
def delete_model():
    metadata = DeleteMetadata(
        "customers", (column("customer_id", "INTEGER", False),), "DELETE FROM customers WHERE customer_id = ?"
    )
    return build(metadata, "Customer")


class TestNames:
    def test_select(self, select_model, test_config):
        artifacts = ArtifactEmitter(select_model, test_config).emit()
        assert [artifact.qualified_name for artifact in artifacts] == [
            "com.example.shop.customer.dto.CustomerDTO",
            "com.example.shop.customer.dao.CustomerDAO",
            "com.example.shop.customer.controller.CustomerController",
            "com.example.shop.customer.config.DatabaseConfig",
        ]
        assert artifacts[0].path == "com/example/shop/customer/dto/CustomerDTO.java"

    @pytest.mark.parametrize(
        "fixture,prefix",
        [("insert_model", "CustomerInsert"), ("delete_model", "CustomerDelete")],
    )
    def test_dml_prefix(self, request, test_config, fixture, prefix):
        emitter = ArtifactEmitter(request.getfixturevalue(fixture), test_config)
        assert emitter.dto().class_name == f"{prefix}DTO"
        assert emitter.dao().class_name == f"{prefix}DAO"
        assert emitter.controller().class_name == f"{prefix}Controller"

    def test_default_configuration(self, select_model):
        assert ArtifactEmitter(select_model).dto().package == "com.jfeatures.msg.customer.dto"

    def test_selected_artifacts(self, select_model, test_config):
        artifacts = ArtifactEmitter(select_model, test_config).emit(["dao"])
        assert [artifact.artifact for artifact in artifacts] == ["dao"]

    def test_unknown_statement(self, test_config):
        model = CodeModel("Customer", StatementKind.UNKNOWN, (), (), "SELECT 1")
        with pytest.raises(ValueError, match="Cannot emit artifacts for UNKNOWN statement"):
            ArtifactEmitter(model, test_config)


class TestDto:
    def test_select_dto(self, select_model, test_config):
        dto = ArtifactEmitter(select_model, test_config).dto()
        assert "java.math.BigDecimal" in dto.imports
        assert "lombok.Value" in dto.imports
        assert dto.context["validated"] is False
        source = render(test_config, dto)
        assert "package com.example.shop.customer.dto;" in source
        assert "@Builder(builderClassName = \"Builder\")" in source
        assert "    Integer customerId;" in source
        assert "    String name;" in source
        assert "    BigDecimal creditLimit;" in source
        assert "@NotNull" not in source

    def test_insert_dto_is_validated(self, insert_model, test_config):
        dto = ArtifactEmitter(insert_model, test_config).dto()
        assert "jakarta.validation.constraints.NotNull" in dto.imports
        source = render(test_config, dto)
        assert "    @NotNull\n    String customerName;" in source
        assert source.count("@NotNull") == 1

    def test_plain_class_above_lombok_limit(self, select_model, test_config):
        test_config.max_lombok_fields = 2
        emitter = ArtifactEmitter(select_model, test_config)
        dto = emitter.dto()
        assert not any(name.startswith("lombok") for name in dto.imports)
        source = render(test_config, dto)
        assert "    private Integer customerId;" in source
        assert "    public Integer getCustomerId() {" in source
        assert "    public void setCreditLimit(BigDecimal creditLimit) {" in source
        dao = render(test_config, emitter.dao())
        assert 'row.setCustomerId(rs.getInt("customer_id"));' in dao

    def test_where_dto(self, update_model, test_config):
        """Test WHERE DTO is emitted only for UPDATE with two or more WHERE columns."""
        single = ArtifactEmitter(update_model((column("customer_id", "INTEGER", False),)), test_config)
        assert single.where_dto() is None
        assert [artifact.artifact for artifact in single.emit()] == ["dto", "dao", "controller", "config"]
        double = ArtifactEmitter(update_model((column("status"), column("customer_name"))), test_config)
        where_dto = double.where_dto()
        assert where_dto.class_name == "CustomerUpdateWhereDTO"
        assert [field.name for field in where_dto.context["fields"]] == ["status", "customerName"]
        assert [artifact.artifact for artifact in double.emit()] == ["dto", "where_dto", "dao", "controller", "config"]


class TestDao:
    def test_select_dao(self, select_model, test_config):
        dao = ArtifactEmitter(select_model, test_config).dao()
        assert dao.context["method_name"] == "getCustomer"
        assert "com.example.shop.customer.dto.CustomerDTO" in dao.imports
        source = render(test_config, dao)
        assert "private static final String SELECT_SQL = \"\"\"" in source
        assert "WHERE status = :status" in source
        assert "public List<CustomerDTO> getCustomer(String status) {" in source
        assert 'sqlParamMap.put("status", status);' in source
        assert '.customerId(rs.getInt("customer_id"))' in source
        assert '.name(rs.getString("name"))' in source
        assert '.creditLimit(rs.getBigDecimal("credit_limit"))' in source

    def test_select_dao_by_position(self, test_config):
        """Test columns without a usable label are read by position."""
        metadata = SelectMetadata(
            (
                column("customer_id", "INTEGER", False),
                ColumnDescriptor("column2", "VARCHAR", generated_name=True),
                ColumnDescriptor("status", "VARCHAR(20)", True, None, "orders"),
                ColumnDescriptor("status", "VARCHAR(20)", True, None, "customers"),
            ),
            (),
            "SELECT c.customer_id, UPPER(c.email), o.status, c.status "
            "FROM customers c JOIN orders o ON o.customer_id = c.customer_id",
        )
        emitter = ArtifactEmitter(build(metadata, "Customer"), test_config)
        source = render(test_config, emitter.dao())
        assert '.customerId(rs.getInt("customer_id"))' in source
        assert ".column2(rs.getString(2))" in source
        assert ".status(rs.getString(3))" in source
        assert ".status2(rs.getString(4))" in source
        assert '"column2"' not in source
        assert '"status"' not in source
        test_config.max_lombok_fields = 1
        plain = render(test_config, ArtifactEmitter(build(metadata, "Customer"), test_config).dao())
        assert "row.setColumn2(rs.getString(2));" in plain

    def test_insert_dao(self, insert_model, test_config):
        source = render(test_config, ArtifactEmitter(insert_model, test_config).dao())
        assert "public int insertCustomer(CustomerInsertDTO insertDto) {" in source
        assert 'sqlParamMap.put("customerName", insertDto.getCustomerName());' in source
        assert "VALUES (:customerName, :email)" in source
        assert "return namedParameterJdbcTemplate.update(INSERT_SQL, sqlParamMap);" in source

    def test_update_dao(self, update_model, test_config):
        model = update_model((column("status"), column("email")))
        source = render(test_config, ArtifactEmitter(model, test_config).dao())
        assert "public int updateCustomer(CustomerUpdateDTO updateDto, String status, String email) {" in source
        assert 'sqlParamMap.put("email", updateDto.getEmail());' in source
        assert 'sqlParamMap.put("email2", email);' in source

    def test_text_block_escaping(self):
        assert sql_text_block('SELECT \'a\\b\' AS """x"""\nFROM t\n') == [
            "SELECT 'a\\\\b' AS \\\"\"\"x\\\"\"\"",
            "FROM t",
        ]


class TestController:
    def test_select_controller(self, select_model, test_config):
        source = render(test_config, ArtifactEmitter(select_model, test_config).controller())
        assert '@RequestMapping(path = "/api")' in source
        assert '@GetMapping(value = "/customer", produces = "application/json")' in source
        assert "public List<CustomerDTO> getDataForCustomer(" in source
        assert '@RequestParam("status") String status' in source
        assert "return customerDAO.getCustomer(status);" in source

    def test_insert_controller(self, insert_model, test_config):
        controller = ArtifactEmitter(insert_model, test_config).controller()
        assert "org.springframework.http.HttpStatus" in controller.imports
        source = render(test_config, controller)
        assert '@PostMapping(value = "/customer", consumes = "application/json")' in source
        assert "@Valid @RequestBody CustomerInsertDTO insertDto" in source
        assert "int rowsInserted = customerInsertDAO.insertCustomer(insertDto);" in source

    def test_update_controller_path(self, update_model, test_config):
        model = update_model((column("customer_id", "INTEGER", False),))
        source = render(test_config, ArtifactEmitter(model, test_config).controller())
        assert '@PutMapping(value = "/customer/{id}", consumes = "application/json")' in source
        assert '@PathVariable("id") Integer customerId' in source
        assert "customerUpdateDAO.updateCustomer(updateDto, customerId);" in source

    def test_delete_controller(self, delete_model, test_config):
        controller = ArtifactEmitter(delete_model, test_config).controller()
        assert controller.context["method_name"] == "deleteDataForCustomer"
        source = render(test_config, controller)
        assert '@DeleteMapping(value = "/customer/{id}")' in source
        assert "return ResponseEntity.noContent().build();" in source

    def test_api_path(self, select_model, test_config):
        test_config.api_path = "/v2"
        source = render(test_config, ArtifactEmitter(select_model, test_config).controller())
        assert '@RequestMapping(path = "/v2")' in source


class TestRender:
    def test_database_config(self, select_model, test_config):
        source = render(test_config, ArtifactEmitter(select_model, test_config).database_config())
        assert "package com.example.shop.customer.config;" in source
        assert "public class DatabaseConfig {" in source
        assert "return new NamedParameterJdbcTemplate(dataSource);" in source

    def test_render_all(self, select_model, test_config):
        artifacts = ArtifactEmitter(select_model, test_config).emit()
        sources = render_all(test_config, artifacts)
        assert len(sources) == len(artifacts)
        for artifact, source in zip(artifacts, sources):
            assert f"class {artifact.class_name} " in source
            for name in artifact.imports:
                assert f"import {name};" in source

    def test_no_html_escaping(self, select_model, test_config):
        env = create_env(test_config)
        source = render(test_config, ArtifactEmitter(select_model, test_config).dao(), env)
        assert "&lt;" not in source
        assert "Map<String, Object> sqlParamMap = new HashMap<>();" in source
