"""Tests for naming of generated identifiers, packages and classes."""

import pytest
from sqlscaffold.errors import InvalidArgument
from sqlscaffold.naming import (
    accessor_name,
    class_name,
    field_name,
    member_name,
    package_name,
    to_class_segment,
    to_identifier,
    to_package_segment,
    unique_name,
    validate_business_name,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("customer_id", "customerId"),
        ("CUSTOMER_ID", "customerId"),
        ("date_of_birth_timestamp", "dateOfBirthTimestamp"),
        ("_customer_id", "customerId"),
        ("customer_id_", "customerId"),
        ("ORDER__ID", "orderId"),
        ("first name", "firstName"),
        ("first-name", "firstName"),
        ("__c__", "C"),
        ("___", ""),
        ("id", "id"),
        ("customerName", "customername"),
    ],
)
def test_to_identifier(value, expected):
    assert to_identifier(value) == expected


class TestFieldName:
    def test_alias_is_used_verbatim(self):
        assert field_name("customer_id", "custID") == "custID"

    def test_column_name_is_converted(self):
        assert field_name("customer_id") == "customerId"
        assert field_name("customer_id", "  ") == "customerId"

    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_column_name(self, value):
        with pytest.raises(InvalidArgument, match="Database column name cannot be null or empty"):
            field_name(value)


class TestBusinessName:
    @pytest.mark.parametrize("value", ["Customer", "customer_order", "Order2"])
    def test_valid(self, value):
        assert validate_business_name(value) == value

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(InvalidArgument, match="Business domain name cannot be null or empty"):
            validate_business_name(value)

    @pytest.mark.parametrize("value", ["1Customer", "_customer", "Customer Order", "customer-order", "Klient$"])
    def test_invalid(self, value):
        with pytest.raises(InvalidArgument, match="must start with a letter"):
            validate_business_name(value)


class TestClassAndPackageNames:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Customer", "Customer"),
            ("CustomerOrder", "CustomerOrder"),
            ("customer", "Customer"),
            ("customer_order", "CustomerOrder"),
            ("Customer_order", "CustomerOrder"),
        ],
    )
    def test_class_segment(self, value, expected):
        assert to_class_segment(value) == expected

    def test_package_segment(self):
        assert to_package_segment("CustomerOrder") == "customerorder"
        with pytest.raises(InvalidArgument):
            to_package_segment(" ")

    def test_derived_names(self):
        assert class_name("customer", "InsertDTO") == "CustomerInsertDTO"
        assert member_name("CustomerOrder", "DAO") == "customerOrderDAO"
        assert package_name("com.jfeatures.msg", "CustomerOrder", "dao") == "com.jfeatures.msg.customerorder.dao"
        assert accessor_name("get", "customerId") == "getCustomerId"
        assert accessor_name("set", "x") == "setX"


def test_unique_name():
    taken = set()
    assert unique_name("price", taken) == "price"
    assert unique_name("price", taken) == "price2"
    assert unique_name("price", taken) == "price3"
    assert unique_name("total", taken) == "total"
    assert taken == {"price", "price2", "price3", "total"}
