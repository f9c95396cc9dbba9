"""Naming conventions for generated Java code.

Column names are converted to lower camel case identifiers, business domain
names to package segments and class names.
"""

import re
from typing import Optional
from sqlscaffold.errors import InvalidArgument

#: Business domain name must look like an identifier.
BUSINESS_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

_SEPARATORS = frozenset("_- \t\r\n")


def to_identifier(raw_name: str) -> str:
    """Convert column name to lower camel case.

    Whole input is lower cased first, so ``CUSTOMER_ID`` and ``customer_id``
    give the same result, and ``customerName`` gives ``customername``.
    Separators are dropped and the character following them is upper cased.
    Leading separators only capitalize when there is more than one of them in
    a row, which makes ``_customer_id`` ``customerId`` and ``__c__`` ``C``.

    :param raw_name: column name
    :return: identifier, empty when the name has only separators
    """
    result = []
    capitalize_next = False
    after_separator = False
    for char in raw_name.lower():
        if char in _SEPARATORS:
            if result or after_separator:
                capitalize_next = True
            after_separator = True
            continue
        result.append(char.upper() if capitalize_next else char)
        capitalize_next = False
        after_separator = False
    return "".join(result)


def field_name(column_name: str, alias: Optional[str] = None) -> str:
    """Name of DTO field for a column, alias is used verbatim when given."""
    if alias is not None and alias.strip():
        return alias.strip()
    if column_name is None or not column_name.strip():
        raise InvalidArgument("Database column name cannot be null or empty")
    return to_identifier(column_name)


def validate_business_name(business_name: Optional[str]) -> str:
    if business_name is None or not business_name.strip():
        raise InvalidArgument("Business domain name cannot be null or empty")
    if not BUSINESS_NAME_RE.match(business_name):
        raise InvalidArgument(
            f"Business domain name '{business_name}' must start with a letter and contain only letters, "
            "digits and underscores"
        )
    return business_name


def to_package_segment(business_name: str) -> str:
    """Package segment for business domain name, lower cased and otherwise verbatim."""
    if business_name is None or not business_name.strip():
        raise InvalidArgument("Business domain name cannot be null or empty")
    return business_name.lower()


def to_class_segment(business_name: str) -> str:
    """Upper camel case class name prefix.

    Names which already start with a capital letter and have no separators
    are kept as they are (``CustomerOrder``), others are converted
    (``customer_order`` -> ``CustomerOrder``).
    """
    validate_business_name(business_name)
    if business_name[0].isupper() and "_" not in business_name:
        return business_name
    converted = to_identifier(business_name)
    return converted[:1].upper() + converted[1:]


def class_name(business_name: str, suffix: str) -> str:
    return to_class_segment(business_name) + suffix


def member_name(business_name: str, suffix: str) -> str:
    """Lower camel case name of a member holding an instance, like ``customerDAO``."""
    segment = to_class_segment(business_name)
    return segment[:1].lower() + segment[1:] + suffix


def package_name(base_package: str, business_name: str, layer: str) -> str:
    return f"{base_package}.{to_package_segment(business_name)}.{layer}"


def accessor_name(prefix: str, identifier: str) -> str:
    """Getter or setter name, ``accessor_name("get", "customerId")`` is ``getCustomerId``."""
    return prefix + identifier[:1].upper() + identifier[1:]


def unique_name(name: str, taken: set[str]) -> str:
    """Return ``name`` or ``name`` with the lowest numeric suffix not in ``taken``.

    Chosen name is added to ``taken``.
    """
    candidate = name
    counter = 2
    while candidate in taken:
        candidate = f"{name}{counter}"
        counter += 1
    taken.add(candidate)
    return candidate
