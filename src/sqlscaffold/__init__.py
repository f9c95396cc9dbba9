"""Typed data-access scaffolding from a single parameterized SQL statement."""
