"""Derived metrics over stored price history."""
