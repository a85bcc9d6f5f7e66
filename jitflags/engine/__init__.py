"""Constraint and normalization engine: rules, store, resolver."""
