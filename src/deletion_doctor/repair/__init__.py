"""Diagnosis and repair of incomplete delete-modules tasks."""
