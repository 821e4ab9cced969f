"""Core HR module — Employee and Department identity models."""

from backend.core_hr.models import Department, Employee

__all__ = ["Employee", "Department"]
