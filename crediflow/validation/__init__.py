"""Draft validation package."""

from crediflow.validation.validator import BillingValidator

__all__ = ["BillingValidator"]
