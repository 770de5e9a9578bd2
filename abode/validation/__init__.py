"""Validation package: draft validation and cross-entity rules."""

from abode.validation.validator import DraftValidator, EntityValidationError
from abode.validation.cascade import CascadeCoordinator

__all__ = ["CascadeCoordinator", "DraftValidator", "EntityValidationError"]
