"""
Services layer for the exchange core.

Contains the code-based conversion and rate sheet workflows.
"""

from exchange_core.services.conversion_service import ConversionService

__all__ = ["ConversionService"]
