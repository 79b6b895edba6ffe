"""
DailyPal Services
=================

Shared service layer used by the command line interface.
"""

from .ingestion_service import IngestionService

__all__ = [
    'IngestionService',
]
