"""Use case layer for the Intake context.

Re-export common use cases for convenient imports in tests.
"""

from .admin import (
    ExportSubmissionsUseCase,
    GetSubmissionUseCase,
    ListSubmissionsInput,
    ListSubmissionsUseCase,
    UpdateSubmissionUseCase,
)
from .submissions import ProcessSubmissionUseCase, SubmitFormUseCase

__all__ = [
    "ExportSubmissionsUseCase",
    "GetSubmissionUseCase",
    "ListSubmissionsInput",
    "ListSubmissionsUseCase",
    "UpdateSubmissionUseCase",
    "ProcessSubmissionUseCase",
    "SubmitFormUseCase",
]
