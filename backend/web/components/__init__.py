# Component system: pure Python components for server-rendered HTML

from .base import Component
from .layout import Layout
from .feedback import FeedbackBanner
from .admin import FilterBar, Pagination, SubmissionDetail, SubmissionTable
from .forms import FormField, TextAreaField, FileUploadField, TextInputField, SelectField, SubmissionForm

__all__ = [
    "Component",
    "Layout",
    "FeedbackBanner",
    "FilterBar",
    "Pagination",
    "SubmissionDetail",
    "SubmissionTable",
    "FormField",
    "TextAreaField",
    "FileUploadField",
    "TextInputField",
    "SelectField",
    "SubmissionForm",
]
