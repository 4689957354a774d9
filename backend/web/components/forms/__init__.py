"""
Form components: field building blocks and the public submission form.
"""

from .fields import FormField, TextAreaField, FileUploadField, TextInputField, SelectField
from .submission_form import SubmissionForm

__all__ = [
    "FormField",
    "TextAreaField",
    "FileUploadField",
    "TextInputField",
    "SelectField",
    "SubmissionForm",
]
