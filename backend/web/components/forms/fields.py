"""
Form field components.

Small components that keep label, input, help and error markup consistent
across the submission form and the admin screens. `name` defaults to the
field id but can differ for bracketed item keys (`items[0][size]`).
"""

from typing import Optional, Sequence, Tuple

from ..base import Component


class FormField(Component):
    """Wrapper that renders label, input slot, help, and error text."""

    def __init__(
        self,
        field_id: str,
        label: str,
        *,
        name: Optional[str] = None,
        required: bool = False,
        help_text: Optional[str] = None,
        error_text: Optional[str] = None,
    ) -> None:
        self.field_id = field_id
        self.name = name or field_id
        self.label = label
        self.required = required
        self.help_text = help_text
        self.error_text = error_text

    def _aria(self) -> dict:
        return {
            "aria_describedby": f"{self.field_id}-help" if self.help_text else None,
            "aria_invalid": "true" if self.error_text else "false",
        }

    def render(self, input_html: str) -> str:
        required_marker = (
            '<span class="form-required" aria-hidden="true">*</span>'
            if self.required
            else ""
        )
        help_html = (
            f'<p class="form-help" id="{self.escape(self.field_id)}-help">{self.escape(self.help_text)}</p>'
            if self.help_text
            else ""
        )
        error_html = (
            f'<p class="form-error" role="alert">{self.escape(self.error_text)}</p>'
            if self.error_text
            else ""
        )
        label_attrs = self.attributes(for_=self.field_id, class_="form-label")
        return (
            f'<div class="{self.classes("form-field", form_field__error=bool(self.error_text))}">'
            f"<label {label_attrs}>{self.escape(self.label)}{required_marker}</label>"
            f"{input_html}{help_html}{error_html}"
            "</div>"
        )


class TextInputField(FormField):
    """Single-line text input (text, email, tel)."""

    def render(
        self,
        *,
        value: str = "",
        input_type: str = "text",
        autocomplete: Optional[str] = None,
        **attrs: str,
    ) -> str:
        input_attrs = self.attributes(
            id=self.field_id,
            name=self.name,
            type=input_type,
            value=value,
            autocomplete=autocomplete,
            required=self.required,
            **self._aria(),
            **attrs,
        )
        return super().render(f"<input {input_attrs}>")


class TextAreaField(FormField):
    """Convenience helper for textareas."""

    def render(self, value: str = "", rows: int = 4, **attrs: str) -> str:
        textarea_attrs = self.attributes(
            id=self.field_id,
            name=self.name,
            rows=str(rows),
            required=self.required,
            **self._aria(),
            **attrs,
        )
        return super().render(f"<textarea {textarea_attrs}>{self.escape(value)}</textarea>")


class SelectField(FormField):
    """Select box from (value, label) pairs; an empty placeholder comes first."""

    def render(self, options: Sequence[Tuple[str, str]], *, selected: str = "", placeholder: str = "Select...") -> str:
        opts = [f'<option value="">{self.escape(placeholder)}</option>']
        for value, label in options:
            attrs = self.attributes(value=value, selected=(value == selected))
            opts.append(f"<option {attrs}>{self.escape(label)}</option>")
        select_attrs = self.attributes(id=self.field_id, name=self.name, required=self.required, **self._aria())
        return super().render(f"<select {select_attrs}>{''.join(opts)}</select>")


class FileUploadField(FormField):
    """Image upload control."""

    def render(self, accept: Optional[str] = "image/jpeg,image/png,image/gif,image/webp", **attrs: str) -> str:
        input_attrs = self.attributes(
            id=self.field_id,
            name=self.name,
            type="file",
            accept=accept,
            required=self.required,
            **self._aria(),
            **attrs,
        )
        return super().render(f"<input {input_attrs}>")
