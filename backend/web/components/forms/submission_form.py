"""
Clothing submission form.

Renders contact fields, a fixed number of item groups and the hidden form
token. Field names follow the bracketed item grammar understood by
`backend.intake.payload.parse_form`. The honeypot input is hidden from humans
and must stay empty.
"""

from typing import Optional, Sequence, Tuple

from ..base import Component
from .fields import FileUploadField, SelectField, TextAreaField, TextInputField

CONTACT_INPUTS: Tuple[Tuple[str, str, str, str], ...] = (
    # (field, label, input type, autocomplete)
    ("name", "Full Name", "text", "name"),
    ("email", "Email Address", "email", "email"),
    ("phone", "Phone Number", "tel", "tel"),
    ("address", "Street Address", "text", "street-address"),
    ("city", "City", "text", "address-level2"),
    ("state", "State", "text", "address-level1"),
    ("zip", "ZIP Code", "text", "postal-code"),
)

IMAGE_LABELS: Tuple[Tuple[str, str], ...] = (
    ("front", "Front View"),
    ("back", "Back View"),
    ("brand_tag", "Brand Tag"),
    ("material_tag", "Material Tag"),
    ("detail", "Detail"),
)


class SubmissionForm(Component):
    """The public multi-item submission form."""

    def __init__(
        self,
        *,
        form_token: str,
        genders: Sequence[Tuple[str, str]],
        categories: Sequence[Tuple[str, str]],
        sizes: Sequence[str],
        item_slots: int = 3,
        max_image_mb: int = 2,
        action: str = "/submit",
    ) -> None:
        self.form_token = form_token
        self.genders = list(genders)
        self.categories = list(categories)
        self.sizes = list(sizes)
        self.item_slots = max(1, item_slots)
        self.max_image_mb = max_image_mb
        self.action = action

    def render(self) -> str:
        contact_html = "".join(
            TextInputField(field, label, required=True).render(input_type=itype, autocomplete=auto, class_="form-input")
            for field, label, itype, auto in CONTACT_INPUTS
        )
        items_html = "".join(self._render_item(i) for i in range(self.item_slots))
        form_attrs = self.attributes(
            method="post",
            action=self.action,
            enctype="multipart/form-data",
            class_="submission-form",
        )
        return f"""
        <form {form_attrs}>
            <input type="hidden" name="clothing_form_nonce" value="{self.escape(self.form_token)}">
            <div class="hp-field" aria-hidden="true">
                <label for="website">Website</label>
                <input type="text" id="website" name="website" value="" tabindex="-1" autocomplete="off">
            </div>
            <fieldset class="contact-fields">
                <legend>Contact Information</legend>
                {contact_html}
            </fieldset>
            {items_html}
            <div class="form-actions">
                <button type="submit" class="btn btn-primary">Submit Items</button>
            </div>
        </form>
        """

    def _render_item(self, index: int) -> str:
        prefix = f"items[{index}]"
        fid = f"item-{index}"
        first = index == 0
        gender = SelectField(f"{fid}-gender", "Gender", name=f"{prefix}[gender]", required=first)
        category = SelectField(f"{fid}-category", "Category", name=f"{prefix}[category_level_0]", required=first)
        subcategory = TextInputField(f"{fid}-subcategory", "Subcategory (optional)", name=f"{prefix}[category_level_1]")
        size = SelectField(f"{fid}-size", "Size", name=f"{prefix}[size]", required=first)
        description = TextAreaField(f"{fid}-description", "Description", name=f"{prefix}[description]", required=first)
        images = "".join(
            FileUploadField(
                f"{fid}-image-{slot}",
                label,
                name=f"{prefix}[images][{slot}]",
                required=first and slot == "front",
                help_text=f"JPG, PNG, GIF or WebP up to {self.max_image_mb} MB" if slot == "front" else None,
            ).render()
            for slot, label in IMAGE_LABELS
        )
        legend = f"Item {index + 1}" + ("" if first else " (optional)")
        return f"""
            <fieldset class="item-fields" data-item-index="{index}">
                <legend>{self.escape(legend)}</legend>
                {gender.render(self.genders)}
                {category.render(self.categories)}
                {subcategory.render(class_="form-input")}
                {size.render([(s, s) for s in self.sizes])}
                {description.render(rows=3)}
                <div class="image-slots">{images}</div>
            </fieldset>
        """
