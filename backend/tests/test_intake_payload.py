"""Parsing of bracketed multipart keys into RawPayload."""
from __future__ import annotations

from backend.intake.domain import FileRef, ImageSlot
from backend.intake.payload import parse_form
from backend.tests.utils.storage_fixtures import png_ref


def test_contact_token_and_honeypot_are_picked_up():
    payload = parse_form(
        [
            ("name", "Jane"),
            ("email", "jane@example.com"),
            ("clothing_form_nonce", "tok"),
            ("website", ""),
            ("unrelated", "ignored"),
        ]
    )
    assert payload.contact == {"name": "Jane", "email": "jane@example.com"}
    assert payload.form_token == "tok"
    assert payload.honeypot == ""
    assert payload.items == []


def test_items_are_grouped_and_ordered_by_index():
    front = png_ref()
    payload = parse_form(
        [
            ("items[2][gender]", "mens"),
            ("items[2][category_level_0]", "bottoms"),
            ("items[0][gender]", "womens"),
            ("items[0][category_level_0]", "tops"),
            ("items[0][category_level_1]", "blouses"),
            ("items[0][size]", "M"),
            ("items[0][description]", "Silk"),
            ("items[0][images][front]", front),
        ]
    )
    assert [i.gender for i in payload.items] == ["womens", "mens"]
    first = payload.items[0]
    assert first.category_levels == ["tops", "blouses"]
    assert first.size == "M"
    assert first.images == {ImageSlot.FRONT: front}


def test_category_path_stops_at_first_gap():
    payload = parse_form(
        [
            ("items[0][category_level_0]", "tops"),
            ("items[0][category_level_2]", "orphan"),
            ("items[0][category_level_7]", "too-deep"),
        ]
    )
    assert payload.items[0].category_levels == ["tops"]


def test_unknown_slots_empty_files_and_text_images_are_ignored():
    empty = FileRef(filename="x.png", content_type="image/png", data=b"")
    payload = parse_form(
        [
            ("items[0][images][side]", png_ref()),
            ("items[0][images][front]", empty),
            ("items[0][images][back]", "not-a-file"),
        ]
    )
    assert payload.items[0].images == {}
    assert payload.items[0].is_blank()


def test_file_in_text_field_reads_as_empty():
    payload = parse_form([("name", png_ref()), ("items[0][description]", png_ref())])
    assert payload.contact["name"] == ""
    assert payload.items[0].description == ""
