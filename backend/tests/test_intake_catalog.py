"""
Catalog loading and lookups.

The bundled YAML drives both the form choices and the validator; these tests
pin the shape callers rely on and the fallback order of size lookups.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from backend.intake.catalog import (
    CatalogError,
    CategoryCatalog,
    SizeCatalog,
    get_catalog_path,
    load_catalog,
)


def test_bundled_catalog_has_gender_roots_and_levels():
    catalog = load_catalog()
    cats = catalog.categories
    assert set(cats.genders) >= {"womens", "mens", "kids"}
    assert cats.has_path(("womens", "tops", "blouses"))
    assert cats.has_path(("mens", "bottoms"))
    assert not cats.has_path(("mens", "dresses"))
    assert cats.node(()) is None


def test_label_path_uses_display_names_and_keeps_unknown_ids():
    cats = load_catalog().categories
    assert cats.label_path(("womens", "tops", "blouses")) == ("Women's", "Tops", "Blouses")
    assert cats.label_path(("womens", "capes")) == ("Women's", "capes")


def test_top_level_choices_are_gender_scoped():
    cats = CategoryCatalog.from_mapping(
        {"womens": {"name": "Women's", "subcategories": {"tops": {"name": "Tops"}}}}
    )
    assert cats.top_level_choices() == [("womens", "tops", "Women's > Tops")]


def test_size_lookup_falls_back_to_gender_default_then_global():
    sizes = SizeCatalog.from_mapping(
        {
            "womens_tops": {"gender": "womens", "category": "tops", "sizes": ["S", "M"]},
            "womens_default": {"gender": "womens", "category": "default", "sizes": ["One Size"]},
            "default": {"sizes": ["XS", "XL"]},
        }
    )
    assert sizes.sizes_for("womens", "tops") == ("S", "M")
    assert sizes.sizes_for("womens", "bags") == ("One Size",)
    assert sizes.sizes_for("mens", "tops") == ("XS", "XL")


def test_bundled_size_labels_are_strings():
    sizes = load_catalog().sizes
    labels = sizes.sizes_for("womens", "bottoms")
    assert "00" in labels and "24W" in labels
    assert all(isinstance(s, str) for s in labels)


def test_catalog_path_env_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    target = tmp_path / "catalog.yaml"
    target.write_text(
        "categories:\n  unisex:\n    name: Unisex\n    subcategories:\n      tops: {name: Tops}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("CATALOG_PATH", str(target))
    assert get_catalog_path() == target
    catalog = load_catalog()
    assert list(catalog.categories.genders) == ["unisex"]
    assert catalog.sizes.sizes_for("unisex", "tops") == ()


@pytest.mark.parametrize(
    "body",
    [
        "- just\n- a list\n",
        "categories: [1, 2]\n",
        "categories: {womens: {name: W}}\nsizes: {x: {sizes: M}}\n",
        "categories: {\n",
    ],
)
def test_malformed_catalog_raises(tmp_path: Path, body: str):
    target = tmp_path / "bad.yaml"
    target.write_text(body, encoding="utf-8")
    with pytest.raises(CatalogError):
        load_catalog(target)


def test_missing_catalog_raises(tmp_path: Path):
    with pytest.raises(CatalogError):
        load_catalog(tmp_path / "nope.yaml")
