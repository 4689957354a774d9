"""
Category and size reference data.

Why:
    The form renderer and the validator both need the gender -> category ->
    subcategory tree and the size groups. Both are loaded once at startup from
    a YAML file and handed around as immutable records, never re-read per
    request.

Shape (YAML):
    categories: {gender: {name, subcategories: {id: {name, subcategories?}}}}
    sizes:      {group: {name, gender, category, sizes: [label, ...]}}
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import yaml

_log = logging.getLogger("preowned.intake")

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "catalog.yaml"


class CatalogError(ValueError):
    """Raised when the catalog file is missing or malformed."""


@dataclass(frozen=True)
class CategoryNode:
    id: str
    name: str
    children: Mapping[str, "CategoryNode"]


@dataclass(frozen=True)
class SizeGroup:
    key: str
    name: str
    gender: str
    category: str
    sizes: Tuple[str, ...]


def _build_nodes(raw: Any, *, where: str) -> Mapping[str, CategoryNode]:
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, dict):
        raise CatalogError(f"{where}: expected mapping")
    nodes: dict[str, CategoryNode] = {}
    for key, value in raw.items():
        node_id = str(key)
        value = value or {}
        if not isinstance(value, dict):
            raise CatalogError(f"{where}.{node_id}: expected mapping")
        nodes[node_id] = CategoryNode(
            id=node_id,
            name=str(value.get("name") or node_id),
            children=_build_nodes(value.get("subcategories"), where=f"{where}.{node_id}"),
        )
    return MappingProxyType(nodes)


class CategoryCatalog:
    """Read-only gender -> category tree."""

    def __init__(self, genders: Mapping[str, CategoryNode]) -> None:
        self._genders = MappingProxyType(dict(genders))

    @classmethod
    def from_mapping(cls, raw: Any) -> "CategoryCatalog":
        return cls(_build_nodes(raw, where="categories"))

    @property
    def genders(self) -> Mapping[str, CategoryNode]:
        return self._genders

    def has_gender(self, gender: str) -> bool:
        return gender in self._genders

    def node(self, path: Sequence[str]) -> Optional[CategoryNode]:
        """Resolve a path (gender first) to its node, or None when unknown."""
        if not path:
            return None
        current = self._genders.get(path[0])
        for segment in path[1:]:
            if current is None:
                return None
            current = current.children.get(segment)
        return current

    def has_path(self, path: Sequence[str]) -> bool:
        return self.node(path) is not None

    def label_path(self, path: Sequence[str]) -> Tuple[str, ...]:
        """Display names for each segment; unknown segments keep their id."""
        labels: list[str] = []
        children: Mapping[str, CategoryNode] = self._genders
        for segment in path:
            node = children.get(segment) if children is not None else None
            labels.append(node.name if node else segment)
            children = node.children if node else MappingProxyType({})
        return tuple(labels)

    def top_level_choices(self) -> list[tuple[str, str, str]]:
        """(gender, category_id, label) triples for filter controls."""
        out: list[tuple[str, str, str]] = []
        for gender in self._genders.values():
            for cat in gender.children.values():
                out.append((gender.id, cat.id, f"{gender.name} > {cat.name}"))
        return out


class SizeCatalog:
    """Size groups keyed by name; lookup falls back to broader defaults."""

    DEFAULT_KEY = "default"

    def __init__(self, groups: Iterable[SizeGroup]) -> None:
        self._groups = MappingProxyType({g.key: g for g in groups})

    @classmethod
    def from_mapping(cls, raw: Any) -> "SizeCatalog":
        if raw is None:
            return cls([])
        if not isinstance(raw, dict):
            raise CatalogError("sizes: expected mapping")
        groups = []
        for key, value in raw.items():
            value = value or {}
            labels = value.get("sizes") or []
            if not isinstance(labels, list):
                raise CatalogError(f"sizes.{key}.sizes: expected list")
            groups.append(
                SizeGroup(
                    key=str(key),
                    name=str(value.get("name") or key),
                    gender=str(value.get("gender") or cls.DEFAULT_KEY),
                    category=str(value.get("category") or cls.DEFAULT_KEY),
                    sizes=tuple(str(s) for s in labels),
                )
            )
        return cls(groups)

    @property
    def groups(self) -> Mapping[str, SizeGroup]:
        return self._groups

    def _find(self, gender: str, category: str) -> Optional[SizeGroup]:
        for group in self._groups.values():
            if group.gender == gender and group.category == category:
                return group
        return None

    def sizes_for(self, gender: str, category: str) -> Tuple[str, ...]:
        """Sizes for gender/category, else the gender default, else the global default."""
        group = (
            self._find(gender, category)
            or self._find(gender, self.DEFAULT_KEY)
            or self._groups.get(self.DEFAULT_KEY)
        )
        return group.sizes if group else ()


@dataclass(frozen=True)
class Catalog:
    categories: CategoryCatalog
    sizes: SizeCatalog


def get_catalog_path() -> Path:
    raw = (os.getenv("CATALOG_PATH") or "").strip()
    return Path(raw) if raw else DEFAULT_CATALOG_PATH


def load_catalog(path: str | os.PathLike[str] | None = None) -> Catalog:
    """Load the catalog YAML once; raises CatalogError on missing/invalid input."""
    target = Path(path) if path else get_catalog_path()
    try:
        with open(target, "r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except FileNotFoundError:
        raise CatalogError(f"catalog not found: {target}")
    except yaml.YAMLError as exc:
        raise CatalogError(f"catalog is not valid YAML: {exc}")
    if not isinstance(raw, dict):
        raise CatalogError("catalog root must be a mapping")
    catalog = Catalog(
        categories=CategoryCatalog.from_mapping(raw.get("categories")),
        sizes=SizeCatalog.from_mapping(raw.get("sizes")),
    )
    _log.info(
        "catalog loaded path=%s genders=%s size_groups=%s",
        target,
        len(catalog.categories.genders),
        len(catalog.sizes.groups),
    )
    return catalog


__all__ = [
    "DEFAULT_CATALOG_PATH",
    "CatalogError",
    "CategoryNode",
    "SizeGroup",
    "CategoryCatalog",
    "SizeCatalog",
    "Catalog",
    "get_catalog_path",
    "load_catalog",
]
