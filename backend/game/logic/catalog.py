"""
Comparable item catalog.

The market-data pipeline that fills the catalog is an external collaborator;
this module only holds a read-only snapshot of it. Sequencing depends on the
snapshot's order being stable, so items keep the order they were loaded in.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

import structlog
import yaml
from pydantic import Field

from game.logic.types import WireModel

logger = structlog.get_logger()


class Item(WireModel):
    id: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    display_name: str
    value: float = Field(ge=0)  # comparison quantity (market cap)
    group_tag: str = ""  # originating network
    image_url: str | None = None


class Catalog(Protocol):
    """Read-only source of comparable items."""

    def items(self) -> tuple[Item, ...]: ...

    def get(self, item_id: str) -> Item | None: ...


class StaticCatalog:
    """Immutable in-memory catalog snapshot."""

    def __init__(self, items: list[Item] | tuple[Item, ...]) -> None:
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate item id in catalog: {item.id!r}")
            seen.add(item.id)
        self._items = tuple(items)
        self._by_id = {item.id: item for item in self._items}

    def items(self) -> tuple[Item, ...]:
        return self._items

    def get(self, item_id: str) -> Item | None:
        return self._by_id.get(item_id)

    def __len__(self) -> int:
        return len(self._items)


def load_catalog(path: Path | str) -> StaticCatalog:
    """Load a catalog snapshot from a YAML file with a top-level ``items`` list.

    A missing file yields an empty catalog (starting a run then fails with
    CatalogExhaustedError); a malformed file raises ValueError.
    """
    catalog_path = Path(path)
    if not catalog_path.exists():
        logger.warning("catalog file not found, catalog is empty", path=str(catalog_path))
        return StaticCatalog([])

    with catalog_path.open() as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
        raise ValueError(f"Malformed catalog file {catalog_path}: expected a mapping with an 'items' list")

    catalog = StaticCatalog([Item.model_validate(raw) for raw in data.get("items", [])])
    logger.info("loaded catalog", path=str(catalog_path), items=len(catalog))
    return catalog
