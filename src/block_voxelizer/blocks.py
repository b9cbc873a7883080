"""
Block Properties

Which blocks fall under gravity, let light through, emit light, or only
look right with open space above them. A registry instance is passed to
block assignment and lighting; the defaults cover the vanilla game and
can be replaced from JSON resource files:

    fallable_blocks.json     {"fallable_blocks": [...]}
    transparent_blocks.json  {"transparent_blocks": [...]}
    emissive_blocks.json     {"emissive_blocks": [...]}
    grass_like_blocks.json   {"grass_like_blocks": [...]}
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, Union

from .errors import AppError

logger = logging.getLogger(__name__)

NAMESPACE = "minecraft"

_DYES = (
    "white", "orange", "magenta", "light_blue", "yellow", "lime", "pink", "gray",
    "light_gray", "cyan", "purple", "blue", "brown", "green", "red", "black",
)


def namespace_block(name: str) -> str:
    """Prefix a block name with the default namespace if it has none."""
    return name if ":" in name else f"{NAMESPACE}:{name}"


def _names(names: Iterable[str]) -> FrozenSet[str]:
    return frozenset(namespace_block(n) for n in names)


DEFAULT_FALLABLE = _names(
    ["sand", "red_sand", "gravel", "anvil", "chipped_anvil", "damaged_anvil",
     "dragon_egg", "scaffolding", "pointed_dripstone", "suspicious_sand", "suspicious_gravel"]
    + [f"{dye}_concrete_powder" for dye in _DYES]
)

DEFAULT_TRANSPARENT = _names(
    ["glass", "tinted_glass", "ice", "slime_block", "honey_block", "beacon",
     "oak_leaves", "spruce_leaves", "birch_leaves", "jungle_leaves", "acacia_leaves",
     "dark_oak_leaves", "mangrove_leaves", "azalea_leaves", "flowering_azalea_leaves"]
    + [f"{dye}_stained_glass" for dye in _DYES]
)

DEFAULT_EMISSIVE = _names(
    ["glowstone", "sea_lantern", "shroomlight", "jack_o_lantern", "magma_block",
     "ochre_froglight", "verdant_froglight", "pearlescent_froglight",
     "crying_obsidian", "beacon", "redstone_lamp"]
)

DEFAULT_GRASS_LIKE = _names(
    ["grass_block", "mycelium", "podzol", "crimson_nylium", "warped_nylium", "dirt_path"]
)


@dataclass(frozen=True)
class BlockRegistry:
    """Block property sets, all holding namespaced names."""

    fallable: FrozenSet[str] = field(default=DEFAULT_FALLABLE)
    transparent: FrozenSet[str] = field(default=DEFAULT_TRANSPARENT)
    emissive: FrozenSet[str] = field(default=DEFAULT_EMISSIVE)
    grass_like: FrozenSet[str] = field(default=DEFAULT_GRASS_LIKE)

    @classmethod
    def from_directory(cls, directory: Union[str, Path]) -> "BlockRegistry":
        """
        Load the property sets from a resource directory.

        Files that are missing fall back to the built-in defaults.

        Raises:
            AppError: If a file exists but is not valid
        """
        directory = Path(directory)
        loaded = {}
        for key in ("fallable", "transparent", "emissive", "grass_like"):
            path = directory / f"{key}_blocks.json"
            if not path.exists():
                continue
            try:
                with open(path, "r", encoding="utf-8") as f:
                    names = json.load(f)[f"{key}_blocks"]
            except (json.JSONDecodeError, KeyError, TypeError) as e:
                raise AppError(f"Invalid block list {path.name}: {e}") from e
            loaded[key] = _names(names)
            logger.debug("Loaded %d %s blocks from %s", len(loaded[key]), key, path)
        return cls(**loaded)

    def is_fallable(self, name: str) -> bool:
        return name in self.fallable

    def is_transparent(self, name: str) -> bool:
        return name in self.transparent

    def is_emissive(self, name: str) -> bool:
        return name in self.emissive

    def is_grass_like(self, name: str) -> bool:
        return name in self.grass_like
