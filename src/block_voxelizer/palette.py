"""
Palettes and Texture Atlases

- Palette: the ordered set of blocks the user allows
- Atlas: per-block reference colours and per-face texture data
- AtlasPalette: nearest-colour block lookup over the palette blocks
  that the atlas has data for

Lookups use a scipy cKDTree over the candidate colours, built lazily for
each combination of colour space, excluded block set and visible faces.

File formats (JSON):
    <name>.palette  {"version": 1, "blocks": ["minecraft:stone", ...]}
                    (unversioned files list names without namespace)
    <name>.atlas    {"formatVersion": 3, "atlasSize": N,
                     "textures": {tex: {"atlasColumn", "atlasRow", "colour", "std"}},
                     "blocks": [{"name", "colour", "faces": {"up": tex, ...}}]}
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import numpy as np
from scipy.spatial import cKDTree

from .blocks import namespace_block
from .color import RGBA, rgb_to_lab
from .config import ALPHA_BIAS, ColorSpace
from .errors import AppError
from .status import StatusHandler

logger = logging.getLogger(__name__)

NAME_REGEX = re.compile(r"[a-zA-Z\-]+")

PALETTE_EXTENSION = ".palette"
ATLAS_EXTENSION = ".atlas"
ATLAS_FORMAT_VERSION = 3

# Same order as geometry.FACE_OFFSETS: +X, -X, +Y, -Y, +Z, -Z
FACE_NAMES = ("north", "south", "up", "down", "east", "west")
ALL_FACES = (1 << len(FACE_NAMES)) - 1


def _resource_path(name: str, directory: Union[str, Path], extension: str, what: str) -> Path:
    if not isinstance(name, str) or not NAME_REGEX.fullmatch(name):
        raise AppError(f"Invalid {what} name '{name}': only letters and '-' are allowed")
    path = Path(directory) / f"{name}{extension}"
    if not path.exists():
        raise AppError(f"Could not find {what} '{name}' ({path})")
    return path


def _read_json(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise AppError(f"Could not parse {path.name}: {e}") from e


class Palette:
    """Ordered set of namespaced block names."""

    def __init__(self, blocks: Iterable[str] = ()):
        self._blocks: Dict[str, None] = {}
        self.add(blocks)

    @classmethod
    def load(cls, name: str, directory: Union[str, Path]) -> "Palette":
        """
        Load <directory>/<name>.palette.

        Raises:
            AppError: If the name is invalid or the file is missing or malformed
        """
        path = _resource_path(name, directory, PALETTE_EXTENSION, "palette")
        data = _read_json(path)
        version = data.get("version")
        blocks = data.get("blocks")
        if not isinstance(blocks, list):
            raise AppError(f"Palette '{name}' has no block list")
        if version is None or version == 1:
            return cls(blocks)
        raise AppError(f"Unrecognised palette file version: {version}")

    def add(self, blocks: Iterable[str]) -> "Palette":
        for block in blocks:
            self._blocks.setdefault(namespace_block(block), None)
        return self

    def remove(self, block: str) -> bool:
        return self._blocks.pop(namespace_block(block), False) is None

    def has(self, block: str) -> bool:
        return namespace_block(block) in self._blocks

    def count(self) -> int:
        return len(self._blocks)

    @property
    def blocks(self) -> List[str]:
        return list(self._blocks)

    def remove_missing_atlas_blocks(self, atlas: "Atlas",
                                    status: Optional[StatusHandler] = None) -> List[str]:
        """
        Drop blocks the atlas has no data for.

        Returns:
            The removed block names
        """
        missing = [block for block in self._blocks if not atlas.has_block(block)]
        for block in missing:
            del self._blocks[block]
        if missing:
            logger.warning("Blocks missing atlas textures: %s", ", ".join(missing))
            if status is not None:
                status.warning(f"{len(missing)} palette blocks are missing atlas textures and will not be used")
        return missing


@dataclass(frozen=True)
class AtlasFace:
    texture: str
    texcoord: Tuple[float, float]
    color: RGBA
    std: float = 0.0


@dataclass(frozen=True)
class AtlasBlock:
    name: str
    color: RGBA
    faces: Dict[str, AtlasFace]

    def visible_color(self, face_visibility: int) -> RGBA:
        """Mean colour of the visible faces, or the block colour if none are."""
        colors = [
            self.faces[face].color
            for bit, face in enumerate(FACE_NAMES)
            if face_visibility & (1 << bit) and face in self.faces
        ]
        if not colors or face_visibility == ALL_FACES:
            return self.color
        return RGBA(*np.mean(np.asarray(colors), axis=0))


class Atlas:
    """Reference colours of the blocks a texture atlas covers."""

    def __init__(self, blocks: Iterable[AtlasBlock], atlas_size: int = 0):
        self._blocks: Dict[str, AtlasBlock] = {block.name: block for block in blocks}
        self.atlas_size = atlas_size

    @classmethod
    def from_colors(cls, colors: Dict[str, Tuple[float, ...]]) -> "Atlas":
        """Atlas of uniformly coloured blocks, keyed by block name."""
        blocks = []
        for name, color in colors.items():
            rgba = RGBA.from_sequence(color)
            face = AtlasFace(namespace_block(name), (0.0, 0.0), rgba)
            blocks.append(AtlasBlock(namespace_block(name), rgba, {f: face for f in FACE_NAMES}))
        return cls(blocks)

    @classmethod
    def from_dict(cls, data: dict) -> "Atlas":
        """
        Parse atlas JSON data.

        Raises:
            AppError: If the format version is unsupported or data is missing
        """
        if data.get("formatVersion") != ATLAS_FORMAT_VERSION:
            raise AppError("The atlas file uses an outdated format and needs to be recreated")

        try:
            size = int(data["atlasSize"])
            textures = data["textures"]

            def face(texture_name: str) -> AtlasFace:
                tex = textures[texture_name]
                texcoord = (
                    (3 * tex["atlasColumn"] + 1) / (size * 3),
                    (3 * tex["atlasRow"] + 1) / (size * 3),
                )
                return AtlasFace(texture_name, texcoord, RGBA.from_dict(tex["colour"]), float(tex.get("std", 0.0)))

            blocks = []
            for block in data["blocks"]:
                if ":" not in block["name"]:
                    raise AppError(f"Atlas block '{block['name']}' is not namespaced")
                faces = {name: face(block["faces"][name]) for name in FACE_NAMES}
                blocks.append(AtlasBlock(block["name"], RGBA.from_dict(block["colour"]), faces))
        except (KeyError, TypeError, ValueError, ZeroDivisionError) as e:
            raise AppError(f"Malformed atlas data: {e}") from e

        return cls(blocks, size)

    @classmethod
    def load(cls, name: str, directory: Union[str, Path]) -> "Atlas":
        """Load <directory>/<name>.atlas."""
        path = _resource_path(name, directory, ATLAS_EXTENSION, "atlas")
        return cls.from_dict(_read_json(path))

    def has_block(self, name: str) -> bool:
        return name in self._blocks

    def get_block(self, name: str) -> Optional[AtlasBlock]:
        return self._blocks.get(name)

    @property
    def blocks(self) -> Dict[str, AtlasBlock]:
        return dict(self._blocks)


def color_features(colors: np.ndarray, color_space: ColorSpace) -> np.ndarray:
    """
    Map RGBA colours in [0, 1] to the space distances are measured in.

    Alpha is kept as an extra dimension scaled like the colour channels.
    """
    colors = np.atleast_2d(np.asarray(colors, dtype=np.float64))
    alpha_weight = np.sqrt(ALPHA_BIAS)
    if color_space is ColorSpace.RGB:
        return np.column_stack([colors[:, :3], colors[:, 3] * alpha_weight])
    elif color_space is ColorSpace.LAB:
        return np.column_stack([rgb_to_lab(colors), colors[:, 3] * 100.0 * alpha_weight])
    else:
        raise ValueError(f"Unknown colour space: {color_space}")


class AtlasPalette:
    """
    Nearest-colour block lookup.

    Palette blocks without atlas data are removed (with a warning) when the
    lookup is created; the given palette is not modified.
    """

    def __init__(self, atlas: Atlas, palette: Palette,
                 status: Optional[StatusHandler] = None):
        self.atlas = atlas
        self.palette = Palette(palette.blocks)
        self.palette.remove_missing_atlas_blocks(atlas, status)
        self._trees: Dict[tuple, Tuple[Optional[cKDTree], List[str]]] = {}

    def _tree(self, color_space: ColorSpace, exclude: FrozenSet[str],
              face_visibility: int) -> Tuple[Optional[cKDTree], List[str]]:
        key = (color_space, exclude, face_visibility)
        cached = self._trees.get(key)
        if cached is not None:
            return cached

        names = [name for name in self.palette.blocks if name not in exclude]
        if names:
            colors = np.array([self.atlas.get_block(name).visible_color(face_visibility) for name in names])
            tree = cKDTree(color_features(colors, color_space))
        else:
            tree = None
        self._trees[key] = (tree, names)
        return tree, names

    def get_block(self, color: RGBA, color_space: ColorSpace = ColorSpace.RGB,
                  exclude: FrozenSet[str] = frozenset(),
                  face_visibility: int = ALL_FACES) -> AtlasBlock:
        """
        The palette block closest in colour.

        Args:
            color: RGBA in [0, 1]
            color_space: Space in which distance is measured
            exclude: Block names that may not be chosen
            face_visibility: Visible faces; only these contribute to a
                block's colour

        Raises:
            AppError: If no palette block is left to choose from
        """
        tree, names = self._tree(color_space, frozenset(exclude), face_visibility)
        if tree is None:
            raise AppError("Could not find a suitable block")
        _, index = tree.query(color_features([color], color_space)[0])
        return self.atlas.get_block(names[int(index)])
