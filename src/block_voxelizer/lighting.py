"""
Light Propagation

Sun light and block light are relaxed over the lattice with a worklist:

- Sun light 15 is seeded one cell above the top of every column
- Emissive blocks seed block light 14 at their own position
- An update commits only if it raises the stored value of a channel
- Empty cells and transparent blocks pass light on to their six
  neighbours at value - 1; sun light at 15 travels straight down
  without losing strength
- Opaque blocks keep the light they receive but do not pass it on

A column's limits are taken over every block and its four horizontal
neighbours; updates outside [min y - 1, max y + 1] of their column are
dropped and counted as skipped.

Every commit strictly raises a value in [0, 15], so the relaxation
terminates and running it again on a settled volume commits nothing.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, NamedTuple, Tuple

from .config import BLOCK_LIGHT_MAX, SUN_LIGHT_MAX
from .geometry import Coordinate

if TYPE_CHECKING:
    from .block_mesh import BlockMesh

logger = logging.getLogger(__name__)

# Propagation directions; DOWN is the last entry
_DIRECTIONS: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 0), (1, 0, 0), (0, 0, 1), (-1, 0, 0), (0, 0, -1), (0, -1, 0),
)
_DOWN = 5
_OPPOSITE = (5, 3, 4, 1, 2, 0)
_NO_SOURCE = -1


class LightLevel(NamedTuple):
    sun: int
    block: int


class _Update(NamedTuple):
    position: Coordinate
    sun: int
    block: int
    direction: int = _NO_SOURCE


@dataclass
class _ColumnLimit:
    min_y: int
    max_y: int


class BlockMeshLighting:
    """
    Sun and block light values for the placements of a block mesh.

    Args:
        owner: The block mesh being lit
    """

    def __init__(self, owner: "BlockMesh"):
        self._owner = owner
        self._limits: Dict[Tuple[int, int], _ColumnLimit] = {}
        self._sun: Dict[Coordinate, int] = {}
        self._block: Dict[Coordinate, int] = {}
        self.updates = 0
        self.skips = 0
        self.commits = 0
        self._initialised = False

    def init(self) -> None:
        """Compute the column limits. Must run before any propagation."""
        self._limits.clear()
        for placement in self._owner.placements:
            x, y, z = placement.position
            for cx, cz in ((x, z), (x + 1, z), (x - 1, z), (x, z + 1), (x, z - 1)):
                limit = self._limits.get((cx, cz))
                if limit is None:
                    self._limits[(cx, cz)] = _ColumnLimit(y, y)
                else:
                    limit.min_y = min(limit.min_y, y)
                    limit.max_y = max(limit.max_y, y)
        self._initialised = True

    def _require_init(self) -> None:
        if not self._initialised:
            raise RuntimeError("Lighting not initialised. Call init() first.")

    def get_light_level(self, position) -> LightLevel:
        position = Coordinate(*position)
        return LightLevel(self._sun.get(position, 0), self._block.get(position, 0))

    def get_max_light_level(self, position) -> int:
        return max(self.get_light_level(position))

    @property
    def sun_light_values(self) -> Dict[Coordinate, int]:
        return dict(self._sun)

    @property
    def block_light_values(self) -> Dict[Coordinate, int]:
        return dict(self._block)

    def add_sun_light_values(self) -> None:
        """Seed full sun light above every column and propagate."""
        self._require_init()
        updates = [
            _Update(Coordinate(x, limit.max_y + 1, z), SUN_LIGHT_MAX, 0)
            for (x, z), limit in self._limits.items()
        ]
        self._handle_updates(updates)

    def add_emissive_blocks(self) -> None:
        """Seed block light at every emissive block and propagate."""
        self._require_init()
        updates = [
            _Update(placement.position, 0, BLOCK_LIGHT_MAX)
            for placement in self._owner.placements
            if self._owner.is_emissive(placement)
        ]
        self._handle_updates(updates)

    def add_light_to_darkness(self, threshold: int) -> int:
        """
        Turn blocks darker than a threshold into light sources.

        Each block whose max(sun, block) light is still below the threshold
        when it is reached is replaced with an emissive block, and block
        light is propagated from it.

        Returns:
            Number of blocks made emissive
        """
        if threshold == 0:
            return 0
        self._require_init()

        candidates = [
            placement.position
            for placement in self._owner.placements
            if self.get_max_light_level(placement.position) < threshold
        ]

        added = 0
        while candidates:
            position = candidates.pop()
            if self.get_max_light_level(position) >= threshold:
                continue

            self._owner.set_emissive_block(position)
            added += 1
            self._block[position] = BLOCK_LIGHT_MAX
            self.commits += 1

            sun = self._sun.get(position, 0) - 1
            updates = [
                _Update(position.offset(*offset), sun, BLOCK_LIGHT_MAX - 1, direction)
                for direction, offset in enumerate(_DIRECTIONS)
            ]
            self._handle_updates(updates)

        if added:
            logger.info("Added %d light blocks to dark areas", added)
        return added

    def _is_position_valid(self, position: Coordinate) -> bool:
        limit = self._limits.get((position.x, position.z))
        if limit is None:
            return False
        return limit.min_y - 1 <= position.y <= limit.max_y + 1

    def _handle_updates(self, updates: List[_Update]) -> None:
        while updates:
            self.updates += 1
            update = updates.pop()
            position = update.position

            if not self._is_position_valid(position):
                self.skips += 1
                continue

            current_sun = self._sun.get(position, 0)
            current_block = self._block.get(position, 0)
            sun, block = current_sun, current_block

            if update.sun > current_sun:
                sun = update.sun
                self._sun[position] = sun
                self.commits += 1
            if update.block > current_block:
                block = update.block
                self._block[position] = block
                self.commits += 1

            placement = self._owner.block_at(position)
            if placement is not None and not self._owner.is_transparent(placement):
                continue

            sun_changed = sun != current_sun and sun > 0
            block_changed = block != current_block and block > 0
            if not (sun_changed or block_changed):
                continue

            for direction, (dx, dy, dz) in enumerate(_DIRECTIONS):
                if update.direction != _NO_SOURCE and direction == _OPPOSITE[update.direction]:
                    continue
                if direction == _DOWN and sun == SUN_LIGHT_MAX:
                    next_sun = SUN_LIGHT_MAX
                else:
                    next_sun = sun - 1
                updates.append(_Update(position.offset(dx, dy, dz), next_sun, block - 1, direction))

    def dump_info(self) -> None:
        if self.updates:
            logger.debug("Skipped %d out of %d light updates (%.4f%%)",
                         self.skips, self.updates, 100.0 * self.skips / self.updates)
