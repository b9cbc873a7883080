"""
Job Configuration

Holds the option enums, the two parameter sets a job is configured with,
and the numeric constants shared by the stages.

Parameter values may be given as enum members or as their string ids
(e.g. "bvh-ray", "average", "lab"), which is how they arrive from the CLI.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Type, TypeVar

from .errors import AppError

# Intersection
EPSILON = 1e-7

# Imported meshes are normalized to this height before voxelization
MESH_DESIRED_HEIGHT = 8.0

MAX_TRIANGLES_PER_NODE = 8
MULTISAMPLE_COUNT = 16
ALPHA_BIAS = 1.0
THICKNESS_OFFSET = 0.5

# Colour values are on a 0-255 scale when dithered
DITHER_MAGNITUDE = 32

SUN_LIGHT_MAX = 15
BLOCK_LIGHT_MAX = 14


class VoxelizerKind(Enum):
    """Mesh-to-voxel strategies."""
    RAY_BASED = "ray-based"
    BVH_RAY = "bvh-ray"
    BVH_RAY_PLUS_THICKNESS = "bvh-ray-plus-thickness"
    NCRB = "ncrb"


class TextureFiltering(Enum):
    NEAREST = "nearest"
    LINEAR = "linear"


class OverlapRule(Enum):
    """What happens when two surface hits land on the same voxel."""
    FIRST = "first"
    AVERAGE = "average"


class ColorSpace(Enum):
    RGB = "rgb"
    LAB = "lab"


class AssignerKind(Enum):
    """Colour preparation strategies used before block matching."""
    BASIC = "basic"
    ORDERED_DITHERING = "ordered-dithering"
    RANDOM_DITHERING = "random-dithering"


class FallableBehaviour(Enum):
    """Policy for gravity-affected blocks."""
    REPLACE_FALLING = "replace-falling"
    REPLACE_FALLABLE = "replace-fallable"
    PLACE_STRING = "place-string"
    DO_NOTHING = "do-nothing"


E = TypeVar("E", bound=Enum)


def coerce_enum(enum_cls: Type[E], value, field_name: str) -> E:
    """
    Convert a string id to its enum member.

    Raises:
        AppError: If the value is not a valid id for the enum
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise AppError(
            f"Invalid {field_name}: {value!r} (expected one of: {choices})"
        ) from None


@dataclass
class VoxelizeParams:
    """
    Parameters for the voxelization stage.

    Attributes:
        voxelizer: Which voxelizer to run
        desired_height: Height of the output in voxels
        use_multisample_coloring: Average 16 jittered samples per hit
        texture_filtering: Nearest or bilinear texture lookups
        voxel_overlap_rule: Overlap policy of the voxel volume
        calculate_neighbours: Enable neighbour mask tracking
        thickness_offset: Displacement used by the thickness voxelizer
        seed: Seed for multisample jitter
    """

    voxelizer: VoxelizerKind = VoxelizerKind.BVH_RAY
    desired_height: int = 80
    use_multisample_coloring: bool = False
    texture_filtering: TextureFiltering = TextureFiltering.LINEAR
    voxel_overlap_rule: OverlapRule = OverlapRule.AVERAGE
    calculate_neighbours: bool = True
    thickness_offset: float = THICKNESS_OFFSET
    seed: Optional[int] = None

    def __post_init__(self):
        self.voxelizer = coerce_enum(VoxelizerKind, self.voxelizer, "voxelizer")
        self.texture_filtering = coerce_enum(
            TextureFiltering, self.texture_filtering, "texture filtering"
        )
        self.voxel_overlap_rule = coerce_enum(
            OverlapRule, self.voxel_overlap_rule, "voxel overlap rule"
        )
        if int(self.desired_height) < 1:
            raise AppError(f"Desired height must be at least 1, got {self.desired_height}")
        self.desired_height = int(self.desired_height)


@dataclass
class AssignParams:
    """
    Parameters for block assignment and lighting.

    Attributes:
        texture_atlas: Atlas name, resolved to <name>.atlas
        block_palette: Palette name, resolved to <name>.palette
        block_assigner: Colour preparation strategy
        color_space: Space in which colour distances are measured
        fallable: Policy for unsupported gravity-affected blocks
        resolution: Number of colour bins per channel (1-255)
        calculate_lighting: Run light propagation after assignment
        light_threshold: Minimum light level for darkness backfill (0 disables)
        contextual_averaging: Match against visible faces only
        seed: Seed for random dithering
    """

    texture_atlas: str = "vanilla"
    block_palette: str = "all"
    block_assigner: AssignerKind = AssignerKind.BASIC
    color_space: ColorSpace = ColorSpace.RGB
    fallable: FallableBehaviour = FallableBehaviour.REPLACE_FALLING
    resolution: int = 32
    calculate_lighting: bool = False
    light_threshold: int = 0
    contextual_averaging: bool = False
    seed: Optional[int] = None

    def __post_init__(self):
        self.block_assigner = coerce_enum(AssignerKind, self.block_assigner, "block assigner")
        self.color_space = coerce_enum(ColorSpace, self.color_space, "colour space")
        self.fallable = coerce_enum(FallableBehaviour, self.fallable, "fallable behaviour")
        if not 1 <= int(self.resolution) <= 255:
            raise AppError(f"Resolution must be between 1 and 255, got {self.resolution}")
        if not 0 <= int(self.light_threshold) <= SUN_LIGHT_MAX:
            raise AppError(
                f"Light threshold must be between 0 and {SUN_LIGHT_MAX}, got {self.light_threshold}"
            )
        self.resolution = int(self.resolution)
        self.light_threshold = int(self.light_threshold)
