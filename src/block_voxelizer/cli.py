"""
Command-Line Interface for Block Voxelizer

Usage:
    blockvox model.npz --resources res/
    blockvox model.npz --resources res/ --height 64 --voxelizer ray-based
    blockvox model.npz --resources res/ --palette colourful --lighting --light-threshold 4

Mesh files are numpy .npz archives with the arrays:
    vertices (N, 3), faces (T, 3) or (T, 9) as [v0 v1 v2 uv0 uv1 uv2 n0 n1 n2],
    optional uvs (M, 2), normals (K, 3), and either color (3|4,) or texture (path)
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config import (
    AssignerKind,
    AssignParams,
    ColorSpace,
    FallableBehaviour,
    OverlapRule,
    TextureFiltering,
    VoxelizeParams,
    VoxelizerKind,
)
from .color import RGBA
from .errors import AppError, JobError
from .mesh import Mesh, SolidMaterial, TexturedMaterial, Triangle
from .pipeline import VoxelPipeline
from .texture import Texture

MATERIAL_NAME = "default"


def _choices(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="blockvox",
        description="Block Voxelizer - Convert triangle meshes into block structures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  blockvox model.npz --resources res/
      Voxelize at the default height with the 'vanilla' atlas and 'all' palette

  blockvox model.npz --resources res/ --height 120 --voxelizer bvh-ray-plus-thickness
      Taller output with one voxel of extra thickness behind every surface

  blockvox model.npz --resources res/ --assigner ordered-dithering --color-space lab
      Perceptual colour matching with ordered dithering

Voxelizers:
  ray-based              - Per-triangle rays (sparse meshes)
  bvh-ray                - Bounding-box rays against a BVH (default)
  bvh-ray-plus-thickness - bvh-ray with extra depth voxels
  ncrb                   - Normal-corrected per-triangle rays
        """
    )

    parser.add_argument("input", help="Input mesh (.npz)")

    parser.add_argument(
        "-r", "--resources",
        help="Directory with .atlas/.palette files and block lists"
    )

    # Voxelization settings
    parser.add_argument(
        "--voxelizer",
        choices=_choices(VoxelizerKind),
        default=VoxelizerKind.BVH_RAY.value,
        help="Voxelization algorithm (default: bvh-ray)"
    )
    parser.add_argument(
        "--height",
        type=int,
        default=80,
        help="Output height in voxels (default: 80)"
    )
    parser.add_argument(
        "--multisample",
        action="store_true",
        help="Average 16 texture samples per voxel"
    )
    parser.add_argument(
        "--filtering",
        choices=_choices(TextureFiltering),
        default=TextureFiltering.LINEAR.value,
        help="Texture filtering (default: linear)"
    )
    parser.add_argument(
        "--overlap",
        choices=_choices(OverlapRule),
        default=OverlapRule.AVERAGE.value,
        help="Voxel overlap rule (default: average)"
    )
    parser.add_argument(
        "--no-neighbours",
        action="store_true",
        help="Disable neighbour tracking"
    )
    parser.add_argument(
        "--thickness-offset",
        type=float,
        default=0.5,
        help="Depth offset for bvh-ray-plus-thickness (default: 0.5)"
    )

    # Assignment settings
    parser.add_argument("--atlas", default="vanilla", help="Texture atlas name (default: vanilla)")
    parser.add_argument("--palette", default="all", help="Block palette name (default: all)")
    parser.add_argument(
        "--assigner",
        choices=_choices(AssignerKind),
        default=AssignerKind.BASIC.value,
        help="Block assigner (default: basic)"
    )
    parser.add_argument(
        "--color-space",
        choices=_choices(ColorSpace),
        default=ColorSpace.RGB.value,
        help="Colour space for matching (default: rgb)"
    )
    parser.add_argument(
        "--fallable",
        choices=_choices(FallableBehaviour),
        default=FallableBehaviour.REPLACE_FALLING.value,
        help="Fallable block behaviour (default: replace-falling)"
    )
    parser.add_argument(
        "--resolution",
        type=int,
        default=32,
        help="Colour bins per channel, 1-255 (default: 32)"
    )
    parser.add_argument(
        "--contextual-averaging",
        action="store_true",
        help="Match blocks by the colour of their visible faces"
    )
    parser.add_argument("--lighting", action="store_true", help="Calculate light levels")
    parser.add_argument(
        "--light-threshold",
        type=int,
        default=0,
        help="Place light blocks where light is below this level (default: 0, off)"
    )
    parser.add_argument("--seed", type=int, help="Random seed for multisampling and dithering")

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with statistics"
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print job statistics"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 1.0.0"
    )

    return parser


def load_mesh(path: Path) -> Mesh:
    """
    Load a mesh from an .npz archive.

    Raises:
        AppError: If required arrays are missing or malformed
    """
    with np.load(path, allow_pickle=False) as data:
        if "vertices" not in data or "faces" not in data:
            raise AppError(f"{path.name} must contain 'vertices' and 'faces' arrays")

        faces = np.asarray(data["faces"])
        if faces.ndim != 2 or faces.shape[1] not in (3, 9):
            raise AppError(f"'faces' must have shape (T, 3) or (T, 9), got {faces.shape}")

        triangles = []
        for face in faces.astype(np.int64):
            if len(face) == 9:
                triangles.append(Triangle(tuple(face[0:3]), tuple(face[3:6]), tuple(face[6:9]), MATERIAL_NAME))
            else:
                triangles.append(Triangle(tuple(face), tuple(face), tuple(face), MATERIAL_NAME))

        if "texture" in data:
            texture_path = Path(str(data["texture"]))
            if not texture_path.is_absolute():
                texture_path = path.parent / texture_path
            material = TexturedMaterial(Texture.from_file(texture_path))
        elif "color" in data:
            material = SolidMaterial(RGBA.from_sequence(np.asarray(data["color"], dtype=np.float64)))
        else:
            material = SolidMaterial(RGBA(1.0, 1.0, 1.0, 1.0))

        return Mesh(
            vertices=data["vertices"],
            triangles=triangles,
            materials={MATERIAL_NAME: material},
            uvs=data["uvs"] if "uvs" in data else None,
            normals=data["normals"] if "normals" in data else None,
        )


def process(args) -> int:
    """Run one job from parsed arguments."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    start_time = time.time()

    def report(task: str, fraction: float) -> None:
        if args.verbose and fraction in (0.0, 1.0):
            print(f"{task}: {'started' if fraction == 0.0 else 'done'}")

    try:
        voxelize_params = VoxelizeParams(
            voxelizer=args.voxelizer,
            desired_height=args.height,
            use_multisample_coloring=args.multisample,
            texture_filtering=args.filtering,
            voxel_overlap_rule=args.overlap,
            calculate_neighbours=not args.no_neighbours,
            thickness_offset=args.thickness_offset,
            seed=args.seed,
        )
        assign_params = AssignParams(
            texture_atlas=args.atlas,
            block_palette=args.palette,
            block_assigner=args.assigner,
            color_space=args.color_space,
            fallable=args.fallable,
            resolution=args.resolution,
            calculate_lighting=args.lighting,
            light_threshold=args.light_threshold,
            contextual_averaging=args.contextual_averaging,
            seed=args.seed,
        )

        if args.verbose:
            print(f"Loading: {input_path}")
        mesh = load_mesh(input_path)

        pipeline = VoxelPipeline(resource_dir=args.resources, progress=report)
        pipeline.run(mesh, voxelize_params, assign_params)

        stats = pipeline.get_stats()
        for warning in stats["warnings"]:
            print(f"Warning: {warning}", file=sys.stderr)

        if args.stats or args.verbose:
            x, y, z = stats["dimensions"]
            print("\nJob Statistics:")
            print(f"  Voxels: {stats['voxel_count']}")
            print(f"  Dimensions: {x} x {y} x {z}")
            print(f"  Blocks: {stats['block_count']}")
            print(f"  Block types: {len(stats['blocks_used'])}")
            if "light_updates" in stats:
                print(f"  Light updates: {stats['light_updates']} ({stats['light_skips']} skipped)")

        pipeline.release()

        elapsed = time.time() - start_time
        if args.verbose:
            print(f"\nCompleted in {elapsed:.2f}s")

        return 0

    except (AppError, JobError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return process(args)


if __name__ == "__main__":
    sys.exit(main())
