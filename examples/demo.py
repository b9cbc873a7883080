#!/usr/bin/env python3
"""
Block Voxelizer Demo Script

This script demonstrates the full pipeline by:
1. Building synthetic test meshes (no model files needed)
2. Voxelizing them with every voxelizer
3. Assigning blocks from a small built-in palette and lighting the result
4. Printing statistics and timing comparisons

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import numpy as np
import time

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from block_voxelizer import AssignParams, VoxelPipeline, VoxelizeParams
from block_voxelizer.color import RGBA
from block_voxelizer.config import VoxelizerKind
from block_voxelizer.mesh import Mesh, SolidMaterial, TexturedMaterial, Triangle
from block_voxelizer.palette import Atlas, Palette
from block_voxelizer.texture import Texture

DEMO_BLOCKS = {
    "minecraft:stone": (0.49, 0.49, 0.49),
    "minecraft:white_concrete": (0.81, 0.84, 0.84),
    "minecraft:black_concrete": (0.03, 0.04, 0.06),
    "minecraft:red_concrete": (0.56, 0.13, 0.13),
    "minecraft:orange_concrete": (0.88, 0.38, 0.0),
    "minecraft:yellow_concrete": (0.95, 0.69, 0.08),
    "minecraft:lime_concrete": (0.37, 0.66, 0.09),
    "minecraft:green_concrete": (0.29, 0.36, 0.14),
    "minecraft:light_blue_concrete": (0.14, 0.54, 0.78),
    "minecraft:blue_concrete": (0.18, 0.18, 0.56),
    "minecraft:sand": (0.86, 0.81, 0.63),
    "minecraft:sandstone": (0.85, 0.80, 0.60),
    "minecraft:glass": (0.66, 0.80, 0.82),
    "minecraft:glowstone": (0.67, 0.52, 0.33),
}


def create_test_mesh_sphere(rings: int = 16, segments: int = 24) -> Mesh:
    """
    Create a UV sphere normalized to a height of 8 units.

    Returns:
        Mesh with a single light-blue solid material
    """
    vertices = []
    for i in range(rings + 1):
        theta = np.pi * i / rings
        for j in range(segments):
            phi = 2 * np.pi * j / segments
            vertices.append([
                4.0 * np.sin(theta) * np.cos(phi),
                4.0 * np.cos(theta),
                4.0 * np.sin(theta) * np.sin(phi),
            ])

    triangles = []
    for i in range(rings):
        for j in range(segments):
            a = i * segments + j
            b = i * segments + (j + 1) % segments
            c = a + segments
            d = b + segments
            triangles.append(Triangle((a, c, b), material="paint"))
            triangles.append(Triangle((b, c, d), material="paint"))

    return Mesh(np.array(vertices), triangles, {"paint": SolidMaterial(RGBA(0.2, 0.55, 0.8))})


def create_test_mesh_checkerboard(size: int = 8) -> Mesh:
    """
    Create a tilted square textured with a checkerboard.

    Returns:
        Mesh with one textured material
    """
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    for y in range(size):
        for x in range(size):
            pixels[y, x] = [230, 230, 230, 255] if (x + y) % 2 == 0 else [20, 20, 30, 255]

    vertices = np.array([
        [-4.0, -4.0, -1.0],
        [4.0, -4.0, -1.0],
        [4.0, 4.0, 1.0],
        [-4.0, 4.0, 1.0],
    ])
    uvs = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    triangles = [
        Triangle((0, 1, 2), (0, 1, 2), (0, 0, 0), "checker"),
        Triangle((0, 2, 3), (0, 2, 3), (0, 0, 0), "checker"),
    ]
    return Mesh(vertices, triangles, {"checker": TexturedMaterial(Texture(pixels))}, uvs=uvs)


def create_test_mesh_tower() -> Mesh:
    """
    Create a sand pillar topped by a wider stone slab.

    Returns:
        Mesh with two solid materials
    """
    def box(lo, hi, material, offset):
        (x0, y0, z0), (x1, y1, z1) = lo, hi
        corners = [[x, y, z] for x in (x0, x1) for y in (y0, y1) for z in (z0, z1)]
        faces = [(0, 3, 2), (0, 1, 3), (4, 7, 5), (4, 6, 7), (0, 5, 1), (0, 4, 5),
                 (2, 7, 6), (2, 3, 7), (0, 6, 4), (0, 2, 6), (1, 7, 3), (1, 5, 7)]
        return corners, [Triangle(tuple(offset + i for i in f), material=material) for f in faces]

    pillar_vertices, pillar = box((-1.0, -4.0, -1.0), (1.0, 2.0, 1.0), "sand", 0)
    slab_vertices, slab = box((-3.0, 2.0, -3.0), (3.0, 4.0, 3.0), "stone", 8)
    materials = {
        "sand": SolidMaterial(RGBA(0.86, 0.81, 0.63)),
        "stone": SolidMaterial(RGBA(0.49, 0.49, 0.49)),
    }
    return Mesh(np.array(pillar_vertices + slab_vertices), pillar + slab, materials)


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("Block Voxelizer - Demo")
    print("=" * 60)
    print()

    atlas = Atlas.from_colors(DEMO_BLOCKS)
    palette = Palette(DEMO_BLOCKS.keys())

    test_meshes = [
        ("sphere", create_test_mesh_sphere()),
        ("checkerboard", create_test_mesh_checkerboard()),
        ("tower", create_test_mesh_tower()),
    ]

    total_start = time.time()

    for name, mesh in test_meshes:
        print(f"\n--- Processing: {name} ---")
        print(f"Input: {mesh.vertex_count} vertices, {mesh.triangle_count} triangles")

        pipeline = VoxelPipeline()
        pipeline.load_mesh(mesh)

        # Test every voxelizer
        print("\nTesting voxelizers:")

        for kind in VoxelizerKind:
            vox_start = time.time()
            pipeline.voxelize(VoxelizeParams(voxelizer=kind, desired_height=32))
            vox_time = time.time() - vox_start

            print(f"  {kind.value}:")
            print(f"    Voxelization: {vox_time*1000:.1f}ms")
            print(f"    Voxel count: {pipeline.voxel_count}")

        # Assign and light with the default voxelizer
        pipeline.voxelize(VoxelizeParams(desired_height=32))

        assign_start = time.time()
        pipeline.assign(
            AssignParams(block_assigner="ordered-dithering", calculate_lighting=True, light_threshold=3),
            atlas=atlas,
            palette=palette,
        )
        assign_time = time.time() - assign_start

        stats = pipeline.get_stats()
        print(f"\n  Blocks:")
        print(f"    Assignment + lighting: {assign_time*1000:.1f}ms")
        print(f"    Block count: {stats['block_count']}")
        print(f"    Block types: {', '.join(stats['blocks_used'])}")
        print(f"    Light updates: {stats['light_updates']} ({stats['light_skips']} skipped)")
        for warning in stats["warnings"]:
            print(f"    Warning: {warning}")

        pipeline.release()

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print("=" * 60)

    return 0


def benchmark_voxelizers():
    """Compare per-triangle rays against BVH rays on a dense mesh."""
    print("\n--- Voxelizer Benchmark ---\n")

    mesh = create_test_mesh_sphere(rings=64, segments=96)
    heights = [32, 64, 128]

    for height in heights:
        print(f"Height: {height}")
        for kind in (VoxelizerKind.RAY_BASED, VoxelizerKind.BVH_RAY):
            pipeline = VoxelPipeline().load_mesh(mesh)
            start = time.time()
            pipeline.voxelize(VoxelizeParams(voxelizer=kind, desired_height=height))
            elapsed = time.time() - start
            print(f"  {kind.value:>10}: {elapsed*1000:.1f}ms, {pipeline.voxel_count} voxels")
            pipeline.release()
        print()


if __name__ == "__main__":
    run_demo()

    # Uncomment to run benchmark
    # benchmark_voxelizers()
