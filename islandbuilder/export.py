"""GLB scene export and JSON placement manifests."""

import json
import math
import logging

import numpy as np
import trimesh

from .constants import EXPORT_COLORS, DEFAULT_PROXY_COLOR
from .models import GenerationResult, PathManager

logger = logging.getLogger(__name__)

# Proxy silhouettes per category, in instance-local units (Y-up).
# Each entry is a stack of (y_bot, y_top, r_bot, r_top, nsides) prisms.
_PROXY_SHAPES = {
    'trees': [
        (0.0, 1.2, 0.15, 0.12, 6),      # trunk
        (1.0, 3.2, 0.90, 0.05, 8),      # canopy cone
    ],
    'rocks': [
        (0.0, 0.45, 0.55, 0.30, 5),
    ],
}
_DEFAULT_PROXY = [
    (0.0, 0.35, 0.08, 0.02, 4),
]


def _make_tapered_prism(cx, cz, y_bot, y_top, r_bot, r_top,
                        nsides=8, rotation=0.0):
    """Create a tapered prism (frustum) with *nsides* sides.

    Returns (verts, faces) in Y-up [x, y, z] format.
    """
    verts = []
    faces = []

    # Bottom ring then top ring: 2*nsides vertices
    for r, y in ((r_bot, y_bot), (r_top, y_top)):
        for i in range(nsides):
            angle = 2.0 * math.pi * i / nsides + rotation
            verts.append([cx + r * math.cos(angle), y, cz + r * math.sin(angle)])

    # Side quads (two triangles each)
    for i in range(nsides):
        j = (i + 1) % nsides
        b0, b1 = i, j
        t0, t1 = nsides + i, nsides + j
        faces.append([b0, t1, b1])
        faces.append([b0, t0, t1])

    # Bottom cap (fan from centre)
    cbot = len(verts)
    verts.append([cx, y_bot, cz])
    for i in range(nsides):
        faces.append([cbot, i, (i + 1) % nsides])

    # Top cap (fan from centre)
    ctop = len(verts)
    verts.append([cx, y_top, cz])
    for i in range(nsides):
        faces.append([ctop, nsides + (i + 1) % nsides, nsides + i])

    return verts, faces


def _add_prism_to_group(group, verts, faces):
    """Append prism geometry into a mesh *group* dict."""
    off = group['offset']
    for f in faces:
        group['faces'].append([f[0] + off, f[1] + off, f[2] + off])
    group['verts'].extend(verts)
    group['offset'] += len(verts)


def _proxy_groups(instances):
    """One verts/faces group per category, each instance at its matrix."""
    groups: dict[str, dict] = {}
    for inst in instances:
        group = groups.setdefault(inst.category,
                                  {'verts': [], 'faces': [], 'offset': 0})
        matrix = inst.matrix()
        for y_bot, y_top, r_bot, r_top, nsides in _PROXY_SHAPES.get(
                inst.category, _DEFAULT_PROXY):
            v, f = _make_tapered_prism(0.0, 0.0, y_bot, y_top, r_bot, r_top,
                                       nsides=nsides)
            v = trimesh.transformations.transform_points(v, matrix).tolist()
            _add_prism_to_group(group, v, f)
    return groups


def _material(name):
    return trimesh.visual.material.PBRMaterial(
        baseColorFactor=EXPORT_COLORS.get(name, DEFAULT_PROXY_COLOR),
        doubleSided=True,
        name=name,
    )


def build_scene(result: GenerationResult, with_proxies=True) -> trimesh.Scene:
    """Assemble the island (cap + walls) and instance proxies into a Scene."""
    scene = trimesh.Scene()
    mesh = result.mesh
    island_transform = (result.probe.transform if result.probe is not None
                        else np.eye(4))

    for name, faces in (('cap', mesh.cap_faces), ('walls', mesh.wall_faces)):
        tm = trimesh.Trimesh(vertices=mesh.vertices, faces=faces,
                             vertex_normals=mesh.normals, process=False)
        tm.visual = trimesh.visual.TextureVisuals(uv=mesh.uvs,
                                                  material=_material(name))
        scene.add_geometry(tm, geom_name=name, transform=island_transform)

    if with_proxies:
        for category, group in _proxy_groups(result.instances).items():
            tm = trimesh.Trimesh(vertices=np.array(group['verts']),
                                 faces=np.array(group['faces']),
                                 process=False)
            tm.visual = trimesh.visual.TextureVisuals(
                material=_material(category))
            scene.add_geometry(tm, geom_name=category)

    return scene


def generate_glb(result: GenerationResult, output_path: str,
                 with_proxies=True) -> str:
    """Write the generated island to a binary glTF file.

    Relative paths resolve under the output directory.  Returns the
    absolute path written.
    """
    output_path = PathManager.get_output_path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    scene = build_scene(result, with_proxies=with_proxies)
    scene.export(str(output_path), file_type='glb')

    logger.info(f"GLB file generated successfully: {output_path} "
                f"({len(result.instances)} instances)")
    return str(output_path)


def manifest_dict(result: GenerationResult) -> dict:
    polygon = result.polygon
    return {
        'params': result.params.to_dict(),
        'seed': result.seed,
        'mesh': {
            'vertices': int(len(result.mesh.vertices)),
            'cap_faces': int(len(result.mesh.cap_faces)),
            'wall_faces': int(len(result.mesh.wall_faces)),
        },
        'top_polygon': None if polygon is None else {
            'points': int(len(polygon)),
            'area': polygon.area,
            'centroid': [float(v) for v in polygon.centroid],
        },
        'using_fallback': result.using_fallback,
        'reports': [r.to_dict() for r in result.reports],
        'instances': [inst.to_dict() for inst in result.instances],
    }


def write_manifest(result: GenerationResult, output_path: str) -> str:
    """Write placements and per-category reports as JSON."""
    output_path = PathManager.get_output_path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(manifest_dict(result), f, indent=2)
    logger.info(f"Manifest written: {output_path}")
    return str(output_path)
