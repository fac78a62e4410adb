import asyncio
import logging

from fastapi import APIRouter, HTTPException

from islandbuilder.builder import IslandBuilder
from islandbuilder.catalog import DEFAULT_CATALOG
from islandbuilder.export import generate_glb, write_manifest
from backend.models import (
    GenerateRequest, GenerateResponse, ProbeRequest, ProbeResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generate"])


def _output_name(request: GenerateRequest) -> str:
    """Filename-safe stem derived from both seeds."""
    return f"island-{request.shape.seed}-{request.seed}"


def _sync_generate(request: GenerateRequest) -> GenerateResponse:
    """Run one full generation (and optional export) in a worker thread."""
    placements = None
    if request.placements is not None:
        placements = [p.to_spec() for p in request.placements]

    builder = IslandBuilder(edge_margin=request.edge_margin,
                            max_slope=request.max_slope,
                            y_offset=request.y_offset)
    result = builder.generate(request.shape.to_params(), placements,
                              request.seed)

    model_url = manifest_url = None
    if request.export:
        stem = _output_name(request)
        generate_glb(result, f"{stem}.glb")
        write_manifest(result, f"{stem}.json")
        model_url = f"/output/{stem}.glb"
        manifest_url = f"/output/{stem}.json"

    return GenerateResponse(
        params=result.params.to_dict(),
        seed=result.seed,
        using_fallback=result.using_fallback,
        top_area=result.polygon.area if result.polygon is not None else None,
        vertices=len(result.mesh.vertices),
        reports=[r.to_dict() for r in result.reports],
        instances=[inst.to_dict() for inst in result.instances],
        model_url=model_url,
        manifest_url=manifest_url,
    )


@router.get("/catalog")
async def get_catalog():
    """Return the built-in placement catalog."""
    return {"placements": DEFAULT_CATALOG}


@router.post("/generate", response_model=GenerateResponse)
async def generate_island(request: GenerateRequest):
    """Generate an island and its scattered decoration.

    Generation is synchronous CPU work, so it runs in a worker thread to
    keep the event loop free.  Identical requests give identical results.
    """
    try:
        return await asyncio.to_thread(_sync_generate, request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/probe", response_model=ProbeResponse)
def probe_surface(request: ProbeRequest):
    """Query island surface membership and slope below a point."""
    builder = IslandBuilder(max_slope=request.max_slope)
    surface = builder.make_probe(builder.build_mesh(request.shape.to_params()))
    hit = surface.probe(request.point)
    if hit is None:
        return ProbeResponse(hit=False)

    point, normal = hit
    slope = surface.slope_degrees(normal)
    return ProbeResponse(
        hit=True,
        point=[float(v) for v in point],
        normal=[float(v) for v in normal],
        slope=slope,
        accepted=slope <= request.max_slope,
    )
