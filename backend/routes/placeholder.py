from fastapi import APIRouter, Response

from config.constants import MAX_PLACEHOLDER_DIMENSION, PLACEHOLDER_CACHE_SECONDS
from utils.errors import ValidationError

router = APIRouter(prefix="/api/placeholder", tags=["Public"])

SVG_TEMPLATE = """<svg width="{w}" height="{h}" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <linearGradient id="grad" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:#E5E7EB;stop-opacity:1" />
      <stop offset="100%" style="stop-color:#F3F4F6;stop-opacity:1" />
    </linearGradient>
  </defs>
  <rect width="100%" height="100%" fill="url(#grad)"/>
  <circle cx="{cx}" cy="{cy}" r="{r}" fill="#D1D5DB" opacity="0.7"/>
  <text x="{cx}" y="{ty}" font-family="Inter, sans-serif" font-size="14" fill="#9CA3AF" text-anchor="middle" font-weight="500">{w} × {h}</text>
</svg>
"""


def parse_dimensions(width: str, height: str) -> tuple:
    try:
        w, h = int(width), int(height)
    except ValueError:
        raise ValidationError("Invalid dimensions")

    if not (0 < w <= MAX_PLACEHOLDER_DIMENSION and 0 < h <= MAX_PLACEHOLDER_DIMENSION):
        raise ValidationError("Invalid dimensions")
    return w, h


def render_placeholder(w: int, h: int) -> str:
    return SVG_TEMPLATE.format(
        w=w,
        h=h,
        cx=w / 2,
        cy=h / 2,
        ty=h / 2 + 8,
        r=min(w, h) * 0.15,
    )


@router.get("/{width}/{height}")
async def placeholder(width: str, height: str):
    w, h = parse_dimensions(width, height)
    return Response(
        content=render_placeholder(w, h),
        media_type="image/svg+xml",
        headers={"Cache-Control": f"public, max-age={PLACEHOLDER_CACHE_SECONDS}"},
    )
