import math
from typing import List, NamedTuple, Protocol, Sequence, Tuple

import pygame.draw
import pygame.surface
from lorenz_system import GlobeConfig, Particle
from pygame.color import Color
from pygame.math import Vector3
from visualization_core import Matrix4

__all__ = [
  "ProjectedPoint",
  "equirectangular",
  "DrawSurface",
  "PygameSurface",
  "TrailRenderer",
  "COLOR_TRANSPARENT",
]

Point2 = Tuple[float, float]

COLOR_TRANSPARENT = Color(0, 0, 0, 0)


class ProjectedPoint(NamedTuple):
  longitude: float
  latitude: float
  depth: float


# <https://en.wikipedia.org/wiki/Equirectangular_projection>
def equirectangular(p: Vector3, camera: Vector3) -> ProjectedPoint:
  dx = p.x - camera.x
  dy = p.y - camera.y
  dz = p.z - camera.z
  dist_xy = math.hypot(dx, dy)

  if dist_xy == 0.0:
    # straight above or below the camera, any longitude is as good as another
    longitude = 0.0
  else:
    cos_longitude = min(1.0, max(-1.0, dx / dist_xy))
    longitude = math.copysign(math.acos(cos_longitude), dy)
  latitude = math.atan2(dz, dist_xy)
  depth = math.sqrt(dx * dx + dy * dy + dz * dz)

  return ProjectedPoint(longitude, latitude, depth)


class DrawSurface(Protocol):
  scale: float

  def line(self, start: Point2, end: Point2, weight: float, color: Color) -> None:
    ...


class PygameSurface:
  """
  Rasterizes projected segments onto a pygame surface. The projection origin is
  the center of the surface, one radian is `scale` pixels and latitude grows
  upwards.
  """

  def __init__(self, surface: pygame.surface.Surface, scale: float) -> None:
    self.surface = surface
    self.scale = scale

  def to_pixels(self, p: Point2) -> Point2:
    w, h = self.surface.get_size()
    return (w / 2 + p[0] * self.scale, h / 2 - p[1] * self.scale)

  def line(self, start: Point2, end: Point2, weight: float, color: Color) -> None:
    if color.a == 0:
      return
    start_px = self.to_pixels(start)
    end_px = self.to_pixels(end)
    width = max(1, round(weight * self.scale))
    pygame.draw.line(self.surface, color, start_px, end_px, width)
    if width > 2:
      # round joins
      pygame.draw.circle(self.surface, color, start_px, width / 2)
      pygame.draw.circle(self.surface, color, end_px, width / 2)


class TrailRenderer:

  def __init__(self, config: GlobeConfig, viewport_h: int) -> None:
    if viewport_h <= 0:
      raise ValueError("viewport_h must be positive: {}".format(viewport_h))
    self.config = config
    # roughly one pixel on a viewport which spans pi radians vertically
    self.epsilon = math.pi / viewport_h
    self.color = Color(*config.trail_color)

  def stroke_weight(self, depth: float) -> float:
    # angular size of the trail cross-section seen from the camera
    if depth <= 0.0:
      return math.pi
    return 2.0 * math.atan(self.config.trail_half_width / depth)

  def project_orbit(
    self, orbit: Sequence[Vector3], view_matrix: Matrix4, camera: Vector3
  ) -> List[ProjectedPoint]:
    tmp = Vector3()
    projected = []
    for state in orbit:
      view_matrix.transform_vec3(state, tmp)
      projected.append(equirectangular(tmp, camera))
    return projected

  def draw(
    self, particle: Particle, view_matrix: Matrix4, camera: Vector3, surface: DrawSurface
  ) -> int:
    return self.draw_projected(self.project_orbit(particle.orbit, view_matrix, camera), surface)

  def draw_projected(self, points: Sequence[ProjectedPoint], surface: DrawSurface) -> int:
    """Emits the trail through `points` (oldest first), returns the segment count."""
    if not points:
      return 0

    segments = 0
    pre = points[0]
    for cur in points[1:]:
      if math.hypot(cur.longitude - pre.longitude, cur.latitude - pre.latitude) < self.epsilon:
        continue

      weight = self.stroke_weight(cur.depth)
      if min(pre.depth, cur.depth) < self.config.depth_threshold:
        color = COLOR_TRANSPARENT
      else:
        color = self.color

      if abs(pre.longitude - cur.longitude) > math.pi:
        # crosses the +-pi seam, finish each half at its own edge of the map
        seam_latitude = (pre.latitude + cur.latitude) / 2
        surface.line(
          (pre.longitude, pre.latitude),
          (math.copysign(math.pi, pre.longitude), seam_latitude),
          weight,
          color,
        )
        surface.line(
          (math.copysign(math.pi, cur.longitude), seam_latitude),
          (cur.longitude, cur.latitude),
          weight,
          color,
        )
        segments += 2
      else:
        surface.line((pre.longitude, pre.latitude), (cur.longitude, cur.latitude), weight, color)
        segments += 1

      pre = cur

    return segments
