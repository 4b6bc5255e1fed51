import math
import random

import pygame
import pytest
from globe_projection import (
  COLOR_TRANSPARENT, ProjectedPoint, PygameSurface, TrailRenderer, equirectangular
)
from lorenz_system import Ensemble, GlobeConfig
from pygame.color import Color
from pygame.math import Vector3

CAMERA = Vector3(0, 0, 10)


@pytest.mark.parametrize(
  "p, longitude",
  [
    (Vector3(1, 0, 10), 0.0),
    (Vector3(0, 1, 10), math.pi / 2),
    (Vector3(0, -1, 10), -math.pi / 2),
    (Vector3(-1, 0, 10), math.pi),
    (Vector3(1, 1, 10), math.pi / 4),
  ],
)
def test_longitude(p, longitude):
  projected = equirectangular(p, CAMERA)
  assert projected.longitude == pytest.approx(longitude)
  assert projected.latitude == pytest.approx(0.0)


def test_latitude_and_depth():
  projected = equirectangular(Vector3(3, 0, 14), CAMERA)
  assert projected.latitude == pytest.approx(math.atan(4 / 3))
  assert projected.depth == pytest.approx(5.0)


def test_ranges_for_random_points():
  rng = random.Random(3)
  for _ in range(1000):
    p = Vector3(rng.uniform(-50, 50), rng.uniform(-50, 50), rng.uniform(-50, 50))
    projected = equirectangular(p, CAMERA)
    assert -math.pi <= projected.longitude <= math.pi
    assert -math.pi / 2 < projected.latitude < math.pi / 2
    assert projected.depth >= 0


@pytest.mark.parametrize(
  "p, latitude",
  [
    (Vector3(0, 0, 15), math.pi / 2),
    (Vector3(0, 0, 5), -math.pi / 2),
    (Vector3(0, 0, 10), 0.0),
  ],
)
def test_point_on_the_projection_axis(p, latitude):
  projected = equirectangular(p, CAMERA)
  assert projected.longitude == 0.0
  assert projected.latitude == pytest.approx(latitude)
  assert not any(math.isnan(v) for v in projected)


def test_stroke_weight_shrinks_with_distance():
  renderer = TrailRenderer(GlobeConfig(trail_half_width=0.5), 100)
  weights = [renderer.stroke_weight(d) for d in (0.01, 0.5, 1, 10, 100)]
  assert weights == sorted(weights, reverse=True)
  assert all(0 < w < math.pi for w in weights)
  assert renderer.stroke_weight(1.0) == pytest.approx(2 * math.atan(0.5))
  assert renderer.stroke_weight(0.0) == math.pi


def test_untouched_particle_draws_nothing(recording_surface):
  ensemble = Ensemble(GlobeConfig(orbit_num=1, orbit_len=16), random.Random(5))
  renderer = TrailRenderer(ensemble.config, 800)
  assert ensemble.draw(renderer, recording_surface) == 0
  assert recording_surface.segments == []


def test_single_segment(recording_surface):
  renderer = TrailRenderer(GlobeConfig(), 100)
  count = renderer.draw_projected(
    [ProjectedPoint(0.0, 0.0, 20.0), ProjectedPoint(0.5, 0.25, 20.0)], recording_surface
  )
  assert count == 1
  (segment,) = recording_surface.segments
  assert segment.start == (0.0, 0.0)
  assert segment.end == (0.5, 0.25)
  assert segment.weight == pytest.approx(renderer.stroke_weight(20.0))
  assert segment.color == Color(255, 0, 0, 255)


def test_seam_crossing_is_split(recording_surface):
  renderer = TrailRenderer(GlobeConfig(), 100)
  count = renderer.draw_projected(
    [ProjectedPoint(3.0, 0.1, 20.0), ProjectedPoint(-3.0, 0.2, 20.0)], recording_surface
  )
  assert count == 2
  first, second = recording_surface.segments
  assert first.start == (3.0, 0.1)
  assert first.end == pytest.approx((math.pi, 0.15))
  assert second.start == pytest.approx((-math.pi, 0.15))
  assert second.end == (-3.0, 0.2)
  for segment in recording_surface.segments:
    for x, _ in (segment.start, segment.end):
      assert abs(x) <= math.pi


def test_close_points_are_merged(recording_surface):
  renderer = TrailRenderer(GlobeConfig(), 100)
  eps = renderer.epsilon
  assert eps == pytest.approx(math.pi / 100)
  points = [
    ProjectedPoint(0.0, 0.0, 20.0),
    ProjectedPoint(0.6 * eps, 0.0, 20.0),
    ProjectedPoint(1.2 * eps, 0.0, 20.0),
    ProjectedPoint(1.2 * eps, 0.0, 20.0),
  ]
  assert renderer.draw_projected(points, recording_surface) == 1
  (segment,) = recording_surface.segments
  assert segment.start == (0.0, 0.0)
  assert segment.end == (1.2 * eps, 0.0)


def test_points_near_the_camera_are_transparent(recording_surface):
  config = GlobeConfig(depth_threshold=0.5, trail_half_width=0.1)
  renderer = TrailRenderer(config, 100)
  count = renderer.draw_projected(
    [ProjectedPoint(0.0, 0.0, 2.0), ProjectedPoint(1.0, 0.0, 0.1)], recording_surface
  )
  assert count == 1
  (segment,) = recording_surface.segments
  assert segment.color.a == 0
  assert segment.color == COLOR_TRANSPARENT
  assert segment.weight == pytest.approx(2 * math.atan(0.1 / 0.1))


def test_segment_leaving_a_near_point_is_transparent(recording_surface):
  renderer = TrailRenderer(GlobeConfig(depth_threshold=0.5), 100)
  count = renderer.draw_projected(
    [ProjectedPoint(0.0, 0.0, 0.1), ProjectedPoint(1.0, 0.0, 20.0)], recording_surface
  )
  assert count == 1
  (segment,) = recording_surface.segments
  assert segment.color.a == 0
  assert segment.weight == pytest.approx(renderer.stroke_weight(20.0))


def test_drawing_is_idempotent(recording_surface):
  config = GlobeConfig(orbit_num=10, orbit_len=30, delta_t=0.01)
  ensemble = Ensemble(config, random.Random(11))
  for _ in range(60):
    ensemble.advance()
  renderer = TrailRenderer(config, 100)

  first = ensemble.draw(renderer, recording_surface)
  first_segments = list(recording_surface.segments)
  recording_surface.segments.clear()
  second = ensemble.draw(renderer, recording_surface)

  assert first > 0
  assert first == second
  assert recording_surface.segments == first_segments
  for segment in first_segments:
    for x, y in (segment.start, segment.end):
      assert abs(x) <= math.pi
      assert abs(y) <= math.pi / 2


def test_renderer_rejects_empty_viewport():
  with pytest.raises(ValueError):
    TrailRenderer(GlobeConfig(), 0)


def test_pygame_surface_mapping():
  surface = PygameSurface(pygame.Surface((200, 100)), 100 / math.pi)
  assert surface.to_pixels((0.0, 0.0)) == (100, 50)
  assert surface.to_pixels((math.pi, math.pi / 2)) == pytest.approx((200, 0))
  assert surface.to_pixels((-math.pi, -math.pi / 2)) == pytest.approx((0, 100))


def test_pygame_surface_draws_visible_lines_only():
  target = pygame.Surface((200, 100))
  target.fill((0, 0, 0))
  surface = PygameSurface(target, 100 / math.pi)

  surface.line((-0.5, 0.0), (0.5, 0.0), 0.1, COLOR_TRANSPARENT)
  assert target.get_at((100, 50)) == Color(0, 0, 0, 255)

  surface.line((-0.5, 0.0), (0.5, 0.0), 0.1, Color(255, 0, 0, 255))
  assert target.get_at((100, 50)) == Color(255, 0, 0, 255)
  assert target.get_at((100, 10)) == Color(0, 0, 0, 255)
