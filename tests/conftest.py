import os

os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

from typing import List, NamedTuple, Tuple

import pytest
from lorenz_system import GlobeConfig
from pygame.color import Color


class Segment(NamedTuple):
  start: Tuple[float, float]
  end: Tuple[float, float]
  weight: float
  color: Color


class RecordingSurface:

  def __init__(self, scale: float = 1.0) -> None:
    self.scale = scale
    self.segments: List[Segment] = []

  def line(
    self, start: Tuple[float, float], end: Tuple[float, float], weight: float, color: Color
  ) -> None:
    self.segments.append(Segment(start, end, weight, color))


@pytest.fixture
def recording_surface() -> RecordingSurface:
  return RecordingSurface()


@pytest.fixture
def small_config() -> GlobeConfig:
  return GlobeConfig(orbit_num=4, orbit_len=8)
