#!/usr/bin/env python3

import argparse
import math
import multiprocessing
import os
import random
import sys
from multiprocessing.pool import Pool
from typing import List, Optional

os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

import pygame.font
import pygame.surface
from globe_projection import PygameSurface, TrailRenderer
from lorenz_system import Ensemble, GlobeConfig
from pygame.color import Color
from visualization_core import Visualization

FPS = 60
INTRO_FRAMES = FPS * 5
INTRO_TEXT = "<<< Drag or Swipe >>>"
INTRO_FONT_SIZE = 50
TICKS_PER_MINUTE = FPS * 60
DEFAULT_MINUTES = 5.0

COLOR_BACKGROUND = Color(0x000000ff)
COLOR_TEXT = Color(0xffffffff)


class LorenzGlobe(Visualization):

  def __init__(
    self,
    config: GlobeConfig,
    window_h: int = 800,
    seed: Optional[int] = None,
    workers: int = 0,
  ) -> None:
    super().__init__()
    self.config = config
    self.window_opts.caption = os.path.basename(__file__)
    # the map spans 2pi radians horizontally and pi vertically
    self.window_opts.w = window_h * 2
    self.window_opts.h = window_h
    self.background_color = COLOR_BACKGROUND
    self.fixed_delta_time = 1.0 / FPS
    self.target_fps = FPS

    self.seed = seed
    self.workers = workers
    self.pool: Optional[Pool] = None
    self.minutes = 0
    # simulation ticks after which the app exits, None runs until the window is closed
    self.max_ticks: Optional[int] = None

    self.ensemble: Ensemble
    self.renderer: TrailRenderer
    self.draw_surface: PygameSurface
    self.intro_text: Optional[pygame.surface.Surface] = None

  def prestart(self) -> None:
    self.ensemble = Ensemble(self.config, random.Random(self.seed))
    self.renderer = TrailRenderer(self.config, self.window_h)
    self.draw_surface = PygameSurface(self.window_surface, self.window_h / math.pi)

    if self.workers > 0:
      self.pool = multiprocessing.Pool(self.workers)

    font = pygame.font.Font(None, INTRO_FONT_SIZE)
    self.intro_text = font.render(INTRO_TEXT, True, COLOR_TEXT)

  def fixed_update(self) -> None:
    if self.max_ticks is not None and self.ensemble.tick_count >= self.max_ticks:
      self.is_running = False
      return
    # rotation is recomputed inside advance(), before the next render() reads it
    self.ensemble.advance(self.pool)
    if self.max_ticks is not None and self.ensemble.tick_count >= self.max_ticks:
      self.is_running = False

  def update(self) -> None:
    minutes = self.ensemble.tick_count // TICKS_PER_MINUTE
    if self.minutes < minutes:
      self.minutes = minutes
      print("{}, ".format(minutes), end="", flush=True)

  def render(self) -> None:
    self.draw_surface.surface = self.window_surface
    self.ensemble.draw(self.renderer, self.draw_surface)

    if self.intro_text is not None and self.frame_count < INTRO_FRAMES:
      text_rect = self.intro_text.get_rect(center=(self.window_w / 2, self.window_h / 2))
      self.window_surface.blit(self.intro_text, text_rect)

  def shutdown(self) -> None:
    if self.pool is not None:
      self.pool.close()
      self.pool.join()
      self.pool = None
    if self.minutes > 0:
      print()
    if self.snapshot_dir is not None:
      print("{} frames saved to {}".format(self.frame_count, self.snapshot_dir))


def parse_args(argv: List[str]) -> argparse.Namespace:
  parser = argparse.ArgumentParser(
    prog=os.path.basename(argv[0]) if argv else None,
    description="Lorenz attractor trajectories on a rotating equirectangular globe.",
  )
  defaults = GlobeConfig()
  parser.add_argument("--height", type=int, default=800, help="window height in pixels")
  parser.add_argument("--particles", type=int, default=defaults.orbit_num)
  parser.add_argument("--orbit-len", type=int, default=defaults.orbit_len)
  parser.add_argument(
    "--minutes",
    type=float,
    default=DEFAULT_MINUTES,
    help="exit after this much simulated time ({} ticks per second), 0 runs until closed".format(
      FPS
    ),
  )
  parser.add_argument(
    "--snapshots", metavar="DIR", default=None, help="save every frame as DIR/<frame>.png"
  )
  parser.add_argument("--seed", type=int, default=None)
  parser.add_argument(
    "--workers", type=int, default=0, help="advance particles in a process pool of this size"
  )
  return parser.parse_args(argv[1:])


def main(argv: List[str]) -> int:
  args = parse_args(argv)
  if args.height <= 0:
    print("--height must be positive", file=sys.stderr)
    return 2

  try:
    config = GlobeConfig(orbit_num=args.particles, orbit_len=args.orbit_len).validate()
  except ValueError as e:
    print(e, file=sys.stderr)
    return 2

  if args.minutes < 0:
    print("--minutes must not be negative", file=sys.stderr)
    return 2

  app = LorenzGlobe(config, window_h=args.height, seed=args.seed, workers=args.workers)
  if args.minutes > 0:
    app.max_ticks = max(1, int(args.minutes * TICKS_PER_MINUTE))
  if args.snapshots is not None:
    app.snapshot_dir = args.snapshots
    app.lockstep = True
    app.window_opts.visible = False
  return app.main(argv)


def _console_main() -> None:
  sys.exit(main(sys.argv))


if __name__ == "__main__":
  sys.exit(main(sys.argv))
