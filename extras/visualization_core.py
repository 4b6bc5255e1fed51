import math
import os
from abc import ABCMeta
from typing import List, Optional

import pygame.constants
import pygame.display
import pygame.event
import pygame.image
import pygame.surface
import pygame.time
from pygame import init as pygame_init
from pygame import quit as pygame_quit
from pygame.color import Color
from pygame.math import Vector3

__all__ = ["Visualization", "WindowOptions", "Matrix4"]


class Visualization(metaclass=ABCMeta):

  def __init__(self) -> None:
    self.window_opts = WindowOptions()
    self.window_surface: pygame.surface.Surface
    self.window_w = 0
    self.window_h = 0
    self.is_running = True

    self.primary_clock: pygame.time.Clock
    self.target_fps = 60
    self.time = 0.0
    self.delta_time = 0.0
    self.fixed_time = 0.0
    self.fixed_delta_time = 1.0 / 120.0
    self.fixed_update_time_accumulator = 0.0
    self.frame_count = 0

    # one fixed update per frame, no throttling; used for frame export
    self.lockstep = False
    self.snapshot_dir: Optional[str] = None

    self.background_color = Color(0x101010ff)

  def main(self, argv: List[str]) -> int:
    try:
      pygame_init()

      flags = self.window_opts.flags
      if not self.window_opts.visible:
        flags |= pygame.constants.HIDDEN
      self.window_surface = pygame.display.set_mode(
        (self.window_opts.w, self.window_opts.h),
        flags,
        vsync=int(self.window_opts.vsync and self.window_opts.visible),
      )
      pygame.display.set_caption(self.window_opts.caption)
      self.window_w, self.window_h = self.window_surface.get_size()

      if self.snapshot_dir is not None:
        os.makedirs(self.snapshot_dir, exist_ok=True)

      self.primary_clock = pygame.time.Clock()

      self.prestart()

      while self.is_running:
        if self.lockstep:
          self.delta_time = self.fixed_delta_time
          self.time += self.delta_time
          self.fixed_time += self.fixed_delta_time
          self.fixed_update()
        else:
          self.delta_time = self.primary_clock.tick(self.target_fps) / 1000.0
          self.time += self.delta_time

          self.fixed_update_time_accumulator += self.delta_time
          while self.fixed_update_time_accumulator >= self.fixed_delta_time:
            self.fixed_time += self.fixed_delta_time
            self.fixed_update()
            self.fixed_update_time_accumulator -= self.fixed_delta_time

        self._process_events()
        self.update()

        self.window_surface.fill(self.background_color)  # type: ignore
        self.render()
        self.frame_count += 1

        if self.snapshot_dir is not None:
          self.save_frame()

        pygame.display.flip()

    finally:
      self.shutdown()

      pygame_quit()

    return 0

  def save_frame(self) -> str:
    if self.snapshot_dir is None:
      raise RuntimeError("snapshot_dir is not set")
    path = os.path.join(self.snapshot_dir, "{}.png".format(self.frame_count))
    pygame.image.save(self.window_surface, path)
    return path

  def _process_events(self) -> None:
    for event in pygame.event.get():
      if event.type == pygame.constants.QUIT or (
        event.type == pygame.constants.KEYDOWN and event.key == pygame.constants.K_q
      ):
        self.is_running = False
      elif event.type == pygame.constants.VIDEORESIZE:
        self.window_w, self.window_h = self.window_surface.get_size()

  def prestart(self) -> None:
    pass

  def fixed_update(self) -> None:
    pass

  def update(self) -> None:
    pass

  def render(self) -> None:
    pass

  def shutdown(self) -> None:
    pass


class WindowOptions:

  def __init__(
    self,
    w: int = 800,
    h: int = 800,
    flags: int = 0,
    vsync: bool = True,
    visible: bool = True,
    caption: str = os.path.basename(__file__),
  ) -> None:
    self.w = w
    self.h = h
    self.flags = flags
    self.vsync = vsync
    self.visible = visible
    self.caption = caption


class Matrix4:
  """
  Column-major affine matrix: `xx, xy, xz, xw` is the image of the X axis,
  `wx, wy, wz` is the translation.

  <https://github.com/dmitmel/openkrosskod/blob/f9b329afd47e4da9185cac7a779a51d73635a1a5/crates/cardboard_math/src/matrices.rs>
  """

  xx: float
  xy: float
  xz: float
  xw: float

  yx: float
  yy: float
  yz: float
  yw: float

  zx: float
  zy: float
  zz: float
  zw: float

  wx: float
  wy: float
  wz: float
  ww: float

  def __init__(
    self,
    xx: float, xy: float, xz: float, xw: float,
    yx: float, yy: float, yz: float, yw: float,
    zx: float, zy: float, zz: float, zw: float,
    wx: float, wy: float, wz: float, ww: float,
  ) -> None:  # yapf: disable
    self.update(xx, xy, xz, xw, yx, yy, yz, yw, zx, zy, zz, zw, wx, wy, wz, ww)

  def update(
    self,
    xx: float, xy: float, xz: float, xw: float,
    yx: float, yy: float, yz: float, yw: float,
    zx: float, zy: float, zz: float, zw: float,
    wx: float, wy: float, wz: float, ww: float,
  ) -> None:  # yapf: disable

    self.xx = xx
    self.xy = xy
    self.xz = xz
    self.xw = xw

    self.yx = yx
    self.yy = yy
    self.yz = yz
    self.yw = yw

    self.zx = zx
    self.zy = zy
    self.zz = zz
    self.zw = zw

    self.wx = wx
    self.wy = wy
    self.wz = wz
    self.ww = ww

  def copy_from(self, other: "Matrix4") -> None:
    self.update(
      other.xx, other.xy, other.xz, other.xw,
      other.yx, other.yy, other.yz, other.yw,
      other.zx, other.zy, other.zz, other.zw,
      other.wx, other.wy, other.wz, other.ww,
    )  # yapf: disable

  @staticmethod
  def identity() -> "Matrix4":
    return Matrix4(
      1, 0, 0, 0,
      0, 1, 0, 0,
      0, 0, 1, 0,
      0, 0, 0, 1,
    )  # yapf: disable

  @staticmethod
  def translation(v: Vector3) -> "Matrix4":
    return Matrix4(
      1  , 0  , 0  , 0,
      0  , 1  , 0  , 0,
      0  , 0  , 1  , 0,
      v.x, v.y, v.z, 1,
    )  # yapf: disable

  @staticmethod
  def rotation_x(angle: float) -> "Matrix4":
    c, s = math.cos(angle), math.sin(angle)
    return Matrix4(
      1,  0, 0, 0,
      0,  c, s, 0,
      0, -s, c, 0,
      0,  0, 0, 1,
    )  # yapf: disable

  @staticmethod
  def rotation_y(angle: float) -> "Matrix4":
    c, s = math.cos(angle), math.sin(angle)
    return Matrix4(
      c, 0, -s, 0,
      0, 1,  0, 0,
      s, 0,  c, 0,
      0, 0,  0, 1,
    )  # yapf: disable

  @staticmethod
  def rotation_z(angle: float) -> "Matrix4":
    c, s = math.cos(angle), math.sin(angle)
    return Matrix4(
       c, s, 0, 0,
      -s, c, 0, 0,
       0, 0, 1, 0,
       0, 0, 0, 1,
    )  # yapf: disable

  @staticmethod
  def from_euler_angles(roll: float, pitch: float, yaw: float) -> "Matrix4":
    # Rz(yaw) * Ry(pitch) * Rx(roll), i.e. roll is applied to the vector first
    # <https://docs.rs/nalgebra/latest/nalgebra/geometry/type.Rotation3.html#method.from_euler_angles>
    zy = Matrix4.identity()
    Matrix4.rotation_z(yaw).mul_mat4(Matrix4.rotation_y(pitch), zy)
    out = Matrix4.identity()
    zy.mul_mat4(Matrix4.rotation_x(roll), out)
    return out

  def transform_vec3(self, rhs: Vector3, out: Vector3) -> None:
    x, y, z = rhs.x, rhs.y, rhs.z
    out.x = self.xx * x + self.yx * y + self.zx * z + self.wx
    out.y = self.xy * x + self.yy * y + self.zy * z + self.wy
    out.z = self.xz * x + self.yz * y + self.zz * z + self.wz

  def mul_mat4(self, rhs: "Matrix4", out: "Matrix4") -> None:
    out.update(
      self.xx * rhs.xx + self.yx * rhs.xy + self.zx * rhs.xz + self.wx * rhs.xw,
      self.xy * rhs.xx + self.yy * rhs.xy + self.zy * rhs.xz + self.wy * rhs.xw,
      self.xz * rhs.xx + self.yz * rhs.xy + self.zz * rhs.xz + self.wz * rhs.xw,
      self.xw * rhs.xx + self.yw * rhs.xy + self.zw * rhs.xz + self.ww * rhs.xw,

      self.xx * rhs.yx + self.yx * rhs.yy + self.zx * rhs.yz + self.wx * rhs.yw,
      self.xy * rhs.yx + self.yy * rhs.yy + self.zy * rhs.yz + self.wy * rhs.yw,
      self.xz * rhs.yx + self.yz * rhs.yy + self.zz * rhs.yz + self.wz * rhs.yw,
      self.xw * rhs.yx + self.yw * rhs.yy + self.zw * rhs.yz + self.ww * rhs.yw,

      self.xx * rhs.zx + self.yx * rhs.zy + self.zx * rhs.zz + self.wx * rhs.zw,
      self.xy * rhs.zx + self.yy * rhs.zy + self.zy * rhs.zz + self.wy * rhs.zw,
      self.xz * rhs.zx + self.yz * rhs.zy + self.zz * rhs.zz + self.wz * rhs.zw,
      self.xw * rhs.zx + self.yw * rhs.zy + self.zw * rhs.zz + self.ww * rhs.zw,

      self.xx * rhs.wx + self.yx * rhs.wy + self.zx * rhs.wz + self.wx * rhs.ww,
      self.xy * rhs.wx + self.yy * rhs.wy + self.zy * rhs.wz + self.wy * rhs.ww,
      self.xz * rhs.wx + self.yz * rhs.wy + self.zz * rhs.wz + self.wz * rhs.ww,
      self.xw * rhs.wx + self.yw * rhs.wy + self.zw * rhs.wz + self.ww * rhs.ww,
    )  # yapf: disable
