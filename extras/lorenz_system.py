import random
from multiprocessing.pool import Pool
from typing import TYPE_CHECKING, List, NamedTuple, Optional, Sequence, Tuple

from pygame.math import Vector3
from visualization_core import Matrix4

if TYPE_CHECKING:
  from globe_projection import DrawSurface, TrailRenderer

__all__ = [
  "GlobeConfig",
  "lorenz_derivative",
  "lorenz_step",
  "Particle",
  "Ensemble",
]

MP_CHUNK_SIZE = 100


class GlobeConfig(NamedTuple):
  orbit_num: int = 1000
  orbit_len: int = 600
  delta_t: float = 0.001

  # the canonical chaotic regime
  sigma: float = 10.0
  beta: float = 8.0 / 3.0
  rho: float = 28.0

  delta_theta: float = 0.0003
  # roll, pitch and yaw rates as multiples of theta
  rotation_rates: Tuple[float, float, float] = (1.0, 7.9, 1.3)

  camera: Tuple[float, float, float] = (0.0, 0.0, 10.0)
  center: Tuple[float, float, float] = (0.0, 0.0, 20.0)

  spawn_xy: Tuple[float, float] = (-30.0, 30.0)
  spawn_z: Tuple[float, float] = (0.0, 60.0)
  prefill_orbit: bool = True

  depth_threshold: float = 0.5
  trail_half_width: float = 0.1
  trail_color: Tuple[int, int, int, int] = (255, 0, 0, 255)

  def validate(self) -> "GlobeConfig":
    if self.orbit_num < 0:
      raise ValueError("orbit_num must not be negative: {}".format(self.orbit_num))
    if self.orbit_len < 1:
      raise ValueError("orbit_len must be at least 1: {}".format(self.orbit_len))
    if self.delta_t <= 0:
      raise ValueError("delta_t must be positive: {}".format(self.delta_t))
    return self


# <https://en.wikipedia.org/wiki/Lorenz_system>
def lorenz_derivative(p: Vector3, config: GlobeConfig) -> Vector3:
  x, y, z = p.x, p.y, p.z
  return Vector3(
    config.sigma * (y - x),
    x * (config.rho - z) - y,
    x * y - config.beta * z,
  )


def lorenz_step(p: Vector3, config: GlobeConfig) -> Vector3:
  """One explicit Euler step of size `config.delta_t`. Does not modify `p`."""
  return p + lorenz_derivative(p, config) * config.delta_t


class Particle:
  """
  A single trajectory together with the most recent `orbit_len` states it
  visited. The history is a ring buffer: `_orbit_offset` points at the oldest
  retained state and new states overwrite it once the buffer is full.
  """

  def __init__(self, initial: Vector3, config: GlobeConfig) -> None:
    self.config = config
    self.last = Vector3(initial)

    self._orbit: List[Vector3] = [Vector3(initial) for _ in range(config.orbit_len)]
    self._orbit_offset = 0
    self._orbit_usage = config.orbit_len if config.prefill_orbit else 1

  @staticmethod
  def spawn(config: GlobeConfig, rng: random.Random) -> "Particle":
    min_xy, max_xy = config.spawn_xy
    min_z, max_z = config.spawn_z
    return Particle(
      Vector3(
        rng.uniform(min_xy, max_xy),
        rng.uniform(min_xy, max_xy),
        rng.uniform(min_z, max_z),
      ),
      config,
    )

  def __len__(self) -> int:
    return self._orbit_usage

  @property
  def orbit(self) -> List[Vector3]:
    """Retained states, oldest first."""
    capacity = len(self._orbit)
    return [
      self._orbit[(self._orbit_offset + i) % capacity] for i in range(self._orbit_usage)
    ]

  def advance(self) -> None:
    self.push(lorenz_step(self.last, self.config))

  def push(self, state: Vector3) -> None:
    capacity = len(self._orbit)
    if self._orbit_usage < capacity:
      self._orbit[(self._orbit_offset + self._orbit_usage) % capacity].update(state)
      self._orbit_usage += 1
    else:
      self._orbit[self._orbit_offset].update(state)
      self._orbit_offset = (self._orbit_offset + 1) % capacity
    self.last.update(state)


def _mp_step_chunk(
  task: Tuple[GlobeConfig, Sequence[Tuple[float, float, float]]]
) -> List[Tuple[float, float, float]]:
  config, states = task
  result = []
  for state in states:
    p = lorenz_step(Vector3(state), config)
    result.append((p.x, p.y, p.z))
  return result


class Ensemble:

  def __init__(self, config: GlobeConfig, rng: Optional[random.Random] = None) -> None:
    self.config = config.validate()
    if rng is None:
      rng = random.Random()

    self.particles: List[Particle] = [
      Particle.spawn(config, rng) for _ in range(config.orbit_num)
    ]

    self.camera = Vector3(config.camera)
    self.center = Vector3(config.center)
    self.theta = 0.0
    self.tick_count = 0

    self.rotation = Matrix4.identity()
    self.view_matrix = Matrix4.identity()
    self._recenter_matrix = Matrix4.translation(-self.center)
    self.update_rotation_matrix()

  def update_rotation_matrix(self) -> None:
    roll_rate, pitch_rate, yaw_rate = self.config.rotation_rates
    self.rotation.copy_from(
      Matrix4.from_euler_angles(
        self.theta * roll_rate,
        self.theta * pitch_rate,
        self.theta * yaw_rate,
      )
    )
    self.rotation.mul_mat4(self._recenter_matrix, self.view_matrix)

  def advance(self, pool: Optional[Pool] = None) -> None:
    if pool is None:
      for particle in self.particles:
        particle.advance()
    else:
      self._advance_parallel(pool)

    self.tick_count += 1
    self.theta += self.config.delta_theta
    self.update_rotation_matrix()

  def _advance_parallel(self, pool: Pool) -> None:
    tasks = []
    for start in range(0, len(self.particles), MP_CHUNK_SIZE):
      chunk = self.particles[start:start + MP_CHUNK_SIZE]
      tasks.append((self.config, [(p.last.x, p.last.y, p.last.z) for p in chunk]))

    particle_idx = 0
    for chunk_result in pool.map(_mp_step_chunk, tasks):
      for state in chunk_result:
        self.particles[particle_idx].push(Vector3(state))
        particle_idx += 1

  def draw(self, renderer: "TrailRenderer", surface: "DrawSurface") -> int:
    segments = 0
    for particle in self.particles:
      segments += renderer.draw(particle, self.view_matrix, self.camera, surface)
    return segments
