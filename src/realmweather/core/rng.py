from dataclasses import dataclass
import hashlib

import numpy as np


def stream_seed(region_id: str, index: int, stream: str) -> int:
  # Stable across processes and platforms, unlike hash()
  key = f"{region_id}:{index}:{stream}".encode("utf-8")
  return int.from_bytes(hashlib.sha256(key).digest()[:8], "big")


@dataclass
class RNG:
  seed: int

  def __post_init__(self):
    self.np = np.random.default_rng(self.seed)

  @classmethod
  def for_key(cls, region_id: str, index: int, stream: str) -> "RNG":
    return cls(stream_seed(region_id, index, stream))

  def random(self) -> float:
    return float(self.np.random())

  def uniform(self, low, high, size=None):
    if size is None:
      return float(self.np.uniform(low, high))
    return self.np.uniform(low, high, size)

  def choice(self, items, p=None):
    idx = int(self.np.choice(len(items), p=p))
    return items[idx]

  def bounded_normal(self, mean: float, sd: float, limit: float) -> float:
    # Normal draw clipped to mean +/- limit
    return float(np.clip(self.np.normal(mean, sd), mean - limit, mean + limit))
