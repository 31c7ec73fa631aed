"""Single configuration structure for the pipeline, validated on construction."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from .boxcount import box_sizes

THRESHOLD_METHODS = ("fixed", "otsu")
OCCUPANCY_RULES = ("any", "all")
PALETTES = ("discrete", "gradient")
ENGINES = ("integral", "direct")
RESPONSE_DATA = ("field", "grayscale")
FOREGROUND_VALUES = (1, 255)


def _choice(name: str, value: str, allowed) -> None:
    if value not in allowed:
        raise ValueError(f"{name} must be one of {', '.join(map(repr, allowed))}; got {value!r}.")


@dataclass(frozen=True)
class FractalConfig:
    """Tunables for one run of the local fractal-dimension pipeline."""

    size: int = 1024
    neighborhood_size: int = 32
    scaling_factor: int = 2
    min_box: int = 2
    threshold: str = "fixed"
    fixed_thresh: int = 113
    foreground: int = 1
    occupancy: str = "any"
    palette: str = "discrete"
    palette_min: float = 0.0
    palette_max: float = 2.0
    engine: str = "integral"
    workers: int = 1
    response_data: str = "field"
    global_max_box: int = 64

    def __post_init__(self):
        _choice("threshold", self.threshold, THRESHOLD_METHODS)
        _choice("occupancy", self.occupancy, OCCUPANCY_RULES)
        _choice("palette", self.palette, PALETTES)
        _choice("engine", self.engine, ENGINES)
        _choice("response_data", self.response_data, RESPONSE_DATA)
        if self.foreground not in FOREGROUND_VALUES:
            raise ValueError(f"foreground must be 1 or 255; got {self.foreground!r}.")
        if self.size < 1:
            raise ValueError("size must be >= 1.")
        if self.min_box < 1:
            raise ValueError("min_box must be >= 1.")
        if self.scaling_factor < 2:
            raise ValueError("scaling_factor must be an integer >= 2.")
        if self.workers < 1:
            raise ValueError("workers must be >= 1.")
        if not self.palette_max > self.palette_min:
            raise ValueError("palette_max must be greater than palette_min.")
        # surfaces InsufficientSamples before any pixel is touched
        box_sizes(self.neighborhood_size, self.min_box, self.scaling_factor)

    @property
    def sizes(self):
        return box_sizes(self.neighborhood_size, self.min_box, self.scaling_factor)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
