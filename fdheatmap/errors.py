"""Error types raised by the fractal-dimension pipeline.

All of them are terminal for the current image: nothing here is retried.
"""


class FractalError(Exception):
    """Base class for every failure raised by fdheatmap."""


class MalformedInput(FractalError, ValueError):
    """Pixel buffer does not describe a rectangular, non-empty grid."""


class InsufficientSamples(FractalError, ValueError):
    """Fewer than two box sizes are available for the log-log fit."""


class PaletteGap(FractalError, ValueError):
    """A field value is not covered by any palette entry."""

    def __init__(self, value: float, lo: float, hi: float):
        self.value = value
        self.lo = lo
        self.hi = hi
        super().__init__(f"value {value!r} is outside palette range [{lo}, {hi}]")


class CodecFailure(FractalError, OSError):
    """The image decode/encode collaborator failed."""
