# watermeter/reporting/dial.py
"""
Meter dial rendering.

Draws the register window the way a mechanical meter shows it:
  - four black wheels with whole cubic metres
  - two red wheels with hundreds and tens of litres
plus a pressure caption under the window.

Uses the matplotlib Figure API with the Agg canvas (no pyplot state), so
rendering from a worker thread is safe.
"""

from __future__ import annotations

from typing import Tuple

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.patches import Circle, FancyBboxPatch

from watermeter.core.types import Reading


_WHEEL_SPACING = 0.095
_BLACK_X0 = 0.215
_WINDOW_Y = 0.56


def odometer_digits(volume_m3: float) -> Tuple[str, int, int]:
    """
    Split a volume into the register wheels.

    Returns (whole m3 as 4 digits, hundreds-of-litres digit, tens-of-litres digit).
    """
    whole = int(volume_m3)
    hundreds_l = int((volume_m3 * 10) % 10)
    tens_l = int((volume_m3 * 100) % 10)
    return f"{whole:04d}", hundreds_l, tens_l


class DialRenderer:

    def __init__(self, title: str = "Water Meter", figsize: Tuple[float, float] = (6.0, 6.0), dpi: int = 100):
        self.title = title
        self.figsize = figsize
        self.dpi = dpi

    def render(self, reading: Reading) -> Figure:
        fig = Figure(figsize=self.figsize, dpi=self.dpi, facecolor="white")
        FigureCanvasAgg(fig)
        ax = fig.add_axes([0.0, 0.0, 1.0, 1.0])
        ax.set_xlim(0.0, 1.0)
        ax.set_ylim(0.0, 1.0)
        ax.set_aspect("equal")
        ax.axis("off")

        ax.add_patch(Circle((0.5, 0.5), 0.47, facecolor="#dfe3e6", edgecolor="#2b2b2b", linewidth=5))
        ax.text(0.5, 0.80, self.title, ha="center", va="center", fontsize=16, color="#2b2b2b")
        ax.text(0.5, 0.72, "m³", ha="center", va="center", fontsize=14, color="#2b2b2b")

        ax.add_patch(
            FancyBboxPatch(
                (0.16, _WINDOW_Y - 0.06),
                0.68,
                0.12,
                boxstyle="round,pad=0.01",
                facecolor="white",
                edgecolor="black",
                linewidth=2,
            )
        )

        whole, hundreds_l, tens_l = odometer_digits(reading.volume_m3)
        for i, digit in enumerate(whole):
            ax.text(
                _BLACK_X0 + i * _WHEEL_SPACING,
                _WINDOW_Y,
                digit,
                ha="center",
                va="center",
                fontsize=30,
                family="monospace",
                weight="bold",
                color="black",
            )

        red_x0 = _BLACK_X0 + len(whole) * _WHEEL_SPACING + 0.02
        for i, digit in enumerate((hundreds_l, tens_l)):
            ax.text(
                red_x0 + i * _WHEEL_SPACING,
                _WINDOW_Y,
                str(digit),
                ha="center",
                va="center",
                fontsize=30,
                family="monospace",
                weight="bold",
                color="red",
            )

        ax.text(0.5, 0.32, f"{reading.pressure_bar:.2f} bar", ha="center", va="center", fontsize=14, color="#2b2b2b")
        return fig
