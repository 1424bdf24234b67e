"""Chart images for extracted visualizations (matplotlib, optional).

Each :class:`~supermind.datatypes.VisualizationSpec` is drawn to a PNG so
binary reports can carry the charts the answer described.  Charts are a
nice-to-have: one that fails to render is skipped with a warning and never
fails the report.
"""

from __future__ import annotations

import io
import logging

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from supermind.datatypes import ChartKind, VisualizationSpec  # noqa: E402

logger = logging.getLogger(__name__)

# Same palette the chat front end uses.
COLORS = ["#8884d8", "#82ca9d", "#ffc658", "#ff7300", "#0088fe"]


def spec_to_frame(spec: VisualizationSpec) -> pd.DataFrame:
    """One row per category, one float column per series (NaN for gaps)."""
    frame = pd.DataFrame(
        {s.name: pd.to_numeric(pd.Series(s.values, dtype="object"), errors="coerce")
         for s in spec.series},
    )
    frame.index = pd.Index(spec.categories[: len(frame)], name="name")
    return frame.astype(float)


def _plot_radar(fig: plt.Figure, frame: pd.DataFrame) -> None:
    ax = fig.add_subplot(111, projection="polar")
    n = len(frame.index)
    angles = np.linspace(0, 2 * np.pi, n, endpoint=False).tolist()
    angles += angles[:1]
    for i, column in enumerate(frame.columns):
        values = frame[column].fillna(0).tolist()
        values += values[:1]
        color = COLORS[i % len(COLORS)]
        ax.plot(angles, values, color=color, linewidth=2, label=column)
        ax.fill(angles, values, color=color, alpha=0.25)
    ax.set_xticks(angles[:-1])
    ax.set_xticklabels(frame.index.tolist())
    ax.legend(loc="upper right", fontsize=8)


def render_chart_png(spec: VisualizationSpec, dpi: int = 100) -> bytes:
    """Draw one chart and return PNG bytes.

    Raises ``ValueError`` when the spec has nothing to plot.
    """
    frame = spec_to_frame(spec)
    if frame.empty or frame.columns.empty:
        raise ValueError(f"chart '{spec.title}' has no numeric series")

    fig = plt.figure(figsize=(8, 4.5))
    try:
        palette = COLORS[: max(1, len(frame.columns))]
        kind = spec.chart_kind
        if kind is ChartKind.RADAR:
            _plot_radar(fig, frame)
        elif kind is ChartKind.PIE:
            ax = fig.add_subplot(111)
            column = frame.columns[0]
            values = frame[column].fillna(0).clip(lower=0)
            ax.pie(
                values,
                labels=frame.index.tolist(),
                colors=[COLORS[i % len(COLORS)] for i in range(len(values))],
                autopct="%1.0f%%",
            )
            ax.axis("equal")
        else:
            ax = fig.add_subplot(111)
            if kind is ChartKind.LINE:
                frame.plot(ax=ax, kind="line", marker="o", color=palette)
            elif kind is ChartKind.AREA:
                frame.fillna(0).plot(ax=ax, kind="area", stacked=True, color=palette, alpha=0.7)
            else:
                frame.plot(ax=ax, kind="bar", color=palette)
            ax.grid(True, linestyle="--", alpha=0.5)
            ax.legend(fontsize=8)
        fig.suptitle(spec.title)
        fig.tight_layout()

        buf = io.BytesIO()
        fig.savefig(buf, format="png", dpi=dpi)
        return buf.getvalue()
    finally:
        plt.close(fig)


def render_charts(specs: list[VisualizationSpec] | None) -> list[bytes]:
    """Render every spec; specs that fail to draw are skipped."""
    images: list[bytes] = []
    for spec in specs or []:
        try:
            images.append(render_chart_png(spec))
        except Exception as exc:
            logger.warning("Failed to render chart '%s': %s", spec.title, exc)
    return images
