"""
Trend charts with Plotly.

Each metric of a job becomes one line over the recorded runs. The chart is
always written as interactive HTML; a static PNG is attempted as well and
needs the optional ``kaleido`` package.
"""

import logging
from pathlib import Path
from typing import List, Optional

import plotly.graph_objects as go
import polars as pl

logger = logging.getLogger(__name__)


def create_trend_figure(trend: pl.DataFrame, job: str, metrics: Optional[List[str]] = None) -> go.Figure:
    """
    Build the figure for a job's trend table.

    Args:
        trend: Long-form trend table (run_id, timestamp, commit, metric, value)
        job: Job name, used in the title
        metrics: Metrics to plot, all of them when None

    Returns:
        A configured Plotly Figure
    """
    names = metrics or trend.get_column("metric").unique(maintain_order=True).to_list()
    fig = go.Figure()
    for name in names:
        rows = trend.filter(pl.col("metric") == name)
        if rows.is_empty():
            continue
        fig.add_trace(
            go.Scatter(
                x=rows.get_column("timestamp").to_list(),
                y=rows.get_column("value").to_list(),
                name=name,
                mode="lines+markers",
                text=rows.get_column("commit").to_list(),
                hovertemplate="%{x}<br>%{y}<br>commit %{text}<extra>" + name + "</extra>",
            )
        )

    fig.update_layout(
        title_text=f"Trend for '{job}'",
        xaxis=dict(title_text="Run", type="category", tickfont=dict(size=10)),
        yaxis=dict(title_text="Value"),
        legend=dict(x=0.01, y=0.98, bordercolor="Black", borderwidth=1),
        hovermode="x unified",
    )
    return fig


def _save_plotly_figure(fig: go.Figure, base_filename: str, output_dir: Path) -> Optional[Path]:
    """Save a figure as HTML and, if possible, PNG. Returns the HTML path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    html_path = output_dir / f"{base_filename}.html"
    try:
        fig.write_html(html_path)
        logger.info(f"Interactive plot saved to: {html_path}")
    except Exception as e:
        logger.error(f"Failed to save plot {html_path} using Plotly: {e}", exc_info=True)
        return None

    try:
        png_path = output_dir / f"{base_filename}.png"
        fig.write_image(png_path, width=1200, height=600)
        logger.info(f"Static plot saved to: {png_path}")
    except Exception:
        logger.warning(
            "Failed to save static plot to PNG. To enable this feature, "
            "install the optional 'export' dependencies: `pip install ciwatch[export]`"
        )
    return html_path


def render_trend_chart(
    trend: pl.DataFrame,
    job: str,
    output_dir: Path,
    metrics: Optional[List[str]] = None,
) -> Optional[Path]:
    """
    Write the trend chart of a job.

    Returns:
        Path of the HTML chart, None when there is no history to plot
    """
    if trend is None or trend.is_empty():
        logger.info(f"No trend data for '{job}', skipping chart")
        return None
    fig = create_trend_figure(trend, job, metrics)
    return _save_plotly_figure(fig, f"{job}_trend", output_dir)
