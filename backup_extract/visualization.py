"""
Extraction report charts built with plotly.

The report is a standalone HTML file (plotly.js embedded) so it opens without
network access.
"""

from pathlib import Path
from typing import Union
import logging

import plotly.graph_objects as go  # type: ignore[import-untyped]

from backup_extract.correlator import CorrelationResult
from backup_extract.pipeline import ArtifactResult

logger = logging.getLogger(__name__)


def build_artifact_figure(result: ArtifactResult) -> go.Figure:
    """
    Bar chart of files copied per domain, split into kept and renamed names.

    Args:
        result: Result of run_artifact_pipeline.

    Returns:
        plotly Figure with two stacked bar traces.
    """
    domains = [d.domain for d in result.domains]
    kept = [d.copied_count - d.renamed_count for d in result.domains]
    renamed = [d.renamed_count for d in result.domains]

    fig = go.Figure(
        data=[
            go.Bar(name="Original name", x=domains, y=kept),
            go.Bar(name="Renamed", x=domains, y=renamed),
        ]
    )
    fig.update_layout(
        barmode="stack",
        title="Artifacts copied per domain",
        xaxis_title="Domain",
        yaxis_title="Files",
    )
    return fig


def build_transcript_figure(result: CorrelationResult, top_n: int = 25) -> go.Figure:
    """
    Bar chart of the largest conversations by message count.

    Args:
        result: CorrelationResult from a correlation pass.
        top_n: Number of conversations to show.

    Returns:
        plotly Figure with one bar trace.
    """
    ranked = sorted(result.message_counts.items(), key=lambda item: item[1], reverse=True)
    ranked = ranked[:top_n]

    fig = go.Figure(
        data=[
            go.Bar(
                x=[f"conversation {conversation_id}" for conversation_id, _ in ranked],
                y=[count for _, count in ranked],
            )
        ]
    )
    fig.update_layout(
        title=f"Messages per conversation (top {top_n})",
        xaxis_title="Conversation",
        yaxis_title="Messages",
    )
    return fig


def write_report(figure: go.Figure, output_file: Union[str, Path]) -> Path:
    """Write a figure as self-contained HTML and return its path."""
    path = Path(output_file)
    figure.write_html(str(path), include_plotlyjs=True, full_html=True)
    logger.info(f"Report written to {path}")
    return path
