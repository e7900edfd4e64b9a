#!/usr/bin/env python3
"""
Stress-test visualizer - telemetry CSV in, chart image out.

This module exposes the pipeline as separate units:
- load_stress_test_data()
- parse_chart_specs()
- render_charts()
- build_summary_report()

The engine modules (parameters, filters, running_stats, registry, labels) do not
print or touch the filesystem; this module owns I/O, configuration and the CLI.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Union

# Select a non-interactive Matplotlib backend before pyplot is imported so rendering
# works in headless environments.
import matplotlib

matplotlib.use("Agg", force=True)
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.ticker import FuncFormatter

from .csv_processor import TelemetryCSVReader, TelemetryError
from .filters import ParameterFilterSet
from .labels import chart_title, discriminating_parameters, display_name
from .registry import StressTestData

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

DEFAULT_CHART_SPECS: tuple[str, ...] = (
    "type=commits-per-second",
    "type=queries-per-second",
)

# Pixel size of a single chart panel at full scale; --small-image halves it.
CHART_PIXELS = 1080
DPI = 100

# Per-series line colours, assigned in series-name order and reused across charts.
PALETTE = [
    "#ADD8E6",  # light blue
    "#4CAF50",  # green
    "#FFEB3B",  # yellow
    "#F44336",  # red
    "#000000",  # black
    "#8D6E63",  # brown
    "#E91E63",  # pink
    "#FF9800",  # orange
    "#9E9E9E",  # grey
]


class ChartType(Enum):
    """Chart kinds selectable with 'type=<value>' in a chart spec."""

    COMMIT_TIME = "commit-time"
    COMMITS_PER_SECOND = "commits-per-second"
    QUERIES_PER_SECOND = "queries-per-second"

    @classmethod
    def from_text(cls, text: str) -> Optional["ChartType"]:
        for chart_type in cls:
            if chart_type.value == text:
                return chart_type
        return None

    @property
    def channel(self) -> str:
        return self.name.lower()

    @property
    def title(self) -> str:
        return {
            ChartType.COMMIT_TIME: "Commit Time",
            ChartType.COMMITS_PER_SECOND: "Commits per Second",
            ChartType.QUERIES_PER_SECOND: "Queries per Second",
        }[self]


@dataclass
class ChartSpec:
    """
    One chart: what to plot and which series to include.

    Parsed from text such as 'type=commits-per-second,progressive==true,readers>0'.
    The 'type' term picks the chart; every other term is a filter term.
    """

    chart_type: ChartType
    filter_set: ParameterFilterSet = field(default_factory=ParameterFilterSet)

    @classmethod
    def parse(cls, text: str) -> Optional["ChartSpec"]:
        chart_type: Optional[ChartType] = None
        type_text: Optional[str] = None
        filter_terms: list[str] = []
        for term in text.split(","):
            key, sep, value = term.partition("=")
            if sep and key.strip() == "type" and not value.startswith("="):
                type_text = value.strip()
                chart_type = ChartType.from_text(type_text)
            else:
                filter_terms.append(term)

        if chart_type is None:
            if type_text is None:
                logger.warning(f"Chart spec has no type=..., skipping: {text!r}")
            else:
                logger.warning(
                    f"Unknown chart type {type_text!r} (expected one of "
                    f"{[c.value for c in ChartType]}), skipping: {text!r}"
                )
            return None

        return cls(chart_type, ParameterFilterSet(",".join(filter_terms)))

    @property
    def title(self) -> str:
        return chart_title(self.chart_type.title, self.filter_set)


@dataclass
class VisualizerParams:
    """
    Run configuration.

    Attributes:
        data_paths: Telemetry CSV files to ingest, in order.
        chart_specs: Raw chart spec strings; unparseable specs are skipped with a warning.
        small_image: Render 540 px panels instead of 1080 px.
        sigma_band: Shade the mean +/- 2 sigma band of each series.
        output_dir: Directory the image is written into (created if missing).
        output_name: Image file name.
        summary: Print the per-series statistics table after rendering.
    """

    data_paths: List[Path]
    chart_specs: List[str] = field(default_factory=lambda: list(DEFAULT_CHART_SPECS))
    small_image: bool = False
    sigma_band: bool = False
    output_dir: Path = Path("visualizer_output")
    output_name: str = "stress_test_charts.png"
    summary: bool = False

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir) / self.output_name


def get_default_params() -> VisualizerParams:
    return VisualizerParams(data_paths=[])


def load_stress_test_data(paths: Iterable[Union[str, Path]]) -> StressTestData:
    """
    Ingest every file into one fresh registry.

    Any malformed row aborts the whole load; no partial registry is returned.
    """
    data = StressTestData()
    total = 0
    for path in paths:
        logger.info(f"Reading data file: {path}")
        with TelemetryCSVReader(path) as reader:
            samples = reader.read_samples()
        for sample in samples:
            data.add(sample)
        total += len(samples)
    logger.info(f"Loaded {total} samples into {len(data)} series")
    return data


def parse_chart_specs(spec_texts: Iterable[str]) -> List[ChartSpec]:
    specs = []
    for text in spec_texts:
        spec = ChartSpec.parse(text)
        if spec is not None:
            specs.append(spec)
    return specs


def _grid_shape(n_charts: int) -> tuple[int, int]:
    if n_charts <= 1:
        return 1, 1
    if n_charts == 2:
        return 1, 2
    if n_charts == 3:
        return 1, 3
    return 2, 2


def _draw_chart(
    ax,
    data: StressTestData,
    spec: ChartSpec,
    colours: dict[tuple, str],
    stroke_width: float,
    sigma_band: bool,
) -> None:
    channel = spec.chart_type.channel
    passing = data.passing(spec.filter_set)
    discriminating = discriminating_parameters(ds for _, ds in passing)
    max_y = max((ds.channel_max(channel) for _, ds in passing), default=0.0)

    for _, dataset in passing:
        sample_sets = [v.channel(channel) for v in dataset.sorted_values]
        xs = np.array([v.x_key for v in dataset.sorted_values], dtype=float)
        means = np.array([s.mean() for s in sample_sets])
        mins = np.array([s.value_min for s in sample_sets])
        maxs = np.array([s.value_max for s in sample_sets])
        colour = colours[dataset.key]

        ax.plot(
            xs,
            means,
            color=colour,
            linewidth=stroke_width,
            marker="o",
            markersize=stroke_width * 2.5,
            label=display_name(dataset, discriminating),
        )

        # Min..max bars only where there is a spread to show
        spread = maxs > mins
        if spread.any():
            ax.vlines(xs[spread], mins[spread], maxs[spread], colors=colour, linewidth=stroke_width)
            ax.scatter(xs[spread], mins[spread], marker="_", color=colour, s=80 * stroke_width)
            ax.scatter(xs[spread], maxs[spread], marker="_", color=colour, s=80 * stroke_width)

        if sigma_band:
            starts = np.array([s.range_start() for s in sample_sets])
            ends = np.array([s.range_end() for s in sample_sets])
            ax.fill_between(xs, starts, ends, color=colour, alpha=0.25, linewidth=0)

    ax.set_title(spec.title)
    ax.set_xlabel("Commits")
    ax.xaxis.set_major_formatter(FuncFormatter(lambda v, _pos: f"{v:.0f}"))
    if data.max_x_key > 0:
        ax.set_xlim(0, data.max_x_key)
    if max_y > 0 and np.isfinite(max_y):
        ax.set_ylim(0, max_y)
    ax.grid(True, alpha=0.3)
    if passing:
        ax.legend(loc="upper right", frameon=True, edgecolor="black")


def render_charts(
    data: StressTestData,
    chart_specs: List[ChartSpec],
    output_path: Union[str, Path],
    small_image: bool = False,
    sigma_band: bool = False,
) -> str:
    """
    Draw one panel per chart spec into a single image and return its path.

    Layout: one spec fills the image, two or three sit side by side, four or more use
    a 2x2 grid (only the first four are drawn). Series colours follow series-name
    order so a series keeps its colour on every panel.
    """
    scale = 1 if small_image else 2
    stroke_width = 1.0 if small_image else 2.0
    panel_inches = CHART_PIXELS * scale / DPI

    rows, cols = _grid_shape(len(chart_specs))
    fig, axes = plt.subplots(
        rows, cols, figsize=(cols * panel_inches, rows * panel_inches), squeeze=False
    )

    colours = {
        dataset.key: PALETTE[i % len(PALETTE)] for i, dataset in enumerate(data)
    }

    flat_axes = list(axes.flat)
    for ax, spec in zip(flat_axes, chart_specs):
        _draw_chart(ax, data, spec, colours, stroke_width, sigma_band)
    for ax in flat_axes[len(chart_specs):]:
        ax.set_axis_off()

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(output_path, dpi=DPI)
    plt.close(fig)
    return str(output_path)


def build_summary_report(data: StressTestData) -> str:
    lines = [f"Series: {len(data)}", f"Max commits: {data.max_x_key}"]
    for channel in data.channels:
        lines.append(f"Max {channel}: {data.channel_max(channel):.6g}")
    df = data.summary_frame()
    if not df.empty:
        lines.append("")
        lines.append(df.to_string(index=False, float_format=lambda v: f"{v:.6g}"))
    return "\n".join(lines)


def _orchestrate(params: VisualizerParams) -> str:
    """
    Run load -> chart specs -> render for explicit parameters.
    Split from main() so the CLI stays thin and tests can call this directly.
    """
    chart_specs = parse_chart_specs(params.chart_specs)
    data = load_stress_test_data(params.data_paths)

    output_path = render_charts(
        data,
        chart_specs,
        params.output_path,
        small_image=params.small_image,
        sigma_band=params.sigma_band,
    )
    logger.info(f"Wrote file: {output_path}")
    print(f"Wrote file: {output_path}")

    if params.summary:
        print(build_summary_report(data))
    return output_path


def _build_cli_parser():
    import argparse

    parser = argparse.ArgumentParser(
        prog="stress-viz",
        description="Chart stress-test telemetry CSV files (load -> group -> filter -> plot).",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    d = get_default_params()

    parser.add_argument(
        "--print-defaults",
        action="store_true",
        help="Print default parameter values and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging and full tracebacks (also STRESS_VIZ_DEBUG=1).",
    )
    parser.add_argument(
        "-d",
        "--data-path",
        nargs="+",
        required=True,
        help="Telemetry CSV file(s) to read.",
    )
    parser.add_argument(
        "-c",
        "--chart-spec",
        nargs="*",
        default=list(d.chart_specs),
        help="Chart spec(s): type=<commit-time|commits-per-second|queries-per-second>"
        " followed by filter terms, e.g. 'type=commit-time,progressive==true,readers>0'.",
    )
    parser.add_argument(
        "-s",
        "--small-image",
        action="store_true",
        help="Render 540 px panels instead of 1080 px.",
    )
    parser.add_argument(
        "--sigma-band",
        action="store_true",
        help="Shade the mean +/- 2 sigma band of every series.",
    )
    parser.add_argument(
        "--output-dir",
        default=str(d.output_dir),
        help="Directory for the chart image.",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        help="Print the per-series statistics table.",
    )
    return parser


def _args_to_params(args) -> VisualizerParams:
    """
    Merge CLI args over defaults to build the parameter object.
    """
    d = get_default_params()
    return VisualizerParams(
        data_paths=[Path(p) for p in args.data_path],
        chart_specs=list(args.chart_spec) if args.chart_spec is not None else d.chart_specs,
        small_image=bool(args.small_image),
        sigma_band=bool(args.sigma_band),
        output_dir=Path(args.output_dir) if args.output_dir else d.output_dir,
        output_name=d.output_name,
        summary=bool(args.summary),
    )


def main(argv: Optional[List[str]] = None) -> None:
    """
    CLI entry point. Parses arguments, builds parameters, then orchestrates.
    """
    import sys

    argv = sys.argv[1:] if argv is None else argv

    # --print-defaults works without --data-path
    if "--print-defaults" in argv:
        import json

        d = get_default_params()
        payload = {
            "VisualizerParams": {
                "data_paths": [str(p) for p in d.data_paths],
                "chart_specs": d.chart_specs,
                "small_image": d.small_image,
                "sigma_band": d.sigma_band,
                "output_dir": str(d.output_dir),
                "output_name": d.output_name,
                "summary": d.summary,
            }
        }
        print(json.dumps(payload, indent=2))
        return

    parser = _build_cli_parser()
    args = parser.parse_args(argv)
    debug_mode = bool(args.debug or os.getenv("STRESS_VIZ_DEBUG", "") == "1")
    if debug_mode:
        logging.getLogger().setLevel(logging.DEBUG)

    params = _args_to_params(args)

    try:
        _orchestrate(params)
    except (FileNotFoundError, TelemetryError, ValueError) as e:
        # Concise, user-facing errors for user-correctable problems.
        logger.info("User-facing error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except Exception as e:
        logger.exception("Unhandled exception during execution")
        if debug_mode:
            import traceback

            traceback.print_exc()
        else:
            print(f"Unexpected error: {e}", file=sys.stderr)
            print(
                "Run with --debug or set STRESS_VIZ_DEBUG=1 to see the full traceback.",
                file=sys.stderr,
            )
        sys.exit(1)


if __name__ == "__main__":
    main()
