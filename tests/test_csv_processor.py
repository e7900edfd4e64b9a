import math
from pathlib import Path

import pandas as pd
import pytest

from stress_viz.csv_processor import (
    COLUMN_NAMES,
    FileAccessError,
    MalformedRowError,
    TelemetryCSVReader,
    parse_row,
    rate,
)
from stress_viz.parameters import BoolValue, IntValue


def telemetry_row(
    name="Store",
    archive="false",
    compress="false",
    ordered="true",
    uniform="false",
    num_readers=2,
    num_writers=1,
    writer_commits_per_sleep=10,
    writer_sleep_time=5,
    commits_per_timing_sample=100,
    progressive="true",
    total_commits=1000,
    total_commit_time=2.5,
    commits=100,
    commit_time=0.5,
    queries=400,
    query_time=2.0,
):
    return {
        "name": name,
        "archive": archive,
        "compress": compress,
        "ordered": ordered,
        "uniform": uniform,
        "num_readers": num_readers,
        "num_writers": num_writers,
        "writer_commits_per_sleep": writer_commits_per_sleep,
        "writer_sleep_time": writer_sleep_time,
        "commits_per_timing_sample": commits_per_timing_sample,
        "progressive": progressive,
        "total_commits": total_commits,
        "total_commit_time": total_commit_time,
        "commits": commits,
        "commit_time": commit_time,
        "queries": queries,
        "query_time": query_time,
    }


def make_temp_csv(tmp_path: Path, rows: list[dict], name: str = "telemetry.csv") -> Path:
    df = pd.DataFrame(rows, columns=COLUMN_NAMES)
    path = tmp_path / name
    df.to_csv(path, index=False)
    return path


def test_reads_samples_with_parameters_and_rates(tmp_path: Path):
    path = make_temp_csv(tmp_path, [telemetry_row(), telemetry_row(num_readers=0)])

    with TelemetryCSVReader(path) as reader:
        samples = reader.read_samples()

    assert len(samples) == 2
    s = samples[0]
    assert s.base_name == "Store"
    assert s.x_key == 1000
    assert s.measurements == (2.5, 200.0, 200.0)
    assert list(s.parameters) == sorted(s.parameters)
    assert s.parameters["ordered"] == BoolValue(True)
    assert s.parameters["archive"] == BoolValue(False)
    assert s.parameters["readers"] == IntValue(2)
    assert s.parameters["writers"] == IntValue(1)
    assert s.parameters["commits_per_timing_sample"] == IntValue(100)
    assert samples[1].parameters["readers"] == IntValue(0)


def test_header_only_file_yields_no_samples(tmp_path: Path):
    path = make_temp_csv(tmp_path, [])
    with TelemetryCSVReader(path) as reader:
        assert reader.read_samples() == []


def test_header_is_skipped_even_if_it_looks_like_data(tmp_path: Path):
    row = ",".join(str(v) for v in telemetry_row().values())
    path = tmp_path / "no_header.csv"
    path.write_text(row + "\n" + row + "\n", encoding="utf-8")
    with TelemetryCSVReader(path) as reader:
        assert len(reader.read_samples()) == 1


@pytest.mark.parametrize(
    "override",
    [
        {"archive": "yes"},
        {"progressive": "TRUE"},
        {"num_readers": -1},
        {"num_writers": "1.5"},
        {"total_commits": "many"},
        {"total_commit_time": "slow"},
        {"query_time": ""},
    ],
)
def test_unparseable_field_aborts(tmp_path: Path, override):
    rows = [telemetry_row(), telemetry_row(**override)]
    path = make_temp_csv(tmp_path, rows)
    with pytest.raises(MalformedRowError) as exc:
        TelemetryCSVReader(path).read_samples()
    assert exc.value.row == 2
    assert str(path) in str(exc.value)
    assert "data row 2" in str(exc.value)


def test_short_row_aborts(tmp_path: Path):
    good = ",".join(str(v) for v in telemetry_row().values())
    short = ",".join(str(v) for v in list(telemetry_row().values())[:-1])
    path = tmp_path / "short.csv"
    path.write_text(",".join(COLUMN_NAMES) + "\n" + good + "\n" + short + "\n", encoding="utf-8")
    with pytest.raises(MalformedRowError):
        TelemetryCSVReader(path).read_samples()


def test_long_row_aborts(tmp_path: Path):
    good = ",".join(str(v) for v in telemetry_row().values())
    path = tmp_path / "long.csv"
    path.write_text(
        ",".join(COLUMN_NAMES) + "\n" + good + "\n" + good + ",extra\n", encoding="utf-8"
    )
    with pytest.raises(MalformedRowError):
        TelemetryCSVReader(path).read_samples()


def test_uniformly_wrong_column_count_aborts(tmp_path: Path):
    path = tmp_path / "narrow.csv"
    path.write_text("a,b,c\nStore,true,false\n", encoding="utf-8")
    with pytest.raises(MalformedRowError) as exc:
        TelemetryCSVReader(path).read_samples()
    assert "expected 17 columns, got 3" in str(exc.value)


def test_missing_file_and_directory(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        TelemetryCSVReader(tmp_path / "absent.csv")
    with pytest.raises(FileAccessError):
        TelemetryCSVReader(tmp_path)


def test_parse_row_direct():
    fields = [str(v) for v in telemetry_row(commit_time=0.0, queries=0, query_time=0.0).values()]
    sample = parse_row(fields, "direct.csv", 1)
    assert math.isinf(sample.measurements[1])
    assert math.isnan(sample.measurements[2])


def test_rate_ieee_semantics():
    assert rate(10, 4.0) == 2.5
    assert rate(5, 0.0) == math.inf
    assert math.isnan(rate(0, 0.0))


def test_row_number_counts_data_rows_without_blank_lines(tmp_path: Path):
    good = ",".join(str(v) for v in telemetry_row().values())
    bad = ",".join(str(v) for v in telemetry_row(ordered="maybe").values())
    path = tmp_path / "gaps.csv"
    path.write_text(
        ",".join(COLUMN_NAMES) + "\n\n" + good + "\n\n\n" + bad + "\n", encoding="utf-8"
    )
    with pytest.raises(MalformedRowError) as exc:
        TelemetryCSVReader(path).read_samples()
    assert exc.value.row == 2
    assert "data row 2 (blank lines excluded)" in str(exc.value)
