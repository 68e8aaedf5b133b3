import argparse
import json

import matplotlib

matplotlib.use("Agg")

import pytest

from coverage360 import evaluate_scale
from sweep360 import (
    SweepConfig,
    batches,
    build_parser,
    config_from_args,
    main,
    non_negative_int,
    plot_coverage,
    positive_int,
    run_batch,
    run_sweep,
    summarize,
)


def test_batches_cover_every_scale_once():
    out = batches(1, 25, 10)
    assert [list(b) for b in out] == [list(range(1, 11)), list(range(11, 21)), list(range(21, 26))]
    assert batches(5, 5, 10) == [range(5, 6)]


def test_config_swaps_reversed_bounds():
    args = build_parser().parse_args(["--min-m", "9", "--max-m", "3", "--workers", "2"])
    cfg = config_from_args(args)
    assert (cfg.min_m, cfg.max_m) == (3, 9)
    assert cfg.workers == 2
    assert cfg.max_k == 180
    assert cfg.scale_count == 7


def test_config_defaults_workers_to_cores():
    cfg = config_from_args(build_parser().parse_args([]))
    assert cfg.workers >= 1
    assert (cfg.min_m, cfg.max_m, cfg.max_primes, cfg.batch_size) == (1, 10, 100_000, 10)


@pytest.mark.parametrize("conv, bad", [(positive_int, "0"), (positive_int, "x"), (non_negative_int, "-1")])
def test_typed_converters_reject(conv, bad):
    with pytest.raises(argparse.ArgumentTypeError):
        conv(bad)


def test_bad_argument_exits_with_usage_error():
    with pytest.raises(SystemExit) as exc:
        main(["--max-k", "-5"])
    assert exc.value.code == 2


def test_parallel_batch_matches_serial():
    serial = run_batch(range(1, 6), SweepConfig(min_m=1, max_m=5, max_k=30, workers=1))
    parallel = run_batch(range(1, 6), SweepConfig(min_m=1, max_m=5, max_k=30, workers=2))
    assert serial == parallel
    assert [r.m for r in parallel] == [1, 2, 3, 4, 5]


def test_run_sweep_collects_in_order(capsys):
    cfg = SweepConfig(min_m=1, max_m=4, max_k=0, batch_size=3, workers=1)
    reports = run_sweep(cfg)
    assert [r.m for r in reports] == [1, 2, 3, 4]
    assert reports == [evaluate_scale(m, 0) for m in range(1, 5)]
    out = capsys.readouterr().out
    assert "Processing batch: m=1 to m=3" in out
    assert "Processing batch: m=4 to m=4" in out
    assert "Estimated remaining time" in out


def test_summarize():
    reports = [evaluate_scale(m, 0) for m in (1, 2)]
    summary = summarize(reports, 1.5)
    assert summary.scales == 2
    assert summary.primes_checked == 72 + 56
    assert summary.missed == reports[0].uncovered + 54
    assert 2 in summary.scales_with_misses
    assert summary.sampled_scales == []
    assert "Primes missed" in summary.pretty()


def test_main_all_covered_returns_zero(capsys):
    assert main(["--max-m", "1", "--workers", "1"]) == 0
    out = capsys.readouterr().out
    assert "All 72 primes checked" in out
    assert "Scales checked: 1" in out


def test_main_with_misses_returns_one(capsys):
    assert main(["--min-m", "2", "--max-m", "2", "--max-k", "0", "--workers", "1"]) == 1
    assert "Missed 54 primes" in capsys.readouterr().out


def test_main_json_lines(capsys):
    assert main(["--max-m", "3", "--max-k", "0", "--workers", "1", "--json"]) == 1
    lines = [ln for ln in capsys.readouterr().out.splitlines() if ln.strip()]
    rows = [json.loads(ln) for ln in lines]
    assert [r["m"] for r in rows] == [1, 2, 3]
    assert rows[1]["uncovered"] == 54


def test_main_quiet_prints_only_misses(capsys):
    main(["--min-m", "2", "--max-m", "2", "--max-k", "0", "--workers", "1", "--quiet"])
    out = capsys.readouterr().out
    assert "[m=2] missed 54" in out
    assert "Processing batch" not in out


def test_plot_coverage_saves_file(tmp_path):
    reports = [evaluate_scale(m, 20) for m in range(1, 6)]
    path = tmp_path / "coverage.png"
    fig = plot_coverage(reports, path=str(path), show=False)
    assert path.exists()
    assert len(fig.axes[0].patches) == 3 * len(reports)
