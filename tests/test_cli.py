"""
End-to-end tests for the recap command line.
"""

import numpy as np
import pytest

from recap.cli import main


def _write_macs_like(path, log_pvalues, header_lines=3):
    """Helper: MACS-style table, comment header, -log10(p) in column 7."""
    lines = [f"# comment {i}" for i in range(header_lines - 1)]
    lines.append("chr\tstart\tend\tlength\tsummit\tpileup\t-log10(pvalue)")
    for i, x in enumerate(log_pvalues):
        lines.append(f"chr1\t{i * 100}\t{i * 100 + 80}\t80\t40\t12.0\t{x:.5f}")
    path.write_text("".join(line + "\n" for line in lines))


@pytest.fixture
def run_dirs(tmp_path):
    rng = np.random.default_rng(7)
    orig_dir = tmp_path / "MACS_original"
    remix_dir = tmp_path / "MACS_re-mix"
    out_dir = tmp_path / "MACS_RECAP"
    for d in (orig_dir, remix_dir, out_dir):
        d.mkdir()
    _write_macs_like(orig_dir / "sample_peaks.xls",
                     np.concatenate([rng.uniform(0, 2, size=40), rng.uniform(5, 10, size=10)]))
    for b in (1, 2):
        _write_macs_like(remix_dir / f"sample.bootstrap_{b}_peaks.xls",
                         rng.uniform(0, 3, size=30))
    return orig_dir, remix_dir, out_dir


def _argv(orig_dir, remix_dir, out_dir, *extra):
    return [
        "--dir-orig", str(orig_dir), "--name-orig", "sample_peaks.xls",
        "--dir-remix", str(remix_dir), "--name-remix", "sample",
        "--dir-output", str(out_dir), "--name-output", "sample.RECAP_peaks.xls",
        "--header", "3", "--pval-col", "7", "--delim", "t", "--software", "M",
        "--bootstrap", "2", *extra,
    ]


class TestMain:

    def test_success(self, run_dirs, capsys):
        orig_dir, remix_dir, out_dir = run_dirs
        assert main(_argv(orig_dir, remix_dir, out_dir)) == 0
        lines = (out_dir / "sample.RECAP_peaks.xls").read_text().splitlines()
        assert lines[0] == "# comment 0"
        assert lines[2].endswith("-log10(pvalue)\tRECAP\tBH(RECAP)\tLFDR")
        assert len(lines) == 3 + 50
        assert "Results saved to" in capsys.readouterr().out

    def test_output_values_in_range(self, run_dirs):
        orig_dir, remix_dir, out_dir = run_dirs
        main(_argv(orig_dir, remix_dir, out_dir, "--quiet"))
        lines = (out_dir / "sample.RECAP_peaks.xls").read_text().splitlines()[3:]
        values = np.array([[float(f) for f in line.split("\t")[-3:]] for line in lines])
        assert np.all((values >= 0) & (values <= 1))
        assert np.all(values[:, 1] >= values[:, 0])

    def test_camel_case_aliases(self, run_dirs):
        orig_dir, remix_dir, out_dir = run_dirs
        argv = [
            "--dirOrig", str(orig_dir), "--nameOrig", "sample_peaks.xls",
            "--dirRemix", str(remix_dir), "--nameRemix", "sample",
            "--dirOutput", str(out_dir), "--nameOutput", "alias.xls",
            "--header", "3", "--pvalCol", "7", "--delim", "T", "--software", "m",
            "--bootstrap", "1", "--quiet",
        ]
        assert main(argv) == 0
        assert (out_dir / "alias.xls").exists()

    def test_missing_original_file(self, run_dirs, capsys):
        orig_dir, remix_dir, out_dir = run_dirs
        argv = _argv(orig_dir, remix_dir, out_dir)
        argv[argv.index("sample_peaks.xls")] = "absent.xls"
        assert main(argv) == 1
        assert "ERROR:" in capsys.readouterr().err
        assert list(out_dir.iterdir()) == []

    def test_bootstrap_exceeds_files(self, run_dirs, capsys):
        orig_dir, remix_dir, out_dir = run_dirs
        argv = _argv(orig_dir, remix_dir, out_dir)
        argv[argv.index("--bootstrap") + 1] = "5"
        assert main(argv) == 1
        assert "exceeds" in capsys.readouterr().err

    @pytest.mark.parametrize("flag,value", [
        ("--delim", "x"),
        ("--software", "Z"),
        ("--header", "abc"),
        ("--pval-col", "0"),
    ])
    def test_bad_configuration_exits(self, run_dirs, flag, value):
        orig_dir, remix_dir, out_dir = run_dirs
        argv = _argv(orig_dir, remix_dir, out_dir)
        argv[argv.index(flag) + 1] = value
        with pytest.raises(SystemExit) as excinfo:
            main(argv)
        assert excinfo.value.code == 2

    def test_bootstrap_subdir_requires_bootstrap(self, run_dirs, capsys):
        orig_dir, remix_dir, out_dir = run_dirs
        argv = _argv(orig_dir, remix_dir, out_dir, "--bootstrap-subdir")
        i = argv.index("--bootstrap")
        del argv[i:i + 2]
        with pytest.raises(SystemExit) as excinfo:
            main(argv)
        assert excinfo.value.code == 2
        assert "requires --bootstrap" in capsys.readouterr().err

    def test_help(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--help"])
        assert excinfo.value.code == 0
        assert "--pval-col" in capsys.readouterr().out

    def test_plots(self, run_dirs):
        orig_dir, remix_dir, out_dir = run_dirs
        assert main(_argv(orig_dir, remix_dir, out_dir, "--plots", "--quiet")) == 0
        pdfs = sorted(p.name for p in out_dir.glob("*.pdf"))
        assert pdfs == [
            "sample.RECAP_peaks_lfdr_histogram.pdf",
            "sample.RECAP_peaks_recalibration.pdf",
            "sample.RECAP_peaks_rvalue_histogram.pdf",
        ]
