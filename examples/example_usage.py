"""
Example usage of recap on a synthetic MACS-style experiment.

This script demonstrates the full pipeline:
1. Write an "original" peak table and ten re-mixed bootstrap tables
2. Run run_recap() with MACS conventions (-log10 p in column 7)
3. Print summary statistics and save plots

Run from the repository root after installing:
    pip install -e ".[dev]"
    python examples/example_usage.py
"""

import os
import tempfile

import numpy as np

import recap

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
WORK_DIR   = tempfile.mkdtemp(prefix="recap_example_")
ORIG_DIR   = os.path.join(WORK_DIR, "MACS_original")
REMIX_DIR  = os.path.join(WORK_DIR, "MACS_re-mix")
OUTPUT_DIR = os.path.join(WORK_DIR, "MACS_RECAP")
for d in (ORIG_DIR, REMIX_DIR, OUTPUT_DIR):
    os.makedirs(d)

N_BOOT = 10
HEADER = [
    "# This file is generated by MACS",
    "# synthetic example",
    "chr\tstart\tend\tlength\tabs_summit\tpileup\t-log10(pvalue)",
]


def write_peaks(path, log_p, rng):
    starts = np.sort(rng.integers(0, 10_000_000, size=len(log_p)))
    with open(path, "w") as fh:
        for line in HEADER:
            fh.write(line + "\n")
        for start, x in zip(starts, log_p):
            fh.write(f"chr1\t{start}\t{start + 300}\t300\t{start + 150}\t20.0\t{x:.5f}\n")


# ---------------------------------------------------------------------------
# Simulate: caller p-values are anti-conservative (inflated -log10 p), and a
# subset of peaks is real signal on top of that
# ---------------------------------------------------------------------------
rng = np.random.default_rng(42)
inflation = 2.0
background = -np.log10(rng.uniform(size=4000)) * inflation
signal = rng.uniform(8, 30, size=300)
write_peaks(os.path.join(ORIG_DIR, "sample_peaks.xls"),
            np.concatenate([background, signal]), rng)

for b in range(1, N_BOOT + 1):
    null_log_p = -np.log10(rng.uniform(size=600)) * inflation
    write_peaks(os.path.join(REMIX_DIR, f"sample.bootstrap_{b}_peaks.xls"), null_log_p, rng)

print(f"Synthetic data written to {WORK_DIR}")

# ---------------------------------------------------------------------------
# Run RECAP
# ---------------------------------------------------------------------------
print(f"\nRecalibrating against {N_BOOT} re-mixed replicates...")
result = recap.run_recap(
    dir_orig=ORIG_DIR,
    name_orig="sample_peaks.xls",
    dir_remix=REMIX_DIR,
    name_remix="sample",
    dir_output=OUTPUT_DIR,
    name_output="sample.RECAP_peaks.xls",
    header=len(HEADER),
    pval_col=7,
    delim="t",
    software="M",
    bootstrap=N_BOOT,
    histogram_output="sample.RECAP_lfdr.txt",
)

p = result.table.pvalues
print(f"  Peaks recalibrated:      {len(result.table)}")
print(f"  Null p-values pooled:    {result.null_dist.size}")
print(f"  p <= 0.05 (caller):      {int((p <= 0.05).sum())}")
print(f"  BH(RECAP) <= 0.05:       {int((result.adjusted <= 0.05).sum())}")
print(f"  LFDR <= 0.05:            {int((result.lfdr <= 0.05).sum())}")

# ---------------------------------------------------------------------------
# Check the simulated real peaks
# ---------------------------------------------------------------------------
real = np.zeros(len(p), dtype=bool)
real[-len(signal):] = True
print("\nChecking simulated signal...")
print(f"  Real peaks with BH(RECAP) <= 0.05:  {int((result.adjusted[real] <= 0.05).sum())} / {real.sum()}")
print(f"  Null peaks with BH(RECAP) <= 0.05:  {int((result.adjusted[~real] <= 0.05).sum())} / {(~real).sum()}")

# ---------------------------------------------------------------------------
# Save plots
# ---------------------------------------------------------------------------
print(f"\nSaving plots to {OUTPUT_DIR} ...")
recap.make_all_plots(result, output_dir=OUTPUT_DIR, prefix="sample.RECAP")
print("Done.")

print(f"Results saved to {result.output_path}")
