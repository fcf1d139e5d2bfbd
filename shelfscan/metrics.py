"""Prometheus metrics for Shelf Scan."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("shelfscan", "Shelf Scan application info")
app_info.info({"version": "0.1.0", "name": "shelf-scan"})

# Target metrics
target_runs_total = Counter(
    "shelfscan_target_runs_total",
    "Total number of scrape target runs",
    ["source", "status"],
)

target_duration_seconds = Histogram(
    "shelfscan_target_duration_seconds",
    "Time spent running one scrape target end-to-end",
    ["source"],
    buckets=[5.0, 10.0, 20.0, 30.0, 60.0, 120.0, 300.0],
)

# Navigation metrics
navigation_attempts_total = Counter(
    "shelfscan_navigation_attempts_total",
    "Total number of page navigation attempts",
    ["status"],
)

# Convergence metrics
convergence_iterations = Histogram(
    "shelfscan_convergence_iterations",
    "Iterations used by the lazy-load convergence loop",
    ["pattern"],
    buckets=[1, 2, 3, 4, 5, 6, 8, 10, 12, 15, 20],
)

convergence_outcomes_total = Counter(
    "shelfscan_convergence_outcomes_total",
    "How convergence loops ended",
    ["pattern", "outcome"],  # outcome: converged | ceiling | count_error
)

# Extraction metrics
records_extracted_total = Counter(
    "shelfscan_records_extracted_total",
    "Total number of product records extracted",
    ["source"],
)

cards_skipped_total = Counter(
    "shelfscan_cards_skipped_total",
    "Listing cards skipped during extraction",
    ["reason"],  # reason: short_title | duplicate | error
)

# Fleet metrics
fleet_runs_total = Counter(
    "shelfscan_fleet_runs_total",
    "Total number of fleet runs",
    ["status"],
)
