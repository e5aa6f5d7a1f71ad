"""Console and JSON reporting for comparison runs."""
