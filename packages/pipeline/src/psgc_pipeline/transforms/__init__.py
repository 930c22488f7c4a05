"""psgc_pipeline.transforms — classification, reconciliation, merge."""
