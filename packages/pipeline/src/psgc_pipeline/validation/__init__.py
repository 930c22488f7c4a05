"""psgc_pipeline.validation — standards and integrity checks."""
