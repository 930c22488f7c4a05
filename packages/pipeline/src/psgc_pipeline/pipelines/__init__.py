"""
psgc_pipeline.pipelines — one orchestrator per CLI command.

Each module exposes an async run() that wires sources -> transforms -> loaders.
"""
