"""
psgc_pipeline.sources — raw record sources.

Each source yields a batch of field-name → value mappings:
  FileSource      — CSV / JSON / Excel exports (PSA, DILG, hand-curated)
  PSGCCloudSource — PSGC Cloud REST API (https://psgc.cloud)
"""
