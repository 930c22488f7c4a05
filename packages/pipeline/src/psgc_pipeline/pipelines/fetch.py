"""
pipelines/fetch.py — Download every level from PSGC Cloud into a JSON file.

The output is the raw PSGC Cloud records (codes untouched), each tagged
with its endpoint level in "type", ready for `psgc import` or as a
supplement for `psgc merge`.

Usage:
    from psgc_pipeline.pipelines.fetch import run
    result = await run("data/psgc-cloud.json")
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from psgc_shared.codes import Level

from psgc_pipeline.sources.psgc_cloud import PSGCCloudSource
from psgc_pipeline.utils.logging import get_logger

log = get_logger(__name__, pipeline="fetch")


@dataclass
class FetchResult:
    output_path: Path
    records: int
    failed_levels: list[Level] = field(default_factory=list)


async def run(
    output_path: str | Path,
    *,
    source: PSGCCloudSource | None = None,
    levels: list[Level] | None = None,
) -> FetchResult:
    source = source or PSGCCloudSource()
    records = await source.run(levels=levels)

    target = Path(output_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")

    if source.failed_levels:
        log.warning("fetch_incomplete", failed=[lv.value for lv in source.failed_levels])
    log.info("fetch_complete", output=str(target), records=len(records))
    return FetchResult(target, len(records), list(source.failed_levels))
