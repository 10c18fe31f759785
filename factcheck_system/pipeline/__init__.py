"""End-to-end fact-check orchestration.

- FactCheckPipeline: content -> claims -> sources -> verdicts
"""

from factcheck_system.pipeline.fact_check_pipeline import (
    ContentExtractor,
    ExtractedContent,
    FactCheckPipeline,
    FactCheckReport,
    SearchProvider,
)

__all__ = [
    "ContentExtractor",
    "ExtractedContent",
    "FactCheckPipeline",
    "FactCheckReport",
    "SearchProvider",
]
