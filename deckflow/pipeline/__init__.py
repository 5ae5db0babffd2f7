"""Single-document analysis pipeline.

Usage:
    from deckflow.pipeline import AnalysisPipeline

    pipeline = AnalysisPipeline(analyzer)
    snapshot = await pipeline.analyze(document, context)
"""

from deckflow.pipeline.orchestrator import AnalysisPipeline, StageObserver, analyze_document
from deckflow.pipeline.stages import ConversionCaps, conversion_caps

__all__ = [
    "AnalysisPipeline",
    "StageObserver",
    "analyze_document",
    "ConversionCaps",
    "conversion_caps",
]
