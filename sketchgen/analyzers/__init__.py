"""Static analysis of sketch source."""

from .sketch import COLLECTION_CONSTRUCTOR, AnalysisBuilder, SketchAnalyzer, analyze_sketch

__all__ = [
    "AnalysisBuilder",
    "COLLECTION_CONSTRUCTOR",
    "SketchAnalyzer",
    "analyze_sketch",
]
