"""Analysis orchestration."""

from .analysis import AnalysisEngine, AnalysisReport

__all__ = ["AnalysisEngine", "AnalysisReport"]
