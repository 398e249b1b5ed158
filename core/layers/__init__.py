# core/layers/__init__.py
from .extraction import ExtractionLayer
from .keyword_extractor import KeywordExtractor
from .output import OutputLayer

__all__ = ["ExtractionLayer", "KeywordExtractor", "OutputLayer"]
