"""
LLM module - text-generation client and two-stage message analysis
"""
from .ollama_client import OllamaClient, LLMClientError
from .message_analyzer import (
    MessageAnalyzer,
    AnalysisResult,
    Intent,
    Classified,
    NeedsSecondPass,
    Failed,
    strip_code_fences,
    parse_json_object,
)

__all__ = [
    'OllamaClient',
    'LLMClientError',
    'MessageAnalyzer',
    'AnalysisResult',
    'Intent',
    'Classified',
    'NeedsSecondPass',
    'Failed',
    'strip_code_fences',
    'parse_json_object',
]
