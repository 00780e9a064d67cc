# Moment suggestion - transcript in, raw cuts out
"""
Suggestion providers ask a text-completion service for the most engaging
moments of a transcript and turn its free-form reply into VideoCut lists.

- parser: tolerant extraction of cuts from a completion reply
- chunker: size-bounded grouping of transcript segments
- providers: direct (chunking + retry) and fallback variants
- clients: HTTP completion clients (OpenAI-compatible chat, Ollama)
"""
from .chunker import chunk_segments
from .parser import parse_cuts
from .providers import CompletionSuggestionProvider, FallbackSuggestionProvider

__all__ = [
    "chunk_segments",
    "parse_cuts",
    "CompletionSuggestionProvider",
    "FallbackSuggestionProvider",
]
