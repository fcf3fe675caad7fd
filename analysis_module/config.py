"""Configuration objects for the conversation analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class AnalysisLLMConfig:
    """Completion endpoint connection details."""

    endpoint: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    request_timeout: int = 120


@dataclass
class AnalysisConfig:
    """Runtime controls for embedding and analysing chats."""

    llm: AnalysisLLMConfig = field(default_factory=AnalysisLLMConfig)
    message_window: int = 100
    strict_persistence: bool = False
    system_prompt: str = (
        "You are an expert analyst of messaging app conversations. You receive "
        "the text of a chat together with the embeddings generated from it."
    )
    analysis_prompt: str = (
        "The following embeddings were generated from a chat conversation; the "
        "numbers capture an understanding of its content. Embeddings: {embeddings}. "
        "The original conversation is: {content}. "
        "Reply only with a JSON array of objects with the keys \"title\" and "
        "\"description\", one object each for: the dominant topic of conversation, "
        "the peak activity period, trends in communication patterns, the most "
        "active participants, and the overall sentiment."
    )
    model_kwargs: Dict[str, str] = field(default_factory=dict)
