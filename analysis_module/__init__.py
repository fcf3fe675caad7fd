"""Conversation analysis pipeline.

Recent chat messages are embedded and appended to an embedding store; the
stored rows for a chat are later sent to a chat-completions endpoint for a
structured analysis.  The entry point is
``analysis_module.service.ConversationAnalysisService``.
"""

from .config import AnalysisConfig, AnalysisLLMConfig
from .service import AnalysisResult, ConversationAnalysisService

__all__ = ["AnalysisConfig", "AnalysisLLMConfig", "AnalysisResult", "ConversationAnalysisService"]
