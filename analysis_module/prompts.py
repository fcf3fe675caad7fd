"""Prompt construction for chat analysis requests."""

from __future__ import annotations

import json
from typing import Dict, List, Sequence


def join_content(contents: Sequence[str]) -> str:
    """Space-join stored chunks, keeping empty chunks as empty tokens."""
    return " ".join(contents)


def build_analysis_messages(
    embeddings: Sequence[Sequence[float]],
    content: str,
    *,
    system_prompt: str,
    template: str,
) -> List[Dict[str, str]]:
    """Return chat-completion messages asking for a structured chat analysis.

    ``template`` is formatted with ``embeddings`` (a JSON array of vectors)
    and ``content`` (the JSON encoded conversation text).
    """
    user_prompt = template.format(
        embeddings=json.dumps([list(vector) for vector in embeddings]),
        content=json.dumps(content, ensure_ascii=False),
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
