"""
Generation context assembly.

Pure, no I/O.  The budget is in characters, approximating a token
budget at ~4 characters per token.
"""

from __future__ import annotations

SEPARATOR = "\n\n"
DEFAULT_MAX_CHARS = 6000  # ~1500 tokens


class ContextBuilder:
    def __init__(self, max_chars: int = DEFAULT_MAX_CHARS):
        self.max_chars = max_chars

    def build(self, fragments: list[str]) -> str:
        """
        Join fragments in relevance order until the next one would
        overflow the budget.  Fragments are never cut; a first fragment
        that is over budget on its own is still returned whole.
        """
        context = ""
        for fragment in fragments:
            candidate = context + SEPARATOR + fragment if context else fragment
            if len(candidate) > self.max_chars:
                if not context:
                    return fragment
                break
            context = candidate
        return context
