"""Prompt construction for batched subtitle translation."""

from __future__ import annotations

from typing import Sequence


def number_lines(texts: Sequence[str]) -> str:
    """Render texts as a 1-based numbered list, one entry per line."""
    # 条目内部换行会打乱编号，先合并为单行
    return "\n".join(
        f"{i}. {' '.join(text.splitlines())}" for i, text in enumerate(texts, 1)
    )


def build_prompt(
    texts: Sequence[str],
    source_language: str,
    target_language: str,
) -> str:
    """
    Build a single prompt asking for one numbered translation per input line.

    Args:
        texts: Fragment texts of one batch, in order
        source_language: Source language name or code
        target_language: Target language name or code

    Returns:
        Prompt text
    """
    count = len(texts)
    return f"""You are a professional subtitle translator. Translate the following {count} subtitle entries from {source_language} to {target_language}.

IMPORTANT INSTRUCTIONS:
- Maintain the exact same number of entries in your response ({count})
- Preserve subtitle timing and formatting conventions
- Keep translations concise and readable for subtitles
- Maintain natural dialogue flow and context
- Use appropriate cultural adaptations when necessary
- Number each translation entry exactly as shown below
- Output one translation per line and nothing else

Subtitle entries to translate:
{number_lines(texts)}

Provide the translations in the same numbered format:"""
