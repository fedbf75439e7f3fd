"""
Line-oriented editing primitives for Obsidian notes.

Everything here works on strings and lists of lines, so the matching
rules can be exercised without touching the filesystem.
"""

import re

LINE_SPLIT = re.compile(r"\r?\n")


def embed_pattern(file_name: str) -> re.Pattern:
    """Matches an ``![[...file_name...]]`` embed anywhere on a line."""
    name = re.escape(file_name)
    return re.compile(rf"!\[\[([^\]]*{name}[^\]]*)\]\]", re.IGNORECASE)


def legacy_link_pattern(file_name: str) -> re.Pattern:
    """Matches an old ``[[...file_name...|Open: ...]]`` link."""
    name = re.escape(file_name)
    return re.compile(rf"\[\[([^\]]*{name}[^\]]*\|Open:[^\]]*)\]\]", re.IGNORECASE)


def remove_legacy_links(content: str, file_name: str) -> str:
    return legacy_link_pattern(file_name).sub("", content)


def split_lines(content: str) -> list[str]:
    return LINE_SPLIT.split(content)


def line_ending(content: str) -> str:
    """The note's own line ending: CRLF if it uses any, LF otherwise."""
    return "\r\n" if "\r\n" in content else "\n"


def block_follows(lines: list[str], index: int, block: str) -> bool:
    """
    True when the lines right after *index* already hold *block*, or when
    the next line is the block's opening line (an earlier hidden block).
    """
    block_lines = split_lines(block)
    following = lines[index + 1:index + 1 + len(block_lines)]
    if following == block_lines:
        return True
    return index + 1 < len(lines) and lines[index + 1] == block_lines[0]


def insert_after_matches(
    lines: list[str], pattern: re.Pattern, block: str
) -> tuple[list[str], int]:
    """
    Insert *block* after every line matching *pattern*.

    Returns the new line list and the number of insertions.  The inserted
    block is skipped over so it is never matched again in the same pass.
    """
    result = list(lines)
    inserted = 0
    i = 0
    while i < len(result):
        if pattern.search(result[i]) and not block_follows(result, i, block):
            result.insert(i + 1, block)
            inserted += 1
            i += 1
        i += 1
    return result, inserted


def replace_case_insensitive(content: str, old: str, new: str) -> str:
    """Replace every occurrence of *old* (literal, any case) with *new*."""
    if not old:
        return content
    return re.sub(re.escape(old), lambda _m: new, content, flags=re.IGNORECASE)
