"""
UnitExtractor: associates ``[unit]`` annotations with assignment targets.

Runs over raw source text, independently of the parser, one line at a time.
An assignment line opens a pending association; the first bracketed unit on
that line (or on a directly following comment-only line) closes it. Bare
``[unit]`` text wins over a unit written inside a comment.
"""

import re
from typing import Dict, List, Optional, Tuple

from eqsolve.core.variable import canonical_name


ASSIGNMENT_START = re.compile(r'^\s*([A-Za-z][A-Za-z0-9_]*\$?)\s*(?::=|=)(?!=)')
UNIT_TOKEN = re.compile(r'\[([^\]\n]*)\]')


class UnitExtractor:
    """
    Extracts a variable -> unit mapping from source text.

    Usage:
        UnitExtractor().extract('T := 20 "[C]"\\nP = 101.3 [kPa]')
        # {'T': 'C', 'P': 'kPa'}

    Names are matched case-insensitively; the mapping is keyed by the first
    spelling seen and a later annotation of the same variable overwrites
    the unit.
    """

    def extract(self, text: str) -> Dict[str, str]:
        units: Dict[str, str] = {}
        spellings: Dict[str, str] = {}
        pending: Optional[str] = None
        # Open comment carried over from the previous line: None, '{' or '"'
        open_comment: Optional[str] = None

        for line in text.splitlines():
            code, comments, open_comment = _split_comments(line, open_comment)

            match = ASSIGNMENT_START.match(code)
            if match:
                pending = match.group(1)
                unit = _find_unit(code, comments)
            elif not line.strip():
                continue
            elif not code.strip():
                unit = _find_unit('', comments) if pending else None
            else:
                pending = None
                continue

            if pending and unit is not None:
                key = canonical_name(pending)
                spelling = spellings.setdefault(key, pending)
                units[spelling] = unit
                pending = None

        return units


def _find_unit(code: str, comments: List[str]) -> Optional[str]:
    """Bare [unit] in code first, then the first [unit] inside a comment"""
    for candidate in [code] + comments:
        found = UNIT_TOKEN.search(candidate)
        if found and found.group(1).strip():
            return found.group(1).strip()
    return None


def _split_comments(line: str, open_comment: Optional[str]) -> Tuple[str, List[str], Optional[str]]:
    """
    Separate one line into code text and comment bodies.

    Args:
        line: Source line without its newline
        open_comment: '{' or '"' if a comment is still open from earlier lines

    Returns:
        (code, comments, open_comment) where open_comment is the comment kind
        still open at the end of the line
    """
    code: List[str] = []
    comments: List[str] = []
    position = 0
    length = len(line)

    while position < length:
        if open_comment == '{':
            end = line.find('}', position)
            if end < 0:
                comments.append(line[position:])
                return ''.join(code), comments, open_comment
            comments.append(line[position:end])
            position = end + 1
            open_comment = None
        elif open_comment == '"':
            end = _closing_quote(line, position)
            if end < 0:
                comments.append(line[position:])
                return ''.join(code), comments, open_comment
            comments.append(line[position:end])
            position = end + 1
            open_comment = None
        else:
            char = line[position]
            if char == '{' or char == '"':
                open_comment = char
                position += 1
            elif line.startswith('//', position):
                comments.append(line[position + 2:])
                break
            elif char == "'":
                # string literals may contain comment characters
                end = line.find("'", position + 1)
                while end >= 0 and line.startswith("''", end):
                    end = line.find("'", end + 2)
                end = length - 1 if end < 0 else end
                code.append(line[position:end + 1])
                position = end + 1
            else:
                code.append(char)
                position += 1

    return ''.join(code), comments, open_comment


def _closing_quote(line: str, position: int) -> int:
    """Index of the '"' closing a quote comment ('""' is an escaped quote), or -1"""
    while True:
        end = line.find('"', position)
        if end < 0:
            return -1
        if line.startswith('""', end):
            position = end + 2
            continue
        return end
