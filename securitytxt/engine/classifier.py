"""
securitytxt/engine/classifier.py
Splits a raw document into lines and tags each line with its field kind.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

SIGNED_MESSAGE_HEADER = "-----BEGIN PGP SIGNED MESSAGE-----"
SIGNATURE_HEADER = "-----BEGIN PGP SIGNATURE-----"


class FieldKind(Enum):
    """Kinds a single line can be classified as."""
    COMMENT = "Comment"
    BLANK = "Blank"
    EXPIRES = "Expires"
    CONTACT = "Contact"
    ACKNOWLEDGMENTS = "Acknowledgments"
    CANONICAL = "Canonical"
    HIRING = "Hiring"
    POLICY = "Policy"
    ENCRYPTION = "Encryption"
    PREFERRED_LANGUAGES = "Preferred-Languages"
    INVALID = "Invalid"

    @property
    def is_field(self) -> bool:
        return self not in (FieldKind.COMMENT, FieldKind.BLANK, FieldKind.INVALID)

    @property
    def is_simple_https(self) -> bool:
        return self in SIMPLE_HTTPS_FIELDS


SIMPLE_HTTPS_FIELDS = frozenset({
    FieldKind.ACKNOWLEDGMENTS,
    FieldKind.CANONICAL,
    FieldKind.HIRING,
    FieldKind.POLICY,
})

# Field name prefix, the colon and the whitespace separating it from the value.
FIELD_PREFIX_RE = re.compile(
    r"^(?P<name>" + "|".join(re.escape(k.value) for k in FieldKind if k.is_field) + r"):[ \t]+",
    re.IGNORECASE,
)
_KIND_BY_NAME = {k.value.lower(): k for k in FieldKind if k.is_field}


@dataclass(frozen=True)
class ClassifiedLine:
    kind: FieldKind
    line: str
    raw_value: str = ""
    value_offset: int = 0

    @property
    def field_name(self) -> str:
        """The field name exactly as written in the input."""
        if not self.kind.is_field:
            return ""
        return self.line[:self.line.index(":")]

    def with_value(self, value: str) -> str:
        """Rebuild the line with a new value, keeping the original prefix."""
        return self.line[:self.value_offset] + value


def split_lines(text: str) -> List[str]:
    """Normalize CR/LF and lone CR terminators to LF and split into lines."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def strip_clearsign_armor(lines: List[str]) -> Tuple[List[str], bool]:
    """
    Extract the signed body of an OpenPGP clear-signed message.

    Returns the lines unchanged and False when the input is not clear-signed.
    """
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1
    if start >= len(lines) or lines[start].strip() != SIGNED_MESSAGE_HEADER:
        return lines, False

    # Armor headers ("Hash: SHA512") end at the first empty line.
    index = start + 1
    while index < len(lines) and lines[index].strip():
        index += 1
    index += 1

    body: List[str] = []
    for line in lines[index:]:
        if line.strip() == SIGNATURE_HEADER:
            break
        if line.startswith("- "):
            line = line[2:]
        body.append(line)
    return body, True


def classify(line: str) -> ClassifiedLine:
    """Tag one normalized line with its kind."""
    if line == "":
        return ClassifiedLine(FieldKind.BLANK, line)
    if line.startswith("#"):
        return ClassifiedLine(FieldKind.COMMENT, line)

    match = FIELD_PREFIX_RE.match(line)
    if not match:
        return ClassifiedLine(FieldKind.INVALID, line)

    kind = _KIND_BY_NAME[match.group("name").lower()]
    return ClassifiedLine(kind, line, raw_value=line[match.end():], value_offset=match.end())


def classify_document(lines: List[str]) -> List[ClassifiedLine]:
    return [classify(line) for line in lines]


def normalize_line(line: str) -> str:
    """Trim surrounding spaces and tabs the way a shell `read` does."""
    return line.strip(" \t")
