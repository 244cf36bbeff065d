"""
JavaScript p,a,c,k,e,d unpacker.

Embed hosts often hide their player config behind Dean Edwards' packer:
  eval(function(p,a,c,k,e,d){...})

The extractor appends the unpacked source to the page text so the
stream-URL patterns can see inside it.
"""
from __future__ import annotations
import re

_PACKED_RE = re.compile(
    r"eval\(function\(p,a,c,k,e,[dr]\)\{.*?\}\('(.*?)',(\d+),(\d+),'(.*?)'\.split\('\|'\)",
    re.DOTALL,
)

_B62 = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


def detect(text: str) -> bool:
    """Check if text contains packed JS."""
    return bool(_PACKED_RE.search(text))


def _decode_base62(s: str) -> int:
    val = 0
    for ch in s:
        val = val * 62 + _B62.index(ch)
    return val


def _unpack_match(match: re.Match) -> str:
    payload, radix_s, count_s, symtab_raw = match.groups()
    radix = int(radix_s)
    count = int(count_s)
    symtab = symtab_raw.split("|")
    while len(symtab) < count:
        symtab.append("")

    def _replacer(m: re.Match) -> str:
        word = m.group(0)
        try:
            idx = int(word, radix) if radix <= 36 else _decode_base62(word)
        except ValueError:
            return word
        return symtab[idx] if idx < len(symtab) and symtab[idx] else word

    return re.sub(r"\b\w+\b", _replacer, payload)


def unpack_all(text: str) -> list[str]:
    """Unpack every packed block in the page, in order."""
    return [_unpack_match(m) for m in _PACKED_RE.finditer(text)]
