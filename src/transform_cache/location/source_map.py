"""Minimal reader for version 3 source maps.

Only what location lookup needs: decode ``mappings`` and answer "which original
position produced this generated position". Lines and columns are 0-based here.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Any

_BASE64 = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_VALUES = {char: index for index, char in enumerate(_BASE64)}

_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT
_VLQ_MASK = _VLQ_CONTINUATION - 1


class SourceMapError(ValueError):
    """Raised for a source map this reader cannot decode."""


@dataclass(frozen=True)
class OriginalPosition:
    source: str
    line: int
    column: int
    name: str | None = None


@dataclass(frozen=True)
class _Segment:
    generated_column: int
    source_index: int
    original_line: int
    original_column: int
    name_index: int | None


def decode_vlq(segment: str) -> list[int]:
    values: list[int] = []
    value = 0
    shift = 0
    for char in segment:
        digit = _BASE64_VALUES.get(char)
        if digit is None:
            raise SourceMapError(f"Invalid base64 character {char!r} in mappings")
        value += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        negative = value & 1
        value >>= 1
        values.append(-value if negative else value)
        value = 0
        shift = 0
    if shift:
        raise SourceMapError(f"Truncated VLQ value in segment {segment!r}")
    return values


def _decode_mappings(mappings: str) -> list[list[_Segment]]:
    lines: list[list[_Segment]] = []
    source_index = original_line = original_column = name_index = 0
    for line_text in mappings.split(";"):
        generated_column = 0
        segments: list[_Segment] = []
        for field in line_text.split(","):
            if not field:
                continue
            values = decode_vlq(field)
            generated_column += values[0]
            if len(values) == 1:
                # Generated-only segment: no original position.
                segments.append(_Segment(generated_column, -1, -1, -1, None))
                continue
            if len(values) < 4:
                raise SourceMapError(f"Segment {field!r} has {len(values)} fields")
            source_index += values[1]
            original_line += values[2]
            original_column += values[3]
            current_name: int | None = None
            if len(values) >= 5:
                name_index += values[4]
                current_name = name_index
            segments.append(_Segment(generated_column, source_index, original_line, original_column, current_name))
        segments.sort(key=lambda seg: seg.generated_column)
        lines.append(segments)
    return lines


class SourceMapConsumer:
    def __init__(self, raw: dict[str, Any]) -> None:
        if not isinstance(raw, dict):
            raise SourceMapError(f"Source map must be an object, not {type(raw).__name__}")
        if raw.get("version") != 3:
            raise SourceMapError(f"Unsupported source map version {raw.get('version')!r}")
        if "sections" in raw:
            raise SourceMapError("Indexed source maps are not supported")
        source_root = raw.get("sourceRoot") or ""
        sources = raw.get("sources", [])
        names = raw.get("names", [])
        mappings = raw.get("mappings", "")
        if not isinstance(source_root, str):
            raise SourceMapError("'sourceRoot' must be a string")
        if not isinstance(sources, list) or not all(source is None or isinstance(source, str) for source in sources):
            raise SourceMapError("'sources' must be a list of strings")
        if not isinstance(names, list) or not all(isinstance(name, str) for name in names):
            raise SourceMapError("'names' must be a list of strings")
        if not isinstance(mappings, str):
            raise SourceMapError("'mappings' must be a string")

        self.sources = [self._join_root(source_root, source or "") for source in sources]
        self.names: list[str] = list(names)
        self._lines = _decode_mappings(mappings)
        self._columns = [[seg.generated_column for seg in line] for line in self._lines]

    @staticmethod
    def _join_root(root: str, source: str) -> str:
        if not root or source.startswith("/") or "://" in source:
            return source
        return root.rstrip("/") + "/" + source

    def original_position_for(self, line: int, column: int) -> OriginalPosition | None:
        """Find the original position of the closest mapping at or before ``column``."""
        if line < 0 or line >= len(self._lines):
            return None
        index = bisect_right(self._columns[line], column) - 1
        if index < 0:
            return None
        segment = self._lines[line][index]
        if segment.source_index < 0 or segment.source_index >= len(self.sources):
            return None
        name = None
        if segment.name_index is not None and 0 <= segment.name_index < len(self.names):
            name = self.names[segment.name_index]
        return OriginalPosition(
            source=self.sources[segment.source_index],
            line=segment.original_line,
            column=segment.original_column,
            name=name,
        )
