"""Base64 VLQ codec for the `mappings` field of compact source maps."""

from __future__ import annotations

from typing import Final, Sequence

from sourcechain.errors import MapFormatError


Segment = tuple[int, ...]
SegmentLine = list[Segment]
SegmentTable = list[SegmentLine]

_ALPHABET: Final[str] = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_CHAR_TO_INT: Final[dict[str, int]] = {ch: index for index, ch in enumerate(_ALPHABET)}

_VLQ_SHIFT: Final[int] = 5
_VLQ_CONTINUATION: Final[int] = 1 << _VLQ_SHIFT
_VLQ_MASK: Final[int] = _VLQ_CONTINUATION - 1

_SEGMENT_LENGTHS: Final[frozenset[int]] = frozenset({1, 4, 5})


def decode_values(field: str) -> list[int]:
    """Decode one comma-free VLQ run into signed integers."""
    values: list[int] = []
    shift = 0
    accumulator = 0
    for ch in field:
        digit = _CHAR_TO_INT.get(ch)
        if digit is None:
            raise MapFormatError(
                code="MAP003",
                message=f"Invalid base64 VLQ character {ch!r} in mappings.",
                hint="The mappings string must only contain base64 characters, ',' and ';'.",
            )
        accumulator += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        negative = accumulator & 1
        accumulator >>= 1
        values.append(-accumulator if negative else accumulator)
        shift = 0
        accumulator = 0
    if shift:
        raise MapFormatError(
            code="MAP003",
            message=f"Truncated VLQ value in segment {field!r}.",
            hint="The last digit of a value must not carry the continuation bit.",
        )
    return values


def encode_value(value: int) -> str:
    """Encode one signed integer as base64 VLQ."""
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    chars: list[str] = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        chars.append(_ALPHABET[digit])
        if not vlq:
            return "".join(chars)


def decode(mappings: str) -> SegmentTable:
    """Decode a mappings string into absolute, zero-based segments.

    The generated column restarts on every line; source index, original
    line, original column and name index are relative to the previous
    segment carrying them, across lines.
    """
    table: SegmentTable = []
    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0

    for raw_line in mappings.split(";"):
        line: SegmentLine = []
        generated_column = 0
        ordered = True
        for field in raw_line.split(","):
            if not field:
                continue
            values = decode_values(field)
            if len(values) not in _SEGMENT_LENGTHS:
                raise MapFormatError(
                    code="MAP004",
                    message=f"Segment {field!r} has {len(values)} fields; expected 1, 4 or 5.",
                    hint="Check that the map was produced by a compliant encoder.",
                )

            generated_column += values[0]
            if line and generated_column < line[-1][0]:
                ordered = False
            if len(values) == 1:
                line.append((generated_column,))
                continue

            source_index += values[1]
            original_line += values[2]
            original_column += values[3]
            if len(values) == 4:
                line.append((generated_column, source_index, original_line, original_column))
                continue

            name_index += values[4]
            line.append((generated_column, source_index, original_line, original_column, name_index))

        if not ordered:
            line.sort(key=lambda segment: segment[0])
        table.append(line)

    return table


def encode(table: Sequence[Sequence[Segment]]) -> str:
    """Encode absolute segments back into a mappings string."""
    source_index = 0
    original_line = 0
    original_column = 0
    name_index = 0

    lines: list[str] = []
    for line in table:
        generated_column = 0
        fields: list[str] = []
        for segment in line:
            if len(segment) not in _SEGMENT_LENGTHS:
                raise MapFormatError(
                    code="MAP004",
                    message=f"Cannot encode segment {tuple(segment)!r}; expected 1, 4 or 5 fields.",
                )
            parts = [encode_value(segment[0] - generated_column)]
            generated_column = segment[0]
            if len(segment) >= 4:
                parts.append(encode_value(segment[1] - source_index))
                parts.append(encode_value(segment[2] - original_line))
                parts.append(encode_value(segment[3] - original_column))
                source_index, original_line, original_column = segment[1], segment[2], segment[3]
            if len(segment) == 5:
                parts.append(encode_value(segment[4] - name_index))
                name_index = segment[4]
            fields.append("".join(parts))
        lines.append(",".join(fields))

    return ";".join(lines)
