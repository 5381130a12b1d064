"""
Plain-text table alignment

Tables are rendered without borders: every cell is left aligned, padded to
its column width and followed by a fixed gap. Widths are terminal cell
widths, so wide characters line up.
"""

from typing import List, Sequence

from rich.cells import cell_len

COLUMN_GAP = "    "
HEADER_END = " "


def column_widths(rows: Sequence[Sequence[str]]) -> List[int]:
    """Widest cell per column; short rows count as empty cells"""
    widths: List[int] = []
    for row in rows:
        for index, cell in enumerate(row):
            width = cell_len(cell)
            if index >= len(widths):
                widths.append(width)
            elif width > widths[index]:
                widths[index] = width
    return widths


def _pad(row: Sequence[str], widths: Sequence[int]) -> List[str]:
    cells = list(row) + [""] * (len(widths) - len(row))
    return [cell + " " * (width - cell_len(cell)) for cell, width in zip(cells, widths)]


def _join(rows: Sequence[Sequence[str]], widths: Sequence[int], gap: str) -> List[str]:
    return ["".join(cell + gap for cell in _pad(row, widths)) for row in rows]


def align_rows(rows: Sequence[Sequence[str]], gap: str = COLUMN_GAP) -> List[str]:
    """Render rows as aligned lines, trailing padding included"""
    return _join(rows, column_widths(rows), gap)


def align_table(header: Sequence[str], rows: Sequence[Sequence[str]], gap: str = COLUMN_GAP) -> List[str]:
    """Like align_rows with a header line on top

    The header's last cell is followed by a single space instead of the gap.
    """
    widths = column_widths([header] + list(rows))
    cells = _pad(header, widths)
    heading = "".join(cell + gap for cell in cells[:-1]) + cells[-1] + HEADER_END
    return [heading] + _join(rows, widths, gap)
