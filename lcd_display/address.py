"""
DDRAM address computation.

HD44780 controllers map visible cells onto display data RAM in a fixed
pattern: rows 0 and 1 start at 0x00 and 0x40, and on 4-row modules rows 2
and 3 continue those lines right after the visible columns.
"""

from typing import Tuple


def ddram_row_offsets(cols: int) -> Tuple[int, int, int, int]:
    """Return the DDRAM start address of each of the four possible rows."""
    return (0x00, 0x40, 0x00 + cols, 0x40 + cols)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def ddram_address(rows: int, cols: int, row: int, col: int) -> int:
    """
    Compute the DDRAM address for a cursor position.

    Out-of-range positions are clamped to the nearest visible cell, so
    negative values land on row/column 0 and overlarge ones on the last.

    Args:
        rows: Number of display rows (1-4)
        cols: Number of display columns
        row: Zero-based target row
        col: Zero-based target column

    Returns:
        int: 7-bit DDRAM address
    """
    row = _clamp(row, 0, rows - 1)
    col = _clamp(col, 0, cols - 1)
    return ddram_row_offsets(cols)[row] + col
