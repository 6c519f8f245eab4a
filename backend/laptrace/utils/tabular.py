"""
Reading delimited data blocks with uneven row widths.

Lap timer exports often end data rows with a stray delimiter, or carry more
channels on some rows than on others. Columns are matched by position, so a
long row never shifts its cells or disappears.
"""

import io
from typing import Sequence

import pandas as pd


def read_csv_block(lines: Sequence[str], columns: Sequence[str]) -> pd.DataFrame:
    """
    Read data lines (no header) into a DataFrame of strings.

    Cells are assigned to ``columns`` by position. Short rows are padded with
    NaN and cells past the last named column are dropped.

    Args:
        lines: CSV data lines
        columns: Unique names for the leading columns

    Returns:
        DataFrame with exactly ``columns``, one row per non-blank line
    """
    if not any(line.strip() for line in lines):
        return pd.DataFrame({name: pd.Series(dtype=object) for name in columns})

    # Quoted delimiters only overcount, which adds unused padding columns
    width = max([len(columns)] + [line.count(",") + 1 for line in lines])
    names = list(columns) + [f"_extra_{i}" for i in range(width - len(columns))]

    df = pd.read_csv(
        io.StringIO("\n".join(lines)),
        header=None,
        names=names,
        index_col=False,
        dtype=str,
        skip_blank_lines=True,
    )
    return df[list(columns)]
