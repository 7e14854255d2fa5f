"""Tabular dataset loading and wide-to-long reshaping for charting."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd


def load_table(source: str | Path, **read_kwargs) -> pd.DataFrame:
    """Read a CSV from a local path or an http(s) URL.

    Raises:
        FileNotFoundError: local path does not exist
        ValueError: the table has no rows
    """
    source_str = str(source)
    if not source_str.startswith(("http://", "https://")):
        if not Path(source_str).exists():
            raise FileNotFoundError(f"Dataset not found: {source_str}")
    df = pd.read_csv(source_str, **read_kwargs)
    if df.empty:
        raise ValueError(f"Dataset is empty: {source_str}")
    return df


def wide_to_long(
    df: pd.DataFrame,
    id_column: str,
    value_columns: Sequence[str] | None = None,
    var_name: str = "measurement",
    value_name: str = "value",
) -> pd.DataFrame:
    """Reshape one-row-per-entity data into (entity, measurement, value) rows.

    Args:
        df: Wide table, one row per entity.
        id_column: Column identifying the entity.
        value_columns: Measurement columns to stack (default: every other column).
        var_name: Name of the measurement-type column in the result.
        value_name: Name of the value column in the result.

    Returns:
        Long table sorted by entity, then by measurement in the original column order.
    """
    if id_column not in df.columns:
        raise KeyError(f"id column not found: '{id_column}'")
    if value_columns is None:
        value_columns = [c for c in df.columns if c != id_column]
    value_columns = list(value_columns)
    missing = [c for c in value_columns if c not in df.columns]
    if missing:
        raise KeyError(f"value columns not found: {missing}")
    if id_column in value_columns:
        raise ValueError(f"id column '{id_column}' cannot also be a value column")
    if var_name in (id_column, value_name):
        raise ValueError("var_name must differ from id_column and value_name")

    long_df = df.melt(
        id_vars=[id_column],
        value_vars=value_columns,
        var_name=var_name,
        value_name=value_name,
    )
    order = {name: i for i, name in enumerate(value_columns)}
    long_df["_order"] = long_df[var_name].map(order)
    long_df = long_df.sort_values([id_column, "_order"], kind="stable")
    return long_df.drop(columns="_order").reset_index(drop=True)
