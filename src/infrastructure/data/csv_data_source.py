"""CSV data source adapter."""
from typing import Optional

import pandas as pd

from domain.ports import DataSource


class CSVDataSource(DataSource):
    """Loads a dated series from a CSV file, optionally resampled by summing."""

    def __init__(self, filepath: str, target_column: str, frequency: Optional[str] = None):
        """Initialize with file path, target column and optional resample frequency (e.g. 'MS')."""
        self.filepath = filepath
        self.target_column = target_column
        self.frequency = frequency

    def load(self) -> pd.DataFrame:
        """Load CSV file."""
        df = pd.read_csv(self.filepath, header=0)
        df.set_index(df.columns[0], inplace=True)
        df.index = pd.to_datetime(df.index)
        df = df.sort_index()[[self.target_column]].astype(float)
        if self.frequency:
            df = df.resample(self.frequency).sum()
        return df
