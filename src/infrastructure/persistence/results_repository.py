"""Results persistence - CSV-based implementation."""
import csv
import os
import time
from typing import Sequence

import pandas as pd

from domain.models import Candidate
from domain.ports import ForecastRepository, ResultsRepository


class CSVResultsRepository(ResultsRepository):
    """Persists evaluated candidates to a CSV file."""

    HEADERS = [
        'generation',
        'p',
        'd',
        'q',
        'P',
        'D',
        'Q',
        'cost',
        'valid',
        'timestamp',
    ]

    def __init__(self, filepath: str):
        """Initialize with file path."""
        self.filepath = filepath
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure parent directory exists."""
        os.makedirs(os.path.dirname(self.filepath) or '.', exist_ok=True)

    def append_header_if_needed(self) -> None:
        """Write header if file doesn't exist."""
        if not os.path.exists(self.filepath):
            self._ensure_directory()
            with open(self.filepath, 'w', newline='') as f:
                writer = csv.writer(f)
                writer.writerow(self.HEADERS)

    def append_candidates(self, candidates: Sequence[Candidate]) -> None:
        """Append evaluated candidates to CSV."""
        self._ensure_directory()
        now = time.time()
        with open(self.filepath, 'a', newline='') as f:
            writer = csv.writer(f)
            for candidate in candidates:
                writer.writerow([
                    candidate.generation,
                    *candidate.vector.to_list(),
                    f"{float(candidate.cost):.6f}",
                    int(candidate.is_valid),
                    f"{now:.0f}",
                ])


class CSVForecastRepository(ForecastRepository):
    """Persists the final forecast table for downstream plotting."""

    def __init__(self, filepath: str):
        """Initialize with file path."""
        self.filepath = filepath

    def save(self, table: pd.DataFrame) -> None:
        """Write the table with its date index."""
        os.makedirs(os.path.dirname(self.filepath) or '.', exist_ok=True)
        table.to_csv(self.filepath, index_label='date', float_format='%.6f')
