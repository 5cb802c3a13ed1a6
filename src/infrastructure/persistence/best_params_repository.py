"""Best parameters persistence - JSON-based implementation."""
import json
import os
import time
from typing import Optional

from domain.models import Candidate, HyperparameterVector
from domain.ports import BestParamsRepository


class JSONBestParamsRepository(BestParamsRepository):
    """Persists the best candidate to a JSON file."""

    def __init__(self, filepath: str):
        """Initialize with file path."""
        self.filepath = filepath
        self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Ensure parent directory exists."""
        os.makedirs(os.path.dirname(self.filepath) or '.', exist_ok=True)

    def save(self, candidate: Candidate) -> None:
        """Save best candidate to JSON file."""
        self._ensure_directory()
        payload = {
            'best_params': candidate.vector.to_dict(),
            'best_cost': candidate.cost,
            'generation': candidate.generation,
            'timestamp': time.time(),
        }
        with open(self.filepath, 'w') as f:
            json.dump(payload, f, indent=2)

    def load(self) -> Optional[Candidate]:
        """Load best candidate from JSON file."""
        if not os.path.exists(self.filepath):
            return None

        try:
            with open(self.filepath, 'r') as f:
                data = json.load(f)

            return Candidate(
                vector=HyperparameterVector.from_dict(data['best_params']),
                cost=float(data['best_cost']),
                generation=int(data.get('generation', 0)),
            )
        except (json.JSONDecodeError, KeyError, IOError, ValueError):
            return None
