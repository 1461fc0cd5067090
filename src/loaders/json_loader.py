"""
Load the precomputed JSON fact tables
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import polars as pl

from config.settings import DATA_DIR, DataFiles

logger = logging.getLogger(__name__)


class JsonDataLoader:
    """Read-only access to the JSON files produced by the offline pipeline"""

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)
        self.provider_dir = self.data_dir / "providers"
        self._records: Dict[str, Any] = {}
        self._frames: Dict[str, pl.DataFrame] = {}

    def path_for(self, filename: str) -> Path:
        return self.data_dir / filename

    def exists(self, filename: str) -> bool:
        return self.path_for(filename).exists()

    def load_records(self, filename: str) -> Any:
        """Load a JSON file once and keep it for the life of the loader"""
        if filename not in self._records:
            path = self.path_for(filename)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    self._records[filename] = json.load(f)
            except FileNotFoundError:
                logger.error(f"Data file not found: {path}")
                raise
            except json.JSONDecodeError as e:
                logger.error(f"Invalid JSON in {path}: {e}")
                raise
            logger.info(f"Loaded {filename}")
        return self._records[filename]

    def load_optional(self, filename: str, default: Any = None) -> Any:
        """Load a file that some deployments do not ship"""
        if not self.exists(filename):
            logger.warning(f"Optional data file not found: {self.path_for(filename)}")
            return default
        return self.load_records(filename)

    def load_frame(self, filename: str) -> pl.DataFrame:
        """Load a JSON list of records as a DataFrame"""
        if filename not in self._frames:
            records = self.load_records(filename)
            if not isinstance(records, list):
                raise ValueError(f"{filename} does not hold a list of records")
            if records:
                df = pl.from_dicts(records, infer_schema_length=None)
            else:
                df = pl.DataFrame()
            logger.info(f"{filename}: {df.height} rows, {df.width} columns")
            self._frames[filename] = df
        return self._frames[filename]

    def load_drug_frame(self) -> pl.DataFrame:
        """Full drug table when shipped, otherwise the top-drugs table"""
        if self.exists(DataFiles.DRUGS_FULL):
            return self.load_frame(DataFiles.DRUGS_FULL)
        return self.load_frame(DataFiles.DRUGS)

    def load_provider(self, npi: str) -> Optional[Dict[str, Any]]:
        """Full provider record, or None when the NPI has no detail file"""
        if not npi or not npi.isdigit():
            return None
        path = self.provider_dir / f"{npi}.json"
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def file_status(self, filenames: List[str]) -> Dict[str, bool]:
        return {name: self.exists(name) for name in filenames}

    def clear_cache(self) -> None:
        self._records.clear()
        self._frames.clear()
