"""
Metric type to file table.

Each metric type names a fixed, ordered group of pre-processed JSON files in
the metrics bucket. The table is fixed at process start, either the built-in
reference deployment below or a YAML override of the same shape::

    admission:
      - admissions_by_type_60_days.json
      - admissions_by_type_by_month.json
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from shared.logging import get_logger
from .exceptions import ConfigurationError


FILES_BY_METRIC_TYPE: Dict[str, Tuple[str, ...]] = {
    "admission": (
        "admissions_by_type_60_days.json",
        "admissions_by_type_by_month.json",
        "admissions_versus_releases_by_month.json",
    ),
    "reincarceration": (
        "reincarceration_rate_by_release_facility.json",
        "reincarceration_rate_by_stay_length.json",
        "reincarceration_rate_by_transitional_facility.json",
        "reincarcerations_by_month.json",
    ),
    "revocation": (
        "revocations_by_month.json",
        "revocations_by_race_60_days.json",
        "revocations_by_supervision_type_by_month.json",
        "revocations_by_violation_type_by_month.json",
    ),
}

DEFAULT_FILE_SUFFIX = ".json"


class MetricFileCatalog:
    """Immutable lookup of metric type -> file names."""

    def __init__(
        self,
        files_by_type: Optional[Mapping[str, Sequence[str]]] = None,
        *,
        suffix: str = DEFAULT_FILE_SUFFIX,
    ):
        source = FILES_BY_METRIC_TYPE if files_by_type is None else files_by_type
        self.suffix = suffix
        self._files: Dict[str, Tuple[str, ...]] = {}

        for metric_type, files in source.items():
            if isinstance(files, (str, bytes)) or not files:
                raise ConfigurationError(
                    f"Metric type '{metric_type}' must map to a non-empty list of files",
                    metric_type=metric_type,
                )
            names = tuple(str(name) for name in files)
            keys = [self.file_key(name) for name in names]
            if len(set(keys)) != len(keys):
                raise ConfigurationError(
                    f"Metric type '{metric_type}' has files that share a file key",
                    metric_type=metric_type,
                )
            self._files[str(metric_type)] = names

    def __contains__(self, metric_type: object) -> bool:
        return metric_type in self._files

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def metric_types(self) -> List[str]:
        """Return the configured metric types in table order."""
        return list(self._files)

    def files_for(self, metric_type: str) -> Tuple[str, ...]:
        """Return the files for a metric type or raise ``ConfigurationError``."""
        try:
            return self._files[metric_type]
        except KeyError:
            raise ConfigurationError(
                f"No files configured for metric type '{metric_type}'",
                metric_type=metric_type,
            ) from None

    def file_key(self, file_name: str) -> str:
        """Strip the configured suffix from a file name."""
        if self.suffix and file_name.endswith(self.suffix):
            return file_name[: -len(self.suffix)]
        return file_name

    def as_dict(self) -> Dict[str, List[str]]:
        return {metric_type: list(files) for metric_type, files in self._files.items()}

    @classmethod
    def from_yaml(cls, path: Union[str, Path], *, suffix: str = DEFAULT_FILE_SUFFIX) -> "MetricFileCatalog":
        """Load a catalog from a YAML mapping of metric type -> file list."""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Metric file table not found: {path}")

        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(f"Metric file table must be a mapping: {path}")

        return cls(data, suffix=suffix)


def load_catalog(path: Optional[Union[str, Path]] = None, *, suffix: str = DEFAULT_FILE_SUFFIX) -> MetricFileCatalog:
    """Return the YAML catalog at ``path`` or the built-in table."""
    logger = get_logger("dashboard.catalog")
    if path:
        catalog = MetricFileCatalog.from_yaml(path, suffix=suffix)
        logger.info("Loaded metric file table", path=str(path), metric_types=catalog.metric_types())
        return catalog
    return MetricFileCatalog(suffix=suffix)
