# src/Epochipy/infrastructure/exporters/csv_exporter.py
# -*- coding: utf-8 -*-
"""
CSV Exporter for Epochipy.
Handles exporting observation tables and analysis results to CSV format.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from Epochipy.core.results import FittedModel
from Epochipy.shared.error_handling import ExportError

log = logging.getLogger('Epochipy.infrastructure.exporters.csv_exporter')


class CSVExporter:
    """
    Handles export of tables and model estimates to CSV files.
    """

    def __init__(self, float_format: str = "%.6g"):
        self.float_format = float_format

    @staticmethod
    def _prepare_path(output_path: Path) -> Path:
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportError(f"Cannot create output directory {output_path.parent}: {e}") from e
        return output_path

    def export_table(self, table: pd.DataFrame, output_path: Path, index: bool = False) -> Path:
        """
        Write a DataFrame (observations, predictions or bootstrap summary) to CSV.

        Args:
            table: The table to write. Categorical columns are written as their labels.
            output_path: Destination file.
            index: Whether to include the DataFrame index.

        Returns:
            The path written.
        """
        if table is None:
            raise ExportError("Nothing to export: table is None.")
        output_path = self._prepare_path(output_path)
        log.debug(f"Writing {len(table)} row(s) to CSV: {output_path}")
        try:
            table.to_csv(output_path, index=index, float_format=self.float_format)
        except OSError as e:
            log.error(f"Failed to export CSV to {output_path}: {e}")
            raise ExportError(f"Failed to write {output_path}: {e}") from e
        log.info(f"Exported {len(table)} row(s) to {output_path}")
        return output_path

    def export_fixed_effects(self, model: FittedModel, output_path: Path) -> Path:
        """Write fixed-effect estimates with standard errors and Wald intervals."""
        frame = model.summary_frame().rename_axis('term')
        return self.export_table(frame, output_path, index=True)

    def export_random_effects(self, model: FittedModel, output_path: Path) -> Path:
        """Write the per-time-point BLUPs with their conditional standard deviations."""
        frame = model.random_effects.copy()
        for col_idx, column in enumerate(model.random_columns):
            frame[f"{column}_sd"] = [
                float(np.sqrt(max(model.random_effects_cov[t][col_idx, col_idx], 0.0)))
                for t in model.random_effects.index
            ]
        return self.export_table(frame, output_path, index=True)

    def export_variance_components(self, model: FittedModel, output_path: Path) -> Path:
        """Write the random-effect covariance matrix and the residual variance."""
        frame = model.cov_re.rename_axis('term')
        frame.loc['Residual', :] = np.nan
        frame['Residual'] = np.nan
        frame.loc['Residual', 'Residual'] = model.scale
        return self.export_table(frame, output_path, index=True)
