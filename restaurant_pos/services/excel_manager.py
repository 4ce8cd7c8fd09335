"""
Excel File Manager with Concurrency Control

Writes a restaurant's daily sales records to an Excel workbook for the
manager. One workbook per restaurant, rewritten on every export under a
file lock so two managers exporting at once never interleave writes.

Version: 1.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from restaurant_pos.core.config import get_settings
from restaurant_pos.models import SalesRecord

logger = logging.getLogger(__name__)


class ExcelManager:
    """Thread-safe Excel export of sales records."""

    SALES_COLUMNS = [
        "date",
        "total",
        "count",
        "average_per_table",
        "exported_at",
    ]

    @classmethod
    def _data_dir(cls, data_dir: Optional[Path]) -> Path:
        directory = Path(data_dir or get_settings().data_directory)
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {directory}")
        return directory

    @classmethod
    def sales_file(cls, restaurant_id: str, data_dir: Optional[Path] = None) -> Path:
        return cls._data_dir(data_dir) / f"sales_{restaurant_id}.xlsx"

    @classmethod
    def export_sales(
        cls,
        restaurant_id: str,
        records: list[SalesRecord],
        data_dir: Optional[Path] = None,
    ) -> dict[str, Any]:
        """
        Export sales records to Excel with file locking.

        Returns:
            dict: success flag, message, file path and export time
        """
        file_path = cls.sales_file(restaurant_id, data_dir)
        lock_path = file_path.parent / f"{file_path.name}.lock"
        lock_timeout = get_settings().export_lock_timeout

        result = {
            "success": False,
            "message": "",
            "restaurant_id": restaurant_id,
            "file_path": str(file_path),
            "exported_at": None,
        }

        try:
            with FileLock(str(lock_path), timeout=lock_timeout):
                logger.debug(f"Lock acquired for sales export {restaurant_id}")

                export_time = datetime.now().isoformat()
                rows = [
                    {
                        "date": record.date,
                        "total": round(record.total, 2),
                        "count": record.count,
                        "average_per_table": round(record.total / record.count, 2) if record.count else 0.0,
                        "exported_at": export_time,
                    }
                    for record in records
                ]

                df = pd.DataFrame(rows, columns=cls.SALES_COLUMNS)
                df.to_excel(str(file_path), index=False, engine="openpyxl")

                logger.info(f"Sales for {restaurant_id} exported ({len(rows)} days)")

                result["success"] = True
                result["message"] = f"{len(rows)} days exported"
                result["exported_at"] = export_time

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error(f"Lock timeout for sales export {restaurant_id}")

        except OSError as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting sales for {restaurant_id}")

        return result

