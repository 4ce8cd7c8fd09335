import re

import pandas as pd
import pytest

from restaurant_pos.core.config import Settings
from restaurant_pos.models import SalesRecord
from restaurant_pos.services import ExcelManager
from restaurant_pos.services.sales import SalesAggregator


async def test_record_sale_upserts_by_day(store, settings) -> None:
    sales = SalesAggregator(store, settings)

    await sales.record_sale("r1", "2024-05-01", 11.0)
    await sales.record_sale("r1", "2024-05-01", 22.0)
    await sales.record_sale("r1", "2024-05-02", 5.5)

    records = await sales.list_sales("r1")

    assert [(r.date, r.count) for r in records] == [("2024-05-02", 1), ("2024-05-01", 2)]
    assert records[1].total == pytest.approx(33.0)


async def test_sales_are_scoped_to_restaurant(store, settings) -> None:
    sales = SalesAggregator(store, settings)

    await sales.record_sale("r1", "2024-05-01", 10.0)

    assert await sales.list_sales("r2") == []


def test_today_uses_business_timezone(store) -> None:
    sales = SalesAggregator(store, Settings(_env_file=None, business_timezone="Pacific/Kiritimati"))

    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", sales.today())


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, business_timezone="Mars/Olympus")


def test_export_sales_to_excel(tmp_path) -> None:
    records = [
        SalesRecord(restaurant_id="r1", date="2024-05-02", total=55.0, count=2),
        SalesRecord(restaurant_id="r1", date="2024-05-01", total=0.0, count=0),
    ]

    result = ExcelManager.export_sales("r1", records, data_dir=tmp_path)

    assert result["success"] is True
    assert (tmp_path / "sales_r1.xlsx").exists()
    rows = pd.read_excel(result["file_path"], engine="openpyxl").to_dict("records")
    assert [row["date"] for row in rows] == ["2024-05-02", "2024-05-01"]
    assert rows[0]["average_per_table"] == pytest.approx(27.5)
    assert rows[1]["average_per_table"] == 0


def test_export_overwrites_previous_workbook(tmp_path) -> None:
    ExcelManager.export_sales("r1", [SalesRecord(date="2024-05-01", total=1.0, count=1)], data_dir=tmp_path)
    result = ExcelManager.export_sales("r1", [], data_dir=tmp_path)

    workbook = pd.read_excel(result["file_path"], engine="openpyxl")
    assert workbook.empty
    assert list(workbook.columns) == ExcelManager.SALES_COLUMNS
