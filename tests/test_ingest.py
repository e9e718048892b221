import json

import pytest

from propmatch.ingest import load_properties
from propmatch.models import Property


def _write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLoadJson:
    def test_loads_records_in_order(self, tmp_path):
        path = _write_json(
            tmp_path / "list_a.json",
            [
                {"description": "Marina Facility", "limit": "$1.2M", "mortgageAmount": "900K"},
                {"description": "Shopping Mall", "limit": "3000000", "mortgageAmount": ""},
            ],
        )

        records = load_properties(path)

        assert records == [
            Property("Marina Facility", "$1.2M", "900K"),
            Property("Shopping Mall", "3000000", ""),
        ]

    def test_numeric_money_coerced_to_text(self, tmp_path):
        path = _write_json(
            tmp_path / "a.json",
            [{"description": "Golf Course Clubhouse", "limit": 2500000, "mortgageAmount": 1.5}],
        )
        (record,) = load_properties(path)
        assert record.limit == "2500000"
        assert record.mortgage_amount == "1.5"

    def test_money_fields_optional(self, tmp_path):
        path = _write_json(tmp_path / "a.json", [{"description": "Industrial Warehouse"}])
        (record,) = load_properties(path)
        assert record.limit == ""
        assert record.mortgage_amount == ""

    def test_empty_array(self, tmp_path):
        assert load_properties(_write_json(tmp_path / "a.json", [])) == []

    def test_rejects_non_array(self, tmp_path):
        path = _write_json(tmp_path / "a.json", {"description": "x"})
        with pytest.raises(ValueError, match="JSON array"):
            load_properties(path)

    def test_rejects_invalid_json(self, tmp_path):
        path = tmp_path / "a.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(ValueError, match="invalid JSON"):
            load_properties(path)

    def test_rejects_missing_description(self, tmp_path):
        path = _write_json(tmp_path / "a.json", [{"limit": "1M"}])
        with pytest.raises(ValueError, match="item 0 is missing description"):
            load_properties(path)

    def test_rejects_non_object_items(self, tmp_path):
        path = _write_json(tmp_path / "a.json", ["Marina Facility"])
        with pytest.raises(ValueError, match="not an object"):
            load_properties(path)


class TestLoadCsv:
    def test_loads_cells_as_text(self, tmp_path):
        path = tmp_path / "list_b.csv"
        path.write_text(
            "description,limit,mortgageAmount\n"
            "Coastal Boating Center,1200000,900000\n"
            '"Retail Storefront, with Warehouse",1.5M,\n',
            encoding="utf-8",
        )

        records = load_properties(path)

        assert records[0] == Property("Coastal Boating Center", "1200000", "900000")
        assert records[1].description == "Retail Storefront, with Warehouse"
        assert records[1].limit == "1.5M"
        assert records[1].mortgage_amount == ""

    def test_requires_description_column(self, tmp_path):
        path = tmp_path / "b.csv"
        path.write_text("name,limit\nx,1\n", encoding="utf-8")
        with pytest.raises(ValueError, match="description"):
            load_properties(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_properties(tmp_path / "nope.json")


def test_unsupported_extension(tmp_path):
    path = tmp_path / "a.xlsx"
    path.write_bytes(b"")
    with pytest.raises(ValueError, match="Unsupported input format"):
        load_properties(path)
