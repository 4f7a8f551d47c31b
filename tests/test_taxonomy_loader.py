"""
Unit tests for taxonomy CSV import
"""

import pandas as pd
import pytest

from src.services.catalog import TaxonomyCSVLoader, import_taxonomy, CatalogDatabase


TAXONOMY_CSV = """Department,Category,Subcategory,Attribute,Data_Type,Is_Required,Options
Electronics,Audio,Headphones,Brand,text,yes,
Electronics,Audio,Headphones,Color,select,no,Black|White|Black
Electronics,Audio,Speakers,Power,number,TRUE,
Electronics,Computers,,Warranty,text,no,
Home,Kitchen,Cookware,Material,select,yes,Steel
"""


@pytest.fixture
def taxonomy_csv(tmp_path):
    csv_file = tmp_path / "taxonomy.csv"
    csv_file.write_text(TAXONOMY_CSV, encoding="utf-8")
    return csv_file


class TestTaxonomyCSVLoader:
    """Test CSV loading and row parsing"""

    def test_load_normalizes_columns(self, taxonomy_csv):
        df = TaxonomyCSVLoader().load(taxonomy_csv)

        assert list(df.columns) == [
            "department",
            "category",
            "subcategory",
            "attribute",
            "data_type",
            "is_required",
            "options",
        ]
        assert len(df) == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TaxonomyCSVLoader().load(tmp_path / "missing.csv")

    def test_missing_required_columns(self, tmp_path):
        csv_file = tmp_path / "bad.csv"
        csv_file.write_text("name,value\na,b\n", encoding="utf-8")

        with pytest.raises(ValueError, match="missing required columns"):
            TaxonomyCSVLoader().load(csv_file)

    def test_optional_columns_filled(self, tmp_path):
        csv_file = tmp_path / "minimal.csv"
        csv_file.write_text("department,category\nToys,Puzzles\n", encoding="utf-8")

        df = TaxonomyCSVLoader().load(csv_file)

        assert pd.isna(df.loc[0, "attribute"])

    def test_latin1_fallback(self, tmp_path):
        csv_file = tmp_path / "latin1.csv"
        csv_file.write_bytes("department,category\nCaf\xe9,Tables\n".encode("latin-1"))

        df = TaxonomyCSVLoader().load(csv_file)

        assert df.loc[0, "department"] == "Caf\xe9"

    def test_parse_row(self):
        row = TaxonomyCSVLoader().parse_row(
            {
                "department": " Home ",
                "category": "Kitchen",
                "subcategory": None,
                "attribute": "Material",
                "data_type": "SELECT",
                "is_required": "Y",
                "options": "Steel| Iron |Steel",
            }
        )

        assert row["department"] == "Home"
        assert row["data_type"] == "select"
        assert row["is_required"] is True
        assert row["options"] == ["Steel", "Iron"]

    def test_parse_row_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown data_type"):
            TaxonomyCSVLoader().parse_row(
                {"department": "Home", "category": "Kitchen", "data_type": "colour"}
            )


class TestImportTaxonomy:
    """Test applying a taxonomy to the database"""

    def test_import_creates_hierarchy(self, taxonomy_csv, temp_db_path):
        report = import_taxonomy(csv_path=taxonomy_csv, db_path=temp_db_path)

        assert report.total_rows == 5
        assert report.departments_created == 2
        assert report.categories_created == 3
        assert report.subcategories_created == 3
        assert report.attributes_created == 5
        assert report.skipped_rows == []

        db = CatalogDatabase(temp_db_path)
        computers = next(c for c in db.list_categories() if c.name == "Computers")
        assert [a.name for a in db.list_category_attributes(computers.id)] == ["Warranty"]

        headphones = next(c for c in db.list_categories() if c.name == "Headphones")
        color = next(
            a for a in db.list_category_attributes(headphones.id) if a.name == "Color"
        )
        assert color.option_values == ["Black", "White"]
        assert color.is_required is False

    def test_import_is_idempotent(self, taxonomy_csv, temp_db_path):
        import_taxonomy(csv_path=taxonomy_csv, db_path=temp_db_path)
        report = import_taxonomy(csv_path=taxonomy_csv, db_path=temp_db_path)

        assert report.departments_created == 0
        assert report.categories_created == 0
        assert report.subcategories_created == 0
        assert report.attributes_created == 0
        assert report.options_created == 0

    def test_new_options_added_to_existing_attribute(self, taxonomy_csv, temp_db_path, tmp_path):
        import_taxonomy(csv_path=taxonomy_csv, db_path=temp_db_path)

        extra = tmp_path / "extra.csv"
        extra.write_text(
            "department,category,subcategory,attribute,data_type,options\n"
            "Home,Kitchen,Cookware,Material,select,Steel|Copper\n",
            encoding="utf-8",
        )
        report = import_taxonomy(csv_path=extra, db_path=temp_db_path)

        assert report.options_created == 1
        db = CatalogDatabase(temp_db_path)
        material = next(a for a in db.list_attributes() if a.name == "Material")
        assert sorted(material.option_values) == ["Copper", "Steel"]

    def test_bad_rows_skipped(self, tmp_path, temp_db_path):
        csv_file = tmp_path / "mixed.csv"
        csv_file.write_text(
            "department,category,subcategory,attribute,data_type,options\n"
            "Toys,,,,,\n"
            "Toys,Puzzles,,Pieces,number,\n"
            "Toys,Puzzles,,Theme,select,\n",
            encoding="utf-8",
        )

        report = import_taxonomy(csv_path=csv_file, db_path=temp_db_path)

        assert [s["row"] for s in report.skipped_rows] == [2, 4]
        assert report.attributes_created == 1
