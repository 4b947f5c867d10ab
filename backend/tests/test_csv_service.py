"""
Product CSV import/export tests.
"""

from datetime import date

import pytest

from stockdesk.extensions import db
from stockdesk.models import Product
from stockdesk.services import csv_service
from stockdesk.validation import ValidationError


HEADER = "name,sku,barcode,description,purchase_price,selling_price,min_stock_level,category,expiry_date,is_active"


def test_export_columns_and_values(make_product, category):
    make_product("Cola", sku="COLA-1", barcode="12345678", price_cents=250,
                 min_stock_level=4, category_id=category.id, expiry_date=date(2026, 12, 31))

    lines = csv_service.export_products_csv().splitlines()

    assert lines[0] == HEADER
    assert lines[1] == "Cola,COLA-1,12345678,,1.25,2.50,4,Beverages,2026-12-31,true"


def test_template_has_sample_rows():
    lines = csv_service.sample_csv().splitlines()
    assert lines[0] == HEADER
    assert len(lines) == 4


def test_import_creates_and_updates_by_sku(db_session, make_product, category):
    make_product("Old Cola", sku="COLA-1", price_cents=100)
    text = "\n".join([
        HEADER,
        "Cola,COLA-1,,Fizzy,1.00,2.00,5,beverages,,true",
        "Water,WAT-1,,,0.20,0.50,0,,2027-01-01,false",
    ])

    result = csv_service.import_products_csv(text)

    assert result == {"imported": 2, "created": 1, "updated": 1, "errors": []}
    cola = db.session.query(Product).filter_by(sku="COLA-1").one()
    assert cola.name == "Cola"
    assert cola.selling_price_cents == 200
    assert cola.category_id == category.id
    water = db.session.query(Product).filter_by(sku="WAT-1").one()
    assert water.is_active is False
    assert water.expiry_date == date(2027, 1, 1)


def test_export_then_import_round_trip(db_session, make_product, category):
    make_product("Cola", sku="COLA-1", barcode="12345678", price_cents=250, min_stock_level=4,
                 category_id=category.id, expiry_date=date(2026, 12, 31))
    make_product("Crackers", sku="CRK-9", price_cents=999, is_active=False)
    before = {
        p.sku: (p.name, p.barcode, p.purchase_price_cents, p.selling_price_cents, p.min_stock_level,
                p.category_id, p.expiry_date, p.is_active)
        for p in db.session.query(Product)
    }

    result = csv_service.import_products_csv(csv_service.export_products_csv())

    assert result == {"imported": 2, "created": 0, "updated": 2, "errors": []}
    db.session.expire_all()
    after = {
        p.sku: (p.name, p.barcode, p.purchase_price_cents, p.selling_price_cents, p.min_stock_level,
                p.category_id, p.expiry_date, p.is_active)
        for p in db.session.query(Product)
    }
    assert after == before


def test_bad_rows_are_reported_and_skipped(db_session):
    text = "\n".join([
        "name,category,expiry_date",
        ",,2026-01-01",
        "Tea,Nowhere,",
        "Milk,,31/12/2026",
        "Sugar,,",
    ])

    result = csv_service.import_products_csv(text)

    assert result["created"] == 1
    assert result["errors"] == [
        "Row 2: Name is required",
        'Row 3: Category "Nowhere" not found',
        "Row 4: Invalid expiry date format (use YYYY-MM-DD)",
    ]
    assert [p.name for p in db.session.query(Product).all()] == ["Sugar"]


def test_headers_are_case_insensitive_and_bom_is_ignored(db_session):
    result = csv_service.import_products_csv("\ufeffNAME,Selling_Price\nBiscuits,1.5\n")
    assert result["created"] == 1
    assert db.session.query(Product).one().selling_price_cents == 150


def test_barcode_owned_by_another_product(db_session, make_product):
    make_product("Existing", sku="A", barcode="99999999")
    result = csv_service.import_products_csv("name,sku,barcode\nNew,B,99999999\n")
    assert result["created"] == 0
    assert result["errors"] == ["Row 2: Barcode 99999999 already belongs to another product"]


@pytest.mark.parametrize("text, message", [
    ("", "CSV file must have headers and at least one data row"),
    ("name,sku\n", "CSV file must have headers and at least one data row"),
    ("sku,barcode\nA,1\n", "Missing required headers: name"),
])
def test_header_problems(db_session, text, message):
    with pytest.raises(ValidationError, match=message):
        csv_service.import_products_csv(text)
