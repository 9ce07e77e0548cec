"""Seed script: fills the DB with demo data."""
import os
import sys

# Ensure we're in the project root
sys.path.insert(0, os.path.dirname(__file__))

from app.database import Base, engine, SessionLocal
import app.models  # noqa: F401 (registers all models)
from app.models.user import User, Department
from app.models.asset import Asset, AssetType
from app.models.stationary import StationaryItem, StockLocation, StockLevel, Vendor, MovementType
from app.services.authorization import seed_default_permissions
from app.services.quantity_ledger import adjust_stock
from datetime import date
from decimal import Decimal


def seed():
    os.makedirs("data", exist_ok=True)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    seed_default_permissions(db)

    # Departments
    departments = [
        Department(code="IT", name="IT Services"),
        Department(code="SCI", name="Science"),
        Department(code="ENG", name="English"),
        Department(code="ADM", name="Administration"),
    ]
    existing_codes = {d.code for d in db.query(Department).all()}
    for department in departments:
        if department.code not in existing_codes:
            db.add(department)
    db.commit()
    dept = {d.code: d.id for d in db.query(Department).all()}

    # One user per default role
    users_data = [
        ("admin", "admin", "System Administrator", "IT"),
        ("tech", "technician", "Tom Technician", "IT"),
        ("scihead", "department_head", "Sam Science Head", "SCI"),
        ("director", "director", "Dana Director", "ADM"),
        ("store", "storekeeper", "Stella Storekeeper", "ADM"),
        ("teacher1", "user", "Terry Teacher", "SCI"),
        ("teacher2", "user", "Taylor Teacher", "ENG"),
    ]
    existing_users = {u.username for u in db.query(User).all()}
    for username, role, full_name, dept_code in users_data:
        if username not in existing_users:
            db.add(User(
                username=username,
                email=f"{username}@school.local",
                full_name=full_name,
                role=role,
                department_id=dept[dept_code],
            ))
    db.commit()

    # Assets
    assets_data = [
        ("NB-0001", "Dell Latitude 5440", AssetType.it, "Notebook", "SN-DL-0001", date(2024, 8, 1), "28500.00"),
        ("NB-0002", "Dell Latitude 5440", AssetType.it, "Notebook", "SN-DL-0002", date(2024, 8, 1), "28500.00"),
        ("NB-0003", "Lenovo ThinkPad E14", AssetType.it, "Notebook", "SN-LN-0003", date(2023, 7, 15), "24900.00"),
        ("TB-0001", "iPad 10th gen", AssetType.it, "Tablet", "SN-IP-0001", date(2024, 1, 10), "12990.00"),
        ("PRJ-0001", "Epson EB-W49 projector", AssetType.it, "Projector", "SN-EP-0001", date(2022, 9, 1), "15400.00"),
        ("FM-CHR-001", "Folding chair", AssetType.fm, "Furniture", None, date(2021, 3, 1), "890.00"),
        ("FM-TBL-001", "Event table", AssetType.fm, "Furniture", None, date(2021, 3, 1), "2450.00"),
    ]
    existing_asset_codes = {a.code for a in db.query(Asset).all()}
    for code, name, asset_type, category, sn, pd, price in assets_data:
        if code not in existing_asset_codes:
            db.add(Asset(
                code=code, name=name, asset_type=asset_type.value, category=category,
                serial_number=sn, purchase_date=pd, purchase_price=Decimal(price),
            ))
    db.commit()

    # Stationary
    if not db.query(StockLocation).first():
        db.add(StockLocation(code="MAIN", name="Main store room"))
        db.add(StockLocation(code="SCI-LAB", name="Science lab cupboard"))
    if not db.query(Vendor).first():
        db.add(Vendor(vendor_code="V-001", name="Office Supplies Ltd.", contact_person="Olga Office",
                      email="orders@officesupplies.example", phone="+420 555 010 010"))
    items_data = [
        ("PEN-BL", "Ballpoint pen, blue", "pcs", "8.50", 100),
        ("A4-500", "Copy paper A4, 500 sheets", "ream", "129.00", 20),
        ("MRK-WB", "Whiteboard marker set", "set", "95.00", 10),
        ("STPL", "Stapler", "pcs", "149.00", 5),
    ]
    existing_item_codes = {i.item_code for i in db.query(StationaryItem).all()}
    for code, name, uom, cost, reorder in items_data:
        if code not in existing_item_codes:
            db.add(StationaryItem(item_code=code, name=name, uom=uom, unit_cost=Decimal(cost), reorder_level=reorder))
    db.commit()

    main = db.query(StockLocation).filter_by(code="MAIN").first()
    admin = db.query(User).filter_by(username="admin").first()
    for item in db.query(StationaryItem).all():
        if db.query(StockLevel).filter_by(item_id=item.id, location_id=main.id).first():
            continue
        adjust_stock(db, item.id, main.id, item.reorder_level * 3, MovementType.adjust.value,
                     reference="opening balance", user_id=admin.id, unit_cost=item.unit_cost)
    db.commit()

    db.close()
    print("Seed finished")


if __name__ == "__main__":
    seed()
