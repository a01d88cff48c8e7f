"""
Demo data set.

Deterministic: prices, quantities and specifications are derived from each
model's position in the list, so every seed produces identical stock.
Seeding is skipped when any user already exists.
"""
from __future__ import annotations

import logging

from ..extensions import db
from ..models import (
    Brand, Customer, Product, ProductStock, Reservation, Staff, Store, User,
    ROLE_STORE_ADMIN, ROLE_SUPER_ADMIN,
)
from ..models.operations import RESERVATION_CONFIRMED, STOCK_IN_STOCK
from . import auth_service
from .inventory_service import ensure_placeholder_product
from tireplan.time_utils import parse_iso_datetime, utcnow

logger = logging.getLogger(__name__)


DEMO_PASSWORD = "1234"

DEMO_USERS = [
    # id, name, role, phone, joined
    ("250001", "김대표", ROLE_STORE_ADMIN, "010-1234-5678", "2025-05-01T00:00:00"),
    ("250002", "박사장", ROLE_STORE_ADMIN, "010-9876-5432", "2025-05-02T00:00:00"),
    ("999999", "Master", ROLE_SUPER_ADMIN, None, "2025-01-01T00:00:00"),
]

DEMO_STORES = [
    # name, region, region_name
    ("서울 강남 본점", "01", "서울"),
    ("경기 수원점", "02", "경기"),
    ("인천 송도점", "03", "인천"),
]

DEMO_STAFF = [
    # staff name, index into DEMO_STORES
    ("이정비", 0),
    ("박매니저", 0),
    ("최신입", 1),
]

TIRE_BRANDS = ["한국", "금호", "넥센", "미쉐린", "콘티넨탈", "피렐리", "굿이어", "브리지스톤", "라우펜", "기타"]

TIRE_MODELS = {
    "한국": ["벤투스 S1 에보3 (K127)", "벤투스 S2 AS (H462)", "키너지 EX (H308)", "키너지 GT (H436)", "다이나프로 HL3 (RA45)"],
    "금호": ["마제스티 9 솔루스 TA91", "솔루스 TA51", "솔루스 TA21", "엑스타 PS71", "엑스타 PS31"],
    "넥센": ["엔페라 슈프림", "엔페라 AU7", "엔페라 SU1", "엔프리즈 AH8", "엔프리즈 RH7"],
    "미쉐린": ["파일럿 스포츠 5", "파일럿 스포츠 4 S", "프라이머시 4", "프라이머시 투어 A/S", "크로스클라이밋 2"],
    "콘티넨탈": ["프로콘택트 TX", "프로콘택트 GX", "콘티프로콘택트", "익스트림콘택트 DWS06 플러스", "울트라콘택트 UC6"],
    "피렐리": ["피제로 (P ZERO)", "피제로 올시즌", "신투라토 P7", "신투라토 P7 올시즌", "스콜피온 베르데"],
    "굿이어": ["이글 F1 어심메트릭 5", "이글 F1 어심메트릭 3", "이피션트그립 퍼포먼스", "어슈어런스 컴포트트레드", "어슈어런스 맥스가드"],
    "라우펜": ["S FIT AS", "G FIT AS", "X FIT HT", "X FIT AT", "I FIT ICE"],
    "기타": ["기타 타이어 모델"],
}

TIRE_SPECS = [
    "195/65R15", "205/55R16", "215/60R16", "225/55R17", "225/45R17",
    "235/55R17", "245/45R18", "235/45R18", "225/55R18", "245/40R19",
    "255/50R19", "235/55R19", "255/45R20", "275/40R20", "265/40R21",
]

# name, price, per-branch quantities (branch 1, 2, 3)
DEMO_PARTS = [
    ("엔진오일 교환 (합성유)", 80000, (50, 50, 0)),
    ("브레이크 패드 교체 (전륜)", 120000, (10, 5, 0)),
    ("와이퍼 세트 (Premium)", 35000, (25, 25, 0)),
    ("휠 밸런스 조정", 20000, (999, 999, 999)),
]

DEMO_CUSTOMERS = [
    # name, phone, car, plate, total_spent, last visit, visits
    ("홍길동", "010-1234-5678", "쏘나타 DN8", "12가3456", 350000, "2025-10-15T00:00:00", 2),
    ("김철수", "010-9876-5432", "아반떼 CN7", "56다7890", 120000, "2025-10-20T00:00:00", 1),
]


def _tire_rows():
    """(brand, name, price, spec, (q1, q2, q3)) for the demo tire catalog."""
    n = 0
    for brand in TIRE_BRANDS:
        for model in TIRE_MODELS.get(brand, []):
            yield (
                brand,
                model,
                100000 + (n * 37000) % 200000,
                TIRE_SPECS[(n * 7) % len(TIRE_SPECS)],
                (10 + (n * 3) % 15, 10 + (n * 5) % 15, 5),
            )
            n += 1


def seed_demo() -> bool:
    """Load the demo data set. Returns False if the database already has users."""
    if db.session.query(User.id).first() is not None:
        logger.info("Seed skipped: users already exist")
        return False

    password_hash = auth_service.hash_password(DEMO_PASSWORD)
    users = {}
    for user_id, name, role, phone, joined in DEMO_USERS:
        user = User(
            id=user_id,
            name=name,
            role=role,
            password_hash=password_hash,
            phone_number=phone,
            is_active=True,
            joined_at=parse_iso_datetime(joined),
        )
        db.session.add(user)
        users[user_id] = user
    db.session.flush()

    stores = []
    for name, region, region_name in DEMO_STORES:
        store = Store(owner_id="250001", name=name, region=region, region_name=region_name, is_active=True)
        db.session.add(store)
        stores.append(store)
    db.session.flush()
    users["250001"].home_store_id = stores[0].id

    for staff_name, store_idx in DEMO_STAFF:
        db.session.add(Staff(store_id=stores[store_idx].id, name=staff_name, is_active=True))

    for brand in TIRE_BRANDS:
        db.session.add(Brand(name=brand))

    def _add_product(name, brand, category, price, spec, quantities):
        product = Product(name=name, brand=brand, category=category, price=price, specification=spec)
        for store, qty in zip(stores, quantities):
            product.stocks.append(ProductStock(store_id=store.id, quantity=qty))
        db.session.add(product)
        return product

    first_tire = None
    for brand, name, price, spec, quantities in _tire_rows():
        product = _add_product(name, brand, "타이어", price, spec, quantities)
        first_tire = first_tire or product
    for name, price, quantities in DEMO_PARTS:
        _add_product(name, "기타", "기타", price, None, quantities)
    db.session.flush()

    # Inserted last so the catalog's own ids stay small
    ensure_placeholder_product()

    for name, phone, car, plate, spent, last_visit, visits in DEMO_CUSTOMERS:
        db.session.add(Customer(
            owner_id="250001",
            name=name,
            phone_number=phone,
            car_model=car,
            vehicle_number=plate,
            total_spent=spent,
            visit_count=visits,
            last_visit_at=parse_iso_datetime(last_visit),
        ))

    db.session.add(Reservation(
        store_id=stores[0].id,
        date=utcnow().date(),
        time="14:00",
        customer_name="최예약",
        phone_number="010-1111-2222",
        vehicle_number="99하1234",
        car_model="제네시스 G80",
        product_name=first_tire.name,
        specification=first_tire.specification,
        brand=first_tire.brand,
        quantity=4,
        status=RESERVATION_CONFIRMED,
        stock_status=STOCK_IN_STOCK,
    ))

    db.session.flush()
    logger.info("Seeded demo data: %s stores, %s users", len(stores), len(users))
    return True
