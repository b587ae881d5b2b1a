# storefront/data/seed.py
from storefront.data.database import SessionLocal
from storefront.data.models import ProductModel, StockModel

# katalog demo do lokalnego odpalenia z PAYMENT_GATEWAY=fake
CATALOG = [
    {"name": "Gelcoat", "price": 1400, "stock_level": 0, "stocks": [
        {"size": "Small", "price": 900, "stock_level": 25},
        {"size": "Large", "price": 1400, "stock_level": 10},
    ]},
    {"name": "Fibreglass Mat", "price": 2500, "stock_level": 40, "stocks": []},
    {"name": "Mixing Cups", "price": 350, "stock_level": 200, "stocks": []},
]


def seed(db=None) -> bool:
    own_session = db is None
    db = db or SessionLocal()
    try:
        # tylko gdy katalog jest pusty
        if db.query(ProductModel).first():
            return False
        for entry in CATALOG:
            product = ProductModel(
                name=entry["name"],
                price=entry["price"],
                stock_level=entry["stock_level"],
            )
            product.stocks = [StockModel(**stock) for stock in entry["stocks"]]
            db.add(product)
        db.commit()
        return True
    finally:
        if own_session:
            db.close()


if __name__ == "__main__":
    seed()
