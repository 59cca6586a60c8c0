from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, func, desc
from typing import List, Optional
from datetime import date

from app.shared.database.models import Price, ProductoGestor
from .schemas import PriceFilters

class PriceRepository:
    def __init__(self, db: Session):
        self.db = db

    # ===== PRECIOS =====

    def _key_filter(self, section: str, product: str, weight: Optional[str], price_type: str):
        weight_filter = Price.weight.is_(None) if weight is None else Price.weight == weight
        return and_(
            Price.section == section,
            Price.product == product,
            weight_filter,
            Price.price_type == price_type
        )

    def find_prices(self, filters: PriceFilters) -> List[Price]:
        query = self.db.query(Price)
        if filters.section:
            query = query.filter(Price.section == filters.section)
        if filters.product:
            query = query.filter(Price.product.ilike(f"%{filters.product}%"))
        if filters.weight:
            query = query.filter(Price.weight == filters.weight)
        if filters.price_type:
            query = query.filter(Price.price_type == filters.price_type)
        if filters.month:
            query = query.filter(Price.month == filters.month)
        if filters.year:
            query = query.filter(Price.year == filters.year)
        if filters.is_active is not None:
            query = query.filter(Price.is_active == filters.is_active)
        return query.order_by(
            Price.section, Price.product, Price.weight, Price.price_type, desc(Price.effective_date)
        ).all()

    def get_by_id(self, price_id: int) -> Optional[Price]:
        return self.db.query(Price).filter(Price.id == price_id).first()

    def get_history(self, section: str, product: str, weight: Optional[str], price_type: str) -> List[Price]:
        return self.db.query(Price).filter(
            self._key_filter(section, product, weight, price_type)
        ).order_by(desc(Price.effective_date), desc(Price.created_at), desc(Price.id)).all()

    def get_latest_before(
        self, section: str, product: str, weight: Optional[str], price_type: str, before: date
    ) -> Optional[Price]:
        return self.db.query(Price).filter(
            self._key_filter(section, product, weight, price_type),
            Price.effective_date < before
        ).order_by(desc(Price.effective_date), desc(Price.id)).first()

    def get_effective_until(self, day: date) -> List[Price]:
        """Precios activos vigentes al día indicado, del más nuevo al más viejo"""
        return self.db.query(Price).filter(
            Price.is_active == True,
            Price.effective_date <= day
        ).order_by(desc(Price.effective_date), desc(Price.created_at), desc(Price.id)).all()

    def find_effective_price(
        self,
        section: str,
        product: str,
        weight: Optional[str],
        price_type: str,
        day: date,
        match_weight: bool = True
    ) -> Optional[Price]:
        """Precio activo más reciente con fecha efectiva hasta `day`; el producto sin distinguir mayúsculas"""
        query = self.db.query(Price).filter(
            Price.section == section,
            func.upper(Price.product) == product.upper(),
            Price.price_type == price_type,
            Price.is_active == True,
            Price.effective_date <= day
        )
        if match_weight:
            if weight:
                query = query.filter(Price.weight == weight)
            else:
                query = query.filter(or_(Price.weight.is_(None), Price.weight == ""))
        return query.order_by(desc(Price.effective_date), desc(Price.created_at), desc(Price.id)).first()

    def get_active(self) -> List[Price]:
        return self.db.query(Price).filter(Price.is_active == True).all()

    def count_in_period(self, month: int, year: int) -> int:
        return self.db.query(func.count(Price.id)).filter(Price.month == month, Price.year == year).scalar()

    def exists_in_period(
        self, section: str, product: str, weight: Optional[str], price_type: str, month: int, year: int
    ) -> bool:
        return self.db.query(Price.id).filter(
            self._key_filter(section, product, weight, price_type),
            Price.month == month,
            Price.year == year
        ).first() is not None

    def get_in_period(self, month: int, year: int) -> List[Price]:
        return self.db.query(Price).filter(Price.month == month, Price.year == year).order_by(
            Price.section, Price.product, Price.weight, Price.price_type
        ).all()

    def get_recent(self, limit: int = 10) -> List[Price]:
        return self.db.query(Price).order_by(desc(Price.created_at), desc(Price.id)).limit(limit).all()

    def create(self, data: dict, commit: bool = True) -> Price:
        price = Price(**data)
        self.db.add(price)
        if commit:
            self.db.commit()
            self.db.refresh(price)
        return price

    def update(self, price: Price, data: dict) -> Price:
        for key, value in data.items():
            setattr(price, key, value)
        self.db.commit()
        self.db.refresh(price)
        return price

    def delete(self, price: Price) -> None:
        self.db.delete(price)
        self.db.commit()

    def delete_product_prices(self, section: str, product: str, weight: Optional[str]) -> int:
        weight_filter = Price.weight.is_(None) if weight is None else Price.weight == weight
        count = self.db.query(Price).filter(
            Price.section == section, Price.product == product, weight_filter
        ).delete(synchronize_session=False)
        return count

    def commit(self) -> None:
        self.db.commit()

    # ===== PRODUCTOS GESTOR =====

    def get_productos(self) -> List[ProductoGestor]:
        return self.db.query(ProductoGestor).order_by(ProductoGestor.order, ProductoGestor.id).all()

    def get_producto(self, producto_id: int) -> Optional[ProductoGestor]:
        return self.db.query(ProductoGestor).filter(ProductoGestor.id == producto_id).first()

    def get_producto_by_key(self, section: str, product: str, weight: Optional[str]) -> Optional[ProductoGestor]:
        weight_filter = ProductoGestor.weight.is_(None) if weight is None else ProductoGestor.weight == weight
        return self.db.query(ProductoGestor).filter(
            ProductoGestor.section == section,
            ProductoGestor.product == product,
            weight_filter
        ).first()

    def next_producto_order(self) -> int:
        current = self.db.query(func.max(ProductoGestor.order)).scalar()
        return 0 if current is None else current + 1

    def create_producto(self, data: dict, commit: bool = True) -> ProductoGestor:
        producto = ProductoGestor(**data)
        self.db.add(producto)
        if commit:
            self.db.commit()
            self.db.refresh(producto)
        return producto

    def update_producto(self, producto: ProductoGestor, data: dict) -> ProductoGestor:
        for key, value in data.items():
            setattr(producto, key, value)
        self.db.commit()
        self.db.refresh(producto)
        return producto

    def delete_producto(self, producto: ProductoGestor) -> None:
        self.db.delete(producto)
        self.db.commit()
