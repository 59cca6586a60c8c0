# app/shared/database/models.py
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Date, Text,
    Float, ForeignKey, UniqueConstraint, JSON
)
from sqlalchemy.orm import relationship, validates
from sqlalchemy.dialects.postgresql import JSONB

from app.config.database import Base
from app.shared.utils.dates import utcnow

# JSONB en PostgreSQL, JSON genérico en el resto (tests con SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# =====================================================
# MIXIN PARA TIMESTAMPS
# =====================================================
class TimestampMixin:
    """Mixin que agrega campos created_at y updated_at"""
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# =====================================================
# USUARIOS DEL GESTOR
# =====================================================

class User(Base, TimestampMixin):
    """Usuario del panel de administración"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default="user")
    permissions = Column(JSONType, nullable=False, default=list)
    # Puntos de envío asignados; vacío = sin restricción
    puntos_envio = Column(JSONType, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    email_templates = relationship("EmailTemplate", back_populates="created_by")
    campaigns = relationship("ScheduledEmailCampaign", back_populates="user")

    @property
    def full_name(self):
        return f"{self.name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# =====================================================
# ÓRDENES
# =====================================================

class Order(Base, TimestampMixin):
    """Pedido de la tienda (minorista, mayorista o express)"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    total = Column(Float, nullable=False, default=0)
    sub_total = Column(Float, nullable=False, default=0)
    shipping_price = Column(Float, nullable=False, default=0)
    notes = Column(Text, default="")
    notes_own = Column(Text, default="")

    # Documentos embebidos
    address = Column(JSONType, nullable=False, default=dict)
    buyer = Column(JSONType, nullable=False, default=dict)
    items = Column(JSONType, nullable=False, default=list)
    coupon = Column(JSONType)
    delivery_area = Column(JSONType)
    # Copia de delivery_area.sameDayDelivery para filtrar en SQL
    same_day_delivery = Column(Boolean, nullable=False, default=False, index=True)

    buyer_email = Column(String(255), index=True)
    payment_method = Column(String(50))
    order_type = Column(String(20), default="minorista")
    delivery_day = Column(Date, index=True)
    punto_envio = Column(String(255), index=True)
    # Punto de venta de las órdenes mayoristas
    punto_de_venta_id = Column(Integer, ForeignKey("puntos_venta.id"), index=True)
    estado_envio = Column(String(20))
    whatsapp_contacted_at = Column(DateTime)

    @validates("delivery_area")
    def _sync_same_day(self, key, value):
        self.same_day_delivery = bool((value or {}).get("sameDayDelivery"))
        return value

    @property
    def is_same_day(self) -> bool:
        return bool((self.delivery_area or {}).get("sameDayDelivery"))


class ClientStatus(Base):
    """Marcas por cliente (visibilidad y contacto por WhatsApp)"""
    __tablename__ = "client_status"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    is_hidden = Column(Boolean, nullable=False, default=False)
    whatsapp_contacted_at = Column(DateTime)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# =====================================================
# MAYORISTAS (PUNTOS DE VENTA)
# =====================================================

class Mayorista(Base, TimestampMixin):
    """Cuenta mayorista / punto de venta"""
    __tablename__ = "puntos_venta"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), nullable=False, index=True)
    zona = Column(String(20), nullable=False, index=True)
    frecuencia = Column(String(20), nullable=False)
    fecha_inicio_ventas = Column(Date, nullable=False)
    fecha_primer_pedido = Column(Date)
    fecha_ultimo_pedido = Column(Date)
    tiene_freezer = Column(Boolean, nullable=False, default=False)
    cantidad_freezers = Column(Integer)
    capacidad_freezer = Column(Float)
    tipos_negocio = Column(JSONType, nullable=False, default=list)
    horarios = Column(Text)
    telefono = Column(String(100))
    email = Column(String(255))
    direccion = Column(String(500))
    notas = Column(Text)
    kilos_por_mes = Column(JSONType, nullable=False, default=list)
    activo = Column(Boolean, nullable=False, default=True, index=True)


class MayoristaPersona(Base, TimestampMixin):
    """Datos de contacto de quien compra en las órdenes mayoristas"""
    __tablename__ = "mayorista_personas"
    __table_args__ = (UniqueConstraint("name", "last_name", name="uq_mayorista_persona"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, default="")
    email = Column(String(255))
    phone = Column(String(100), index=True)
    address = Column(JSONType, nullable=False, default=dict)


# =====================================================
# PRECIOS
# =====================================================

class Price(Base, TimestampMixin):
    """Precio con fecha efectiva (historial)"""
    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, index=True)
    section = Column(String(10), nullable=False, index=True)
    product = Column(String(255), nullable=False, index=True)
    weight = Column(String(50))
    price_type = Column(String(20), nullable=False)
    price = Column(Float, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    effective_date = Column(Date, nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)


class ProductoGestor(Base, TimestampMixin):
    """Catálogo de productos que maneja la grilla de precios"""
    __tablename__ = "productos_gestor"
    __table_args__ = (UniqueConstraint("section", "product", "weight", name="uq_producto_gestor"),)

    id = Column(Integer, primary_key=True, index=True)
    section = Column(String(10), nullable=False)
    product = Column(String(255), nullable=False)
    weight = Column(String(50))
    price_types = Column(JSONType, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    order = Column(Integer, nullable=False, default=0)


# =====================================================
# REPARTOS
# =====================================================

class RepartoWeek(Base, TimestampMixin):
    """Semana de repartos: días "1".."6" con sus filas"""
    __tablename__ = "repartos"

    id = Column(Integer, primary_key=True, index=True)
    week_key = Column(String(10), nullable=False, index=True)
    data = Column(JSONType, nullable=False, default=dict)


# =====================================================
# EXPRESS: PUNTOS DE ENVÍO, STOCK Y PRIORIDAD
# =====================================================

class PuntoEnvio(Base, TimestampMixin):
    """Punto de envío express"""
    __tablename__ = "puntos_envio"

    id = Column(Integer, primary_key=True, index=True)
    nombre = Column(String(255), nullable=False, unique=True)
    cutoff_time = Column(String(5))


class Stock(Base, TimestampMixin):
    """Stock diario de un producto en un punto de envío"""
    __tablename__ = "stock"

    id = Column(Integer, primary_key=True, index=True)
    punto_envio = Column(String(255), nullable=False, index=True)
    section = Column(String(20))
    producto = Column(String(255), nullable=False)
    peso = Column(String(50))
    stock_inicial = Column(Float, nullable=False, default=0)
    llevamos = Column(Float, nullable=False, default=0)
    pedidos_del_dia = Column(Float, nullable=False, default=0)
    stock_final = Column(Float, nullable=False, default=0)
    fecha = Column(String(10), nullable=False, index=True)


class OrderPriority(Base, TimestampMixin):
    """Orden manual de los pedidos de un día en un punto de envío"""
    __tablename__ = "order_priorities"
    __table_args__ = (UniqueConstraint("fecha", "punto_envio", name="uq_order_priority"),)

    id = Column(Integer, primary_key=True, index=True)
    fecha = Column(String(10), nullable=False)
    punto_envio = Column(String(255), nullable=False)
    order_ids = Column(JSONType, nullable=False, default=list)


# =====================================================
# CAMPAÑAS DE EMAIL
# =====================================================

class EmailTemplate(Base, TimestampMixin):
    """Template de email"""
    __tablename__ = "email_templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    subject = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    description = Column(Text)
    is_default = Column(Boolean, nullable=False, default=False)
    created_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))

    created_by = relationship("User", back_populates="email_templates")
    campaigns = relationship("ScheduledEmailCampaign", back_populates="email_template")


class ScheduledEmailCampaign(Base, TimestampMixin):
    """Campaña de email programada con expresión cron"""
    __tablename__ = "scheduled_email_campaigns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    schedule_cron = Column(String(100), nullable=False)
    target_type = Column(String(20), nullable=False)
    target_category = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    email_template_id = Column(Integer, ForeignKey("email_templates.id", ondelete="SET NULL"))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    last_run = Column(DateTime)
    next_run = Column(DateTime)

    email_template = relationship("EmailTemplate", back_populates="campaigns")
    user = relationship("User", back_populates="campaigns")
