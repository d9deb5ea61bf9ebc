"""Fixtures compartidos: SQLite en archivo por test, cliente HTTP y storage temporal."""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="billing-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"
os.environ["INVOICE_STORAGE"] = "local"
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'app.db')}")
os.environ.setdefault("INVOICES_DIR", os.path.join(_TMP_DIR, "invoices"))

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from billing.database.database import Base, build_engine, get_db
from billing.main import app
from billing.modules.invoices.service import InvoiceService, get_invoice_service
from billing.modules.invoices.storage import LocalInvoiceStorage
from billing.modules.products.models import Product


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'billing.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def invoice_storage(tmp_path):
    return LocalInvoiceStorage(str(tmp_path / "invoices"), "/invoices")


@pytest.fixture
def invoice_service(invoice_storage):
    return InvoiceService(invoice_storage)


@pytest.fixture
def client(session_factory, invoice_service):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_invoice_service] = lambda: invoice_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db_session):
    """Crea productos directamente en la base de datos del test"""
    def _make(code="P1", name=None, opening_stock="10", purchases="0", sales="0", rate="100", gst_perc="18"):
        product = Product(
            code=code,
            name=name or f"Product {code}",
            opening_stock=Decimal(opening_stock),
            purchases=Decimal(purchases),
            sales=Decimal(sales),
            rate=Decimal(rate),
            gst_perc=Decimal(gst_perc)
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def fetch_product(session_factory):
    """Lee el estado confirmado de un producto con una sesión nueva"""
    def _fetch(code):
        session = session_factory()
        try:
            return session.query(Product).filter(Product.code == code).first()
        finally:
            session.close()
    return _fetch
