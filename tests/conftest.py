import pytest
from catalog import create_app
from catalog.extensions import db as _db
from catalog.models.product import Product
from catalog.services import variant_store


@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    app = create_app("testing")
    with app.app_context():
        yield app


@pytest.fixture
def db(app):
    """Fresh schema per test; services commit, so nested rollback is not enough."""
    _db.create_all()
    yield _db
    _db.session.remove()
    _db.drop_all()


@pytest.fixture
def client(app, db):
    return app.test_client()


@pytest.fixture
def make_product(db):
    """Create a product with options, return (product_id, ids).

    ``ids`` maps option name → option id and (option name, value) → value id.
    """

    def _make(options, title="Test Tee", price_cents=5000):
        product = Product(title=title, price_cents=price_cents)
        db.session.add(product)
        db.session.commit()

        ids = {}
        for name, values in options:
            option = variant_store.create_option(product.id, name)
            ids[name] = option.id
            for text in values:
                value = variant_store.create_option_value(option.id, text)
                ids[(name, text)] = value.id
        return product.id, ids

    return _make
