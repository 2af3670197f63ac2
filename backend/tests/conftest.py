import os, sys, pytest
# Ensure the backend directory is on path so 'mall_admin' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from mall_admin import create_app, get_db
from mall_admin.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import mall_admin.models.audit  # noqa: F401
import mall_admin.models.resource_item  # noqa: F401

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
    'TESTING': True,
}


@pytest.fixture()
def app_instance():
    # Fresh in-memory database per test; the pushed app context is shared with client requests.
    app = create_app(dict(TEST_CONFIG))
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
        yield app
        get_db().rollback()
        Base.metadata.drop_all(engine)


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
