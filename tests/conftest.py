import os
import tempfile

# Configure an isolated writable test database BEFORE the package is imported.
# Use a temp file so parallel runs / reruns don't collide.
_tmp_db_path = os.path.join(tempfile.gettempdir(), f"discovery_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_db_path}"
os.environ.setdefault("MODERATION_DENYLIST", "spam,fake,scam")
os.environ.pop("MODERATION_SERVICE_URL", None)
if os.path.exists(_tmp_db_path):
    os.remove(_tmp_db_path)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from discovery.database import Base
from discovery import metadata, models  # noqa: F401  (register tables)


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def add_business(db):
    def _add(business_id="b1", owner_id="owner", status="published", **fields):
        business = models.Business(id=business_id, name=fields.pop("name", business_id), owner_id=owner_id,
                                   status=status, **fields)
        db.add(business)
        db.commit()
        return business
    return _add


@pytest.fixture
def add_review(db):
    def _add(review_id, business_id="b1", author_id="u1", rating=5, status="approved", helpful_count=0):
        review = models.Review(
            id=review_id, business_id=business_id, author_id=author_id, rating=rating,
            title="Solid visit", text="Everything was as described, would go again.",
            status=status, helpful_count=helpful_count, moderation_flags=[],
        )
        db.add(review)
        db.commit()
        return review
    return _add
