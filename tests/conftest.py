# WORKFLOW: Shared pytest fixtures.
# Fixtures:
# 1. engine / db - in-memory SQLite database with all nomenclature tables
# 2. make_record - NomenclatureRecord factory for engine tests
# 3. DummyEmbeddingModel - constant vectors so indexing runs without downloading a model

import numpy as np
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import settings
from db.models import Base
from db.session import init_db
from services.records import NomenclatureRecord

SECTION_1_EN = "Live animals; animal products"
SECTION_1_LT = "Gyvi gyvūnai; gyvūninės kilmės produktai"


class DummyEmbeddingModel:
    """Returns the same vector for every text."""

    def encode(self, texts, normalize=True):
        if isinstance(texts, str):
            texts = [texts]
        return np.ones((len(texts), settings.vector_dimension))

    def encode_batch(self, texts, batch_size=32, normalize=True):
        return self.encode(texts)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def embedding_model():
    return DummyEmbeddingModel()


@pytest.fixture
def make_record():
    def _make_record(id, goods_code, hierarchy_path, description, indent=0, language="EN",
                     section_name=SECTION_1_EN, section_number=1, is_leaf=None):
        return NomenclatureRecord(
            id=id,
            goods_code=goods_code,
            hierarchy_path=hierarchy_path,
            description=description,
            indent=indent,
            language=language,
            section_name=section_name,
            section_number=section_number if section_name is not None else None,
            is_leaf=is_leaf,
        )
    return _make_record
