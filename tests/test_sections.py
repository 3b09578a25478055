import pandas as pd
import pytest

from db.models import SectionChapterMapping, SectionDescription
from etl.sections import (
    SECTION_CHAPTER_RANGES, chapter_section_map, load_section_descriptions, section_for_chapter,
    seed_section_chapter_mapping, store_section_descriptions
)


def test_every_chapter_has_one_section():
    mapping = chapter_section_map()

    assert len(SECTION_CHAPTER_RANGES) == 21
    assert sorted(mapping) == list(range(1, 100))


@pytest.mark.parametrize("chapter,section", [(1, 1), (5, 1), (6, 2), (15, 3), (84, 16), (85, 16), (99, 21)])
def test_section_for_chapter(chapter, section):
    assert section_for_chapter(chapter) == section


def test_unknown_chapter():
    assert section_for_chapter(0) is None


def test_seed_section_chapter_mapping(db):
    assert seed_section_chapter_mapping(db) == 99
    seed_section_chapter_mapping(db)

    assert db.query(SectionChapterMapping).count() == 99
    assert db.query(SectionChapterMapping).filter_by(chapter_id=1).one().section_number == 1


def test_load_and_store_section_descriptions(db, tmp_path):
    path = tmp_path / "sections.csv"
    path.write_text(
        "section_number,language,name\n"
        "1,en,Live animals; animal products\n"
        "1,LT,Gyvi gyvūnai; gyvūninės kilmės produktai\n"
        "22,EN,Not a section\n",
        encoding="utf-8",
    )

    df = load_section_descriptions(str(path))
    stored = store_section_descriptions(db, df)

    assert stored == 2
    assert db.query(SectionDescription).count() == 2
    assert db.query(SectionDescription).filter_by(section_number=1, language="EN").one().name == \
        "Live animals; animal products"


def test_store_updates_existing_names(db):
    store_section_descriptions(db, pd.DataFrame(
        [[2, "EN", "Vegetable products"]], columns=["section_number", "language", "name"]
    ))
    store_section_descriptions(db, pd.DataFrame(
        [[2, "EN", "VEGETABLE PRODUCTS"]], columns=["section_number", "language", "name"]
    ))

    rows = db.query(SectionDescription).all()
    assert len(rows) == 1
    assert rows[0].name == "VEGETABLE PRODUCTS"


def test_missing_columns(tmp_path):
    path = tmp_path / "sections.csv"
    path.write_text("section,name\n1,Live animals\n")

    with pytest.raises(ValueError, match="Missing required columns"):
        load_section_descriptions(str(path))
