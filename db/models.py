# WORKFLOW: Database models for the TARIC nomenclature schema.
# Used by: ETL ingestion, section seeding, search index sync
# Models represent:
# 1. nomenclatures - goods codes with validity dates, hierarchy path and indent
# 2. nomenclature_descriptions - per-language descriptions of a nomenclature
# 3. nomenclature_declarable_codes - declarable (leaf) flags
# 4. section_chapter_mapping - chapter number -> section number
# 5. section_descriptions - localized section names
#
# Data flow: XLSX -> ETL -> nomenclature tables -> paginated scan -> HierarchyIndex -> search documents

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Nomenclature(Base):
    __tablename__ = "nomenclatures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    goods_code = Column(String(16), nullable=False)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    hier_pos = Column(Integer, nullable=False)
    hierarchy_path = Column(String(64), nullable=False)
    indent = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    descriptions = relationship("NomenclatureDescription", back_populates="nomenclature")
    declarable_code = relationship("NomenclatureDeclarableCode", back_populates="nomenclature", uselist=False)

    __table_args__ = (
        UniqueConstraint('goods_code', 'start_date', 'end_date', name='uq_nomenclature_validity'),
        Index('idx_nomenclature_goods_code', 'goods_code'),
        Index('idx_nomenclature_hierarchy_path', 'hierarchy_path'),
    )


class NomenclatureDescription(Base):
    __tablename__ = "nomenclature_descriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nomenclature_id = Column(Integer, ForeignKey("nomenclatures.id"), nullable=False)
    language = Column(String(2), nullable=False)
    description = Column(Text, nullable=False)
    descr_start_date = Column(Date, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    nomenclature = relationship("Nomenclature", back_populates="descriptions")

    __table_args__ = (
        UniqueConstraint('nomenclature_id', 'language', name='uq_description_language'),
    )


class NomenclatureDeclarableCode(Base):
    __tablename__ = "nomenclature_declarable_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nomenclature_id = Column(Integer, ForeignKey("nomenclatures.id"), nullable=False, unique=True)
    start_date = Column(Date, nullable=True)
    declarable_start_date = Column(Date, nullable=True)
    is_leaf = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    nomenclature = relationship("Nomenclature", back_populates="declarable_code")


class SectionChapterMapping(Base):
    __tablename__ = "section_chapter_mapping"

    chapter_id = Column(Integer, primary_key=True, autoincrement=False)
    section_number = Column(Integer, nullable=False)

    __table_args__ = (
        Index('idx_section_chapter_section', 'section_number'),
    )


class SectionDescription(Base):
    __tablename__ = "section_descriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    section_number = Column(Integer, nullable=False)
    language = Column(String(2), nullable=False)
    name = Column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint('section_number', 'language', name='uq_section_language'),
    )
