# WORKFLOW: Record types shared by the hierarchy engine.
# Used by: db.repository (producer), services.category_chain, services.document_builder
# Types:
# 1. NomenclatureRecord - one nomenclature row joined with one language description
# 2. CategoryChain - ordered ancestor descriptions and code segments for one record
# 3. ResolvedEntry - a record paired with its resolved chain

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class NomenclatureRecord(BaseModel):
    """A nomenclature row joined with a single language description and its section binding."""
    id: int
    goods_code: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    hierarchy_path: str
    indent: int = 0
    hier_pos: Optional[int] = None
    description: str = ""
    language: str
    descr_start_date: Optional[date] = None
    section_name: Optional[str] = None
    section_number: Optional[int] = None
    is_leaf: Optional[bool] = None


class CategoryChain(BaseModel):
    """Breadcrumb for one goods code in one language."""
    goods_code: str
    language: str
    descriptions: List[str] = Field(default_factory=list)
    codes: List[str] = Field(default_factory=list)
    section_bound: bool = True
    # chapter is bound to a section, but the section has no name in this language
    section_name_missing: bool = False
    missing_prefixes: List[str] = Field(default_factory=list)
    indent_conflict: bool = False


class ResolvedEntry(BaseModel):
    record: NomenclatureRecord
    chain: CategoryChain
