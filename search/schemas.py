# WORKFLOW: Pydantic schema of the documents uploaded to the search index.
# Used by: services.document_builder (producer), search.index (payloads), scripts.sync_search_index (dry run)
# Schemas include:
# 1. NomenclatureDocument - one searchable goods code with multi-language breadcrumbs
#
# Facet fields: category_codes, categories_en, categories_lt, categories_lt_normalized

from typing import List

from pydantic import BaseModel, Field

FACET_FIELDS = ("category_codes", "categories_en", "categories_lt", "categories_lt_normalized")


class NomenclatureDocument(BaseModel):
    """Search document for a goods code (or a synthetic section root)."""
    id: str = Field(..., description="Nomenclature id, or section-<n> for section roots")
    goods_code: str = Field(..., description="Raw goods code including product line suffix")
    goods_code_numeric: int = Field(0, description="Numeric value of the goods code")
    description_en: str = ""
    description_lt: str = ""
    description_lt_normalized: str = ""
    category_codes: List[str] = Field(default_factory=list, description="Section number followed by path segments")
    category_path: str = Field("", description="Canonical TARIC path, entries joined with ' > '")
    categories_en: List[str] = Field(default_factory=list)
    categories_lt: List[str] = Field(default_factory=list)
    categories_lt_normalized: List[str] = Field(default_factory=list)
    rank_boost: int = 0
    root: bool = False

    def search_text(self) -> str:
        """Text embedded for similarity search."""
        return " ".join(part for part in (self.goods_code, self.description_en, self.description_lt) if part)
