# WORKFLOW: ETL (Extract, Transform, Load) package for TARIC nomenclature data.
# Used by: Spreadsheet imports, section seeding, search index sync
# Modules include:
# 1. ingest_xlsx.py - Parse nomenclature and declarable code XLSX exports (file, directory or ZIP)
# 2. sections.py - Chapter -> section mapping and localized section names
# 3. validators.py - Validate sheets before row parsing
# 4. build_search_index.py - Rebuild the search collection from the database
#
# ETL flow: XLSX -> Row parsers -> Nomenclature tables -> Hierarchy index -> Category chains -> Search index

"""
ETL package for TARIC nomenclature ingestion and search index sync.
"""
