# WORKFLOW: Command line import of TARIC spreadsheet exports into the database.
# Used by: Operators before a search index sync
# Functions:
# 1. ingest_sections() - Seed chapter -> section mapping and localized section names
# 2. ingest_rows() - Run the nomenclature or declarable code row parser over a path
# 3. main() - Parse arguments and run the selected import
#
# Import order for a fresh database: sections -> nomenclatures -> declarable_codes
# Exit code is 1 if the import fails; skipped rows are only reported in the summary.

"""
Import TARIC nomenclature spreadsheets.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from db.session import dispose_engine, get_db, init_db  # noqa: E402
from etl.ingest_xlsx import PARSERS, run_parser  # noqa: E402
from etl.sections import load_section_descriptions, seed_section_chapter_mapping, store_section_descriptions  # noqa: E402

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

DEFAULT_PATHS = {
    'nomenclatures': settings.nomenclature_files_path,
    'declarable_codes': settings.declarable_codes_files_path,
    'sections': settings.section_descriptions_file,
}


def ingest_sections(db, path: str) -> int:
    """
    Seed the section binding.

    Returns:
        Number of localized section names stored
    """
    seed_section_chapter_mapping(db)

    if not Path(path).exists():
        logger.warning(f"Section descriptions file not found: {path}; only the chapter mapping was seeded")
        return 0

    return store_section_descriptions(db, load_section_descriptions(path))


def ingest_rows(db, import_type: str, path: str, chunk_size: int = None) -> int:
    summary = run_parser(PARSERS[import_type], path, db, chunk_size)
    logger.info(f"Summary: {summary.model_dump()}")
    return summary.inserted


def main(argv=None):
    """
    Main import function.
    """
    parser = argparse.ArgumentParser(description='Import TARIC nomenclature spreadsheets')
    parser.add_argument('--type', dest='import_type', required=True, choices=sorted(DEFAULT_PATHS),
                        help='Kind of export to import')
    parser.add_argument('--path', help='File, directory or ZIP archive (defaults to the configured path)')
    parser.add_argument('--chunk-size', type=int, default=settings.ingest_chunk_size,
                        help='Rows saved per transaction')
    parser.add_argument('--init-db', action='store_true', help='Create missing tables first')

    args = parser.parse_args(argv)
    path = args.path or DEFAULT_PATHS[args.import_type]

    try:
        logger.info(f"Starting {args.import_type} import from {path}")

        if args.init_db:
            init_db()

        with next(get_db()) as db:
            if args.import_type == 'sections':
                stored = ingest_sections(db, path)
            else:
                stored = ingest_rows(db, args.import_type, path, args.chunk_size)

        logger.info(f"Import of {args.import_type} completed: {stored} rows stored")
        return 0

    except Exception as e:
        logger.error(f"Import of {args.import_type} failed: {e}")
        return 1
    finally:
        dispose_engine()


if __name__ == "__main__":
    sys.exit(main())
