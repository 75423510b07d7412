"""
===============================================================================
FORGE STEEL IMPORTER - MAIN IMPORT SCRIPT
===============================================================================

THIS IS THE PRIMARY SCRIPT FOR IMPORTING FORGE STEEL CHARACTERS INTO CODEX

USAGE:
    python forgesteel_importer.py input.ds-hero output.json

EXAMPLE:
    python forgesteel_importer.py Swami.ds-hero Swami_codex.json --catalog codex_catalog

DO NOT USE importer/section_importers.py DIRECTLY - that is an internal module only!
===============================================================================
"""

import argparse
import json
import sys
import logging
from pathlib import Path
from importer.import_log import LogContext
from importer.loader import InvalidCharacterError, load_catalog, load_forgesteel_character
from importer.section_importers import import_character
from importer.writer import write_character

# Version
__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Import Forge Steel character files into Codex level choices.",
        epilog="Example: python forgesteel_importer.py character.ds-hero character.json",
    )
    parser.add_argument("input", help="The path to the Forge Steel .ds-hero file")
    parser.add_argument("output", help="The path to save the imported character .json file")
    parser.add_argument(
        "--catalog",
        help="The Codex catalog JSON file or directory of JSON files",
        default="codex_catalog",
    )
    parser.add_argument(
        "--level-cap",
        type=int,
        default=None,
        help="Expand Codex features up to this level instead of the class level",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging for debugging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate input file
    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        logger.debug(f"Input: {input_path.resolve()}")
        logger.debug(f"Output: {Path(args.output).resolve()}")
        logger.debug(f"Catalog (preferred): {Path(args.catalog).resolve()}")

        logger.info(f"Loading character from {args.input}...")
        hero = load_forgesteel_character(args.input)
        char_name = hero.get("name", "Unknown")
        logger.debug(f"Loaded character: {char_name}")

        logger.info("Loading Codex catalog...")
        catalog = load_catalog(args.catalog)

    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        return 1
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {args.input}: {e}")
        return 1
    except InvalidCharacterError as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Error loading files: {e}")
        if args.verbose:
            logger.debug("", exc_info=True)
        return 1

    try:
        logger.info("Importing character...")
        ctx = LogContext(logging.getLogger("importer"))
        character = import_character(hero, catalog, ctx, level_cap=args.level_cap)

        choice_count = len(character.get("levelChoices", {}))
        logger.debug(f"Resolved {choice_count} level choices")

        logger.info(f"Saving imported character to {args.output}...")
        write_character(character, args.output)

        logger.info("Import complete!")
        logger.info(
            f"Imported '{char_name}' with {choice_count} level choices "
            f"and {len(ctx.issues)} unresolved selection(s)"
        )
        return 0

    except Exception as e:
        logger.error(f"Error during import: {e}")
        if args.verbose:
            logger.debug("", exc_info=True)
        return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code if exit_code else 0)
