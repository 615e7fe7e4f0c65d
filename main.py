"""
Main entry point for the Worksheet Word Cloud application.
"""

import argparse
import functools
import logging
import sys

from app_controller import WordCloudController
from config import GEMINI_CONFIG, LOGGING_CONFIG
from gemini_service import create_gemini_sources


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Worksheet Word Cloud - turn a worksheet photo into a word cloud of its key terms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with the API key from GEMINI_API_KEY
  python main.py

  # Read the API key from a file
  python main.py --api-key-file my_key.api

  # Show debug logging
  python main.py --verbose
""",
    )
    parser.add_argument(
        "--api-key-file",
        type=str,
        default=GEMINI_CONFIG["api_key_file"],
        help="File holding the Gemini API key, used when GEMINI_API_KEY is not set",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger from LOGGING_CONFIG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else LOGGING_CONFIG["level"],
        format=LOGGING_CONFIG["format"],
        datefmt=LOGGING_CONFIG["datefmt"],
    )


def main(argv=None) -> int:
    """Main function."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    logger = logging.getLogger("main")

    try:
        text_source, keyword_source = create_gemini_sources(api_key_file=args.api_key_file)
    except (OSError, ValueError) as e:
        logger.error("Could not set up Gemini: %s", e)
        return 1

    # Imported here so argument errors don't need a display
    from word_cloud_gui import run_gui

    run_gui(functools.partial(WordCloudController, text_source, keyword_source))
    return 0


if __name__ == "__main__":
    sys.exit(main())
