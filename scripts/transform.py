# WORKFLOW: Command-line entry point for analysing and transforming STOP source packages.
# Used by: Operators, local development, batch scripts
# Commands:
# 1. analyze - Print the analysis of a source package as JSON
# 2. transform - Build a publication, withdrawal or hand-over package next to the source
#
# CLI flow: Arguments -> TransformationService -> Output ZIP + report -> Exit code
# Exit codes: 0 success, 1 source not found, 2 authority code missing

"""
Command-line entry point for analysing and transforming STOP source packages.
"""

import sys
import json
import logging
import argparse
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.config import settings  # noqa: E402
from core.exceptions import InputNotFoundError, MissingRequiredIdentityError  # noqa: E402
from pipeline.models import Scenario  # noqa: E402
from services.transformation_service import TransformationService  # noqa: E402

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Transform STOP source packages')
    commands = parser.add_subparsers(dest='command', required=True)

    analyze = commands.add_parser('analyze', help='Analyse a source package')
    analyze.add_argument('source', help='Source ZIP package')

    transform = commands.add_parser('transform', help='Build a scenario package')
    transform.add_argument('scenario', choices=[scenario.value for scenario in Scenario])
    transform.add_argument('source', help='Source ZIP package')
    transform.add_argument('--output', help='Output ZIP (defaults to the scenario name next to the source)')
    transform.add_argument('--validation', action='store_true', help='Build a validation delivery')

    return parser


def main(argv=None) -> int:
    """
    Main CLI function.
    """
    args = build_parser().parse_args(argv)
    service = TransformationService()

    try:
        if args.command == 'analyze':
            analysis = service.analyze(args.source)
            print(json.dumps(analysis.model_dump(), indent=2, ensure_ascii=False))
            return 0

        result = service.transform(
            Scenario(args.scenario),
            args.source,
            output_path=args.output,
            validation=args.validation,
        )
        logger.info(f"Output written to {result.output_path} ({len(result.files)} files)")
        logger.info(f"Report written to {result.report_path}")
        return 0

    except InputNotFoundError as e:
        logger.error(str(e))
        return 1
    except MissingRequiredIdentityError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
