"""
Command Line Interface for gallery builds.
"""

import argparse
import logging
from typing import Callable, List, Optional

from .config import ProjectConfig
from .errors import ConfigError, ManifestCorrupt
from .generator import ImageGenerator
from .manifest import Manifest
from .pipeline import Pipeline, PipelineStep
from .reporter import Reporter
from .steps import BuildContext, ImagesStep, ScanStep


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('gallerygen')


def load_config(
    args: argparse.Namespace,
    logger: logging.Logger,
    validate: bool = True
) -> Optional[ProjectConfig]:
    """Load project configuration and apply CLI overrides; None if invalid."""
    try:
        config = ProjectConfig.load(args.project, args.config)
    except ConfigError as e:
        logger.error(str(e))
        return None

    if getattr(args, 'workers', None):
        config.images.max_workers = args.workers

    if config.log_level and not args.verbose:
        logging.getLogger().setLevel(config.log_level.upper())

    if validate:
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            return None

    return config


def build_pipeline(context: BuildContext) -> Pipeline:
    """Create the pipeline with the standard steps registered."""
    pipeline = Pipeline(context.logger)
    pipeline.register(ScanStep(context))
    pipeline.register(ImagesStep(context))
    return pipeline


def run_pipeline(
    args: argparse.Namespace,
    step_filter: Optional[Callable[[PipelineStep], bool]] = None
) -> int:
    """Run the pipeline (or the steps selected by step_filter)."""
    logger = setup_logging(args.verbose)

    config = load_config(args, logger)
    if config is None:
        return 1

    logger.info(f"Project: {args.project}")
    logger.info(f"Source: {config.source_path}")
    logger.info(f"Output: {config.images_output_path}")
    if getattr(args, 'force', False):
        logger.info("Force mode: every image will be reprocessed")

    context = BuildContext(
        config,
        force=getattr(args, 'force', False),
        reinitialize=args.reinitialize,
        show_files=args.show_files,
        quiet=args.quiet,
        logger=logger,
    )

    try:
        result = build_pipeline(context).run(step_filter=step_filter)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    if result.cancelled:
        logger.info("Build cancelled")
        return 130
    if not result.success:
        logger.error(f"Build failed in step '{result.failed_step}': {result.message}")
        return 1

    if not args.quiet and not args.show_files:
        print()
        Reporter().report_summary(context.manifest)

    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    """Execute scan command."""
    return run_pipeline(args, lambda step: step.name == ScanStep.name)


def cmd_images(args: argparse.Namespace) -> int:
    """Execute images command."""
    return run_pipeline(args, lambda step: step.name == ImagesStep.name)


def cmd_generate(args: argparse.Namespace) -> int:
    """Execute generate command (all steps)."""
    return run_pipeline(args)


def cmd_report(args: argparse.Namespace) -> int:
    """Execute report command."""
    logger = setup_logging(args.verbose)

    config = load_config(args, logger, validate=False)
    if config is None:
        return 1

    try:
        manifest = Manifest.load(config.manifest_path)
    except FileNotFoundError:
        logger.error(f"Manifest not found: {config.manifest_path} (run scan first)")
        return 1
    except ManifestCorrupt as e:
        logger.error(str(e))
        return 1

    reporter = Reporter()
    if args.type == 'tree':
        reporter.report_tree(manifest)
        return 0

    context = BuildContext(config, logger=logger)
    generator = ImageGenerator(
        variant_generator=context.variant_generator,
        options=context.image_options,
        source_root=config.source_path,
        logger=logger,
    )
    reporter.report_summary(manifest, pending=len(generator.plan(manifest)))
    return 0


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Add project arguments shared by every command."""
    parser.add_argument('-p', '--project', default='.', help='Project directory (default: .)')
    parser.add_argument('--config', metavar='FILE',
                        help='Config file (default: <project>/gallerygen.yml)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')


def add_build_arguments(parser: argparse.ArgumentParser, images: bool) -> None:
    """Add arguments for commands that run pipeline steps."""
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    parser.add_argument('--show-files', action='store_true',
                        help='Print each file as it is handled')
    parser.add_argument('--reinitialize', action='store_true',
                        help='Rebuild a corrupt manifest instead of aborting')
    if images:
        parser.add_argument('-f', '--force', action='store_true',
                            help='Reprocess every image')
        parser.add_argument('-w', '--workers', type=int, metavar='N',
                            help='Worker threads (default: processor count)')


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='gallerygen',
        description='Incremental static gallery builder',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Workflow:
  1. Scan:     python -m gallerygen scan -p mysite
  2. Images:   python -m gallerygen images -p mysite
  Or both:     python -m gallerygen generate -p mysite

  Report:      python -m gallerygen report -p mysite
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    scan_parser = subparsers.add_parser('scan', help='Scan source directory into the manifest')
    add_common_arguments(scan_parser)
    add_build_arguments(scan_parser, images=False)

    images_parser = subparsers.add_parser('images', help='Generate image variants')
    add_common_arguments(images_parser)
    add_build_arguments(images_parser, images=True)

    gen_parser = subparsers.add_parser('generate', help='Scan, then generate image variants')
    add_common_arguments(gen_parser)
    add_build_arguments(gen_parser, images=True)

    report_parser = subparsers.add_parser('report', help='Summarize the manifest')
    add_common_arguments(report_parser)
    report_parser.add_argument('-t', '--type', choices=['summary', 'tree'],
                               default='summary', help='Report type')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'scan':
        return cmd_scan(parsed_args)
    elif parsed_args.command == 'images':
        return cmd_images(parsed_args)
    elif parsed_args.command == 'generate':
        return cmd_generate(parsed_args)
    elif parsed_args.command == 'report':
        return cmd_report(parsed_args)

    return 1
