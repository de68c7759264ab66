"""Fail deployments interrupted by a crash and clear stale busy flags"""
from phantomhub.commands._wiring import add_common_arguments, build_orchestrator, settings_from_args
from phantomhub.core import ConsoleLogger


def setup_parser(parser):
    """Setup argument parser for recover command"""
    add_common_arguments(parser)


def execute(args):
    """Execute recover command"""
    logger = ConsoleLogger(verbose=args.verbose)
    orchestrator = build_orchestrator(settings_from_args(args), logger)

    recovered = orchestrator.recover_interrupted()
    if recovered:
        logger.info(f"Marked {len(recovered)} interrupted deployment(s) as failed: {', '.join(recovered)}")
    else:
        logger.info("No interrupted deployments found")
    return 0
