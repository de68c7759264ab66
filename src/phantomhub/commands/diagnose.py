"""Connection troubleshooting command"""
from phantomhub.core import ConsoleLogger, SystemCapabilityProbe
from phantomhub.diagnostics.engine import DiagnosticsEngine, all_clear
from phantomhub.diagnostics.wizard import DiagnosticsWizard, print_results
from phantomhub.models import ConnectionType


def setup_parser(parser):
    """Setup argument parser for diagnose command"""
    parser.add_argument(
        '--type',
        dest='connection_type',
        choices=[c.value for c in ConnectionType],
        required=True,
        help='Transport to troubleshoot'
    )
    parser.add_argument(
        '--address',
        help='Configured IP address (network only)'
    )
    parser.add_argument(
        '--interactive', '-i',
        action='store_true',
        help='Ask about each manual check step by step'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show verbose output'
    )


def execute(args):
    """Execute diagnose command.

    Returns:
        Exit code: 0 if no check failed, 1 otherwise
    """
    logger = ConsoleLogger(verbose=args.verbose)
    engine = DiagnosticsEngine(SystemCapabilityProbe())
    connection_type = ConnectionType(args.connection_type)

    if args.interactive:
        results = DiagnosticsWizard(engine, logger).run(connection_type, args.address)
    else:
        results = engine.run(connection_type, args.address)
        print_results(results, logger)

    return 0 if all_clear(results) else 1
