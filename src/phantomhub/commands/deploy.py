"""Run a pending deployment"""
import signal
import threading

from phantomhub.commands._wiring import add_common_arguments, build_orchestrator, settings_from_args
from phantomhub.core import ConsoleLogger
from phantomhub.models import DeploymentStatus
from phantomhub.orchestration.exceptions import ConflictError
from phantomhub.store.exceptions import NotFoundError, StoreError


def setup_parser(parser):
    """Setup argument parser for deploy command"""
    parser.add_argument(
        'deployment_id',
        help='Id of a pending deployment in the store'
    )
    parser.add_argument(
        '--open-timeout',
        type=float,
        help='Override connection-open timeout (seconds)'
    )
    parser.add_argument(
        '--ack-timeout',
        type=float,
        help='Override payload acknowledgement timeout (seconds)'
    )
    parser.add_argument(
        '--result-timeout',
        type=float,
        help='Override execution result timeout (seconds)'
    )
    add_common_arguments(parser)


def execute(args):
    """Execute deploy command.

    Returns:
        Exit code: 0 completed, 1 failed or store error, 2 conflict or not found
    """
    logger = ConsoleLogger(verbose=args.verbose)
    settings = settings_from_args(args)
    orchestrator = build_orchestrator(settings, logger)

    # Ctrl-C cancels the deployment instead of abandoning it mid-transition
    previous_handler = None
    if threading.current_thread() is threading.main_thread():
        def _cancel(signum, frame):
            logger.warning("Cancelling deployment...")
            orchestrator.cancel(args.deployment_id)
        previous_handler = signal.signal(signal.SIGINT, _cancel)

    try:
        status = orchestrator.deploy(args.deployment_id)
    except (ConflictError, NotFoundError) as e:
        logger.error(str(e))
        return 2
    except StoreError as e:
        logger.error(f"Store failure, deployment left at its last saved state: {e}")
        return 1
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    deployment = orchestrator.store.load_deployment(args.deployment_id)
    logger.info("=" * 80)
    logger.info(f"Deployment {deployment.id}: {status.value.upper()}")
    logger.info("=" * 80)
    if deployment.result:
        logger.info(deployment.result)

    return 0 if status == DeploymentStatus.COMPLETED else 1
