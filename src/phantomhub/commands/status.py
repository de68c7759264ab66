"""List deployments and device state"""
from phantomhub.commands._wiring import settings_from_args
from phantomhub.core import ConsoleLogger
from phantomhub.store.yaml_store import YamlFileRepository


def setup_parser(parser):
    """Setup argument parser for status command"""
    parser.add_argument(
        '--store',
        help='Store file (default: phantomhub-store.yaml, or $PHANTOMHUB_STORE)'
    )
    parser.add_argument(
        '--config',
        help='Config file (default: phantomhub.yaml if present)'
    )


def execute(args):
    """Execute status command"""
    logger = ConsoleLogger()
    store = YamlFileRepository(settings_from_args(args).store_path)

    logger.info(f"{'DEVICE':<20} {'TYPE':<8} {'STATUS':<8} ADDRESS")
    for device in store.list_devices():
        logger.info(
            f"{device.name:<20} {device.connection_type.value:<8} "
            f"{device.status.value:<8} {device.address or '-'}"
        )

    logger.info("")
    logger.info(f"{'DEPLOYMENT':<20} {'DEVICE':<20} {'STATUS':<10} RESULT")
    for deployment in store.list_deployments():
        first_line = (deployment.result or '').split('\n', 1)[0]
        logger.info(
            f"{deployment.id:<20} {deployment.device_id:<20} "
            f"{deployment.status.value:<10} {first_line}"
        )
    return 0
