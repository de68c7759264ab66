"""Report which transports this host can use"""
from phantomhub.core import ConsoleLogger, SystemCapabilityProbe


def setup_parser(parser):
    """Setup argument parser for check-transports command"""
    pass


def execute(args):
    """Execute check-transports command.

    Returns:
        Exit code: 0 if every transport is available, 1 otherwise
    """
    logger = ConsoleLogger()
    probe = SystemCapabilityProbe()
    checks = [
        ('usb (serial)', probe.serial_available(), 'install pyserial'),
        ('network (tcp)', probe.network_available(), 'sockets unavailable in this runtime'),
    ]
    for name, available, hint in checks:
        symbol = '✓' if available else '✗'
        suffix = '' if available else f' ({hint})'
        logger.info(f"{symbol} {name}{suffix}")
    return 0 if all(available for _, available, _ in checks) else 1
