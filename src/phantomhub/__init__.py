"""
PhantomHub CLI - Device deployment orchestration for implant-style cables

Drives payload deployments to usb (serial) and network cables, and walks
operators through connection troubleshooting.
"""
import argparse
import sys

__version__ = "1.0.0"


def main():
    """Main CLI entry point"""
    from phantomhub.commands import (
        deploy, diagnose, recover, status, check_transports
    )

    parser = argparse.ArgumentParser(
        prog='phantomhub',
        description='PhantomHub: device deployment orchestration',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  phantomhub deploy dep-42                        # Run a pending deployment
  phantomhub deploy dep-42 --result-timeout 60    # Allow a slow payload
  phantomhub diagnose --type network --address 192.168.4.1
  phantomhub diagnose --type usb --interactive    # Guided troubleshooting
  phantomhub status                               # List deployments
  phantomhub recover                              # Fail deployments left by a crash
  phantomhub check-transports                     # Show transport support
        '''
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Deploy command
    deploy_parser = subparsers.add_parser('deploy', help='Run a pending deployment')
    deploy.setup_parser(deploy_parser)

    # Diagnose command
    diagnose_parser = subparsers.add_parser('diagnose', help='Troubleshoot a device connection')
    diagnose.setup_parser(diagnose_parser)

    # Status command
    status_parser = subparsers.add_parser('status', help='List deployments')
    status.setup_parser(status_parser)

    # Recover command
    recover_parser = subparsers.add_parser('recover', help='Fail deployments interrupted by a crash')
    recover.setup_parser(recover_parser)

    # Check-transports command
    check_parser = subparsers.add_parser('check-transports', help='Show which transports this host supports')
    check_transports.setup_parser(check_parser)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Dispatch to command handler
    try:
        if args.command == 'deploy':
            sys.exit(deploy.execute(args))
        elif args.command == 'diagnose':
            sys.exit(diagnose.execute(args))
        elif args.command == 'status':
            sys.exit(status.execute(args))
        elif args.command == 'recover':
            sys.exit(recover.execute(args))
        elif args.command == 'check-transports':
            sys.exit(check_transports.execute(args))
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)
