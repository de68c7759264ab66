"""Production wiring shared by CLI commands."""
from phantomhub.core import (
    ConsoleLogger,
    SystemCapabilityProbe,
    SystemTimeProvider,
    YamlConfigLoader,
)
from phantomhub.diagnostics.engine import DiagnosticsEngine
from phantomhub.orchestration.orchestrator import DeploymentOrchestrator
from phantomhub.store.yaml_store import YamlFileRepository
from phantomhub.transport.factory import SessionFactory
from phantomhub.utils.config import Settings, apply_overrides, load_settings


def add_common_arguments(parser):
    parser.add_argument(
        '--config',
        help='Config file (default: phantomhub.yaml if present)'
    )
    parser.add_argument(
        '--store',
        help='Store file (default: phantomhub-store.yaml, or $PHANTOMHUB_STORE)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Show debug output'
    )


def settings_from_args(args) -> Settings:
    settings = load_settings(YamlConfigLoader(), getattr(args, 'config', None))
    return apply_overrides(
        settings,
        open_timeout=getattr(args, 'open_timeout', None),
        ack_timeout=getattr(args, 'ack_timeout', None),
        result_timeout=getattr(args, 'result_timeout', None),
        store_path=getattr(args, 'store', None),
    )


def build_orchestrator(settings: Settings, logger: ConsoleLogger) -> DeploymentOrchestrator:
    """Create an orchestrator with production dependencies."""
    probe = SystemCapabilityProbe()
    time_provider = SystemTimeProvider()
    return DeploymentOrchestrator(
        store=YamlFileRepository(settings.store_path),
        session_factory=SessionFactory(settings, probe, time_provider, logger),
        diagnostics=DiagnosticsEngine(probe),
        settings=settings,
        time_provider=time_provider,
        logger=logger,
    )
