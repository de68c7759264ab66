"""Connection diagnostics: ordered checklists, pure engine, interactive driver."""

from .checks import CheckDefinition, CheckResult, CheckStatus, is_valid_ipv4
from .engine import DiagnosticsEngine, all_clear, failing_remediation
from .wizard import DiagnosticsWizard, print_results

__all__ = [
    "CheckDefinition",
    "CheckResult",
    "CheckStatus",
    "is_valid_ipv4",
    "DiagnosticsEngine",
    "all_clear",
    "failing_remediation",
    "DiagnosticsWizard",
    "print_results",
]
