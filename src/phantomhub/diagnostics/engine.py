"""Connection diagnostics engine.

Pure and synchronous: given a transport type, an optional address and the
operator's attestations so far, evaluate the fixed checklist in order and
return one result per check. The engine never opens a connection and
keeps no state between runs; interactive pacing lives in wizard.py.
"""
from typing import List, Mapping, Optional

from phantomhub.core.protocols import TransportCapabilityProbe
from phantomhub.diagnostics.checks import (
    CHECKLISTS,
    CheckDefinition,
    CheckResult,
    CheckStatus,
    DiagnosticContext,
)
from phantomhub.models import ConnectionType


class DiagnosticsEngine:
    """Evaluates transport checklists against a capability probe."""

    def __init__(self, probe: TransportCapabilityProbe):
        self.probe = probe

    def checklist(self, connection_type: ConnectionType) -> List[CheckDefinition]:
        """Ordered checks for a transport type."""
        try:
            return list(CHECKLISTS[ConnectionType(connection_type)])
        except (KeyError, ValueError):
            raise ValueError(f"No diagnostics defined for connection type {connection_type!r}")

    def run(
        self,
        connection_type: ConnectionType,
        address: Optional[str] = None,
        attestations: Optional[Mapping[str, bool]] = None,
    ) -> List[CheckResult]:
        """Evaluate every check, in order.

        Args:
            connection_type: usb or network
            address: configured IP address (network only)
            attestations: check id -> True (resolved) / False (not resolved)
                for operator-attested checks; missing ids stay unknown

        Returns:
            One CheckResult per check. Checks after a failed gate check are
            still evaluated and carry blocked_by set to the gate's id.
        """
        attestations = attestations or {}
        context = DiagnosticContext(
            connection_type=ConnectionType(connection_type),
            address=address,
            probe=self.probe,
        )

        results: List[CheckResult] = []
        blocked_by: Optional[str] = None

        for check in self.checklist(connection_type):
            status = self._evaluate(check, context, attestations)
            results.append(CheckResult(
                check_id=check.id,
                title=check.title,
                status=status,
                remediation=check.remediation,
                automatic=check.automatic,
                blocked_by=blocked_by,
            ))
            if check.gate and status == CheckStatus.FAIL and blocked_by is None:
                blocked_by = check.id

        return results

    def _evaluate(
        self,
        check: CheckDefinition,
        context: DiagnosticContext,
        attestations: Mapping[str, bool],
    ) -> CheckStatus:
        if check.automatic:
            return CheckStatus.PASS if check.evaluate(context) else CheckStatus.FAIL

        attested = attestations.get(check.id)
        if attested is None:
            return CheckStatus.UNKNOWN
        return CheckStatus.PASS if attested else CheckStatus.FAIL


def failing_remediation(results: List[CheckResult]) -> List[str]:
    """Remediation lines for automatically failed checks, in order."""
    return [
        f"{result.title}: {result.remediation}"
        for result in results
        if result.automatic and result.failed
    ]


def all_clear(results: List[CheckResult]) -> bool:
    """True if no check failed (unknown does not count as failure)."""
    return not any(result.failed for result in results)
