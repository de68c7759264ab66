"""Interactive driver for the diagnostics engine.

Walks the operator through one check at a time, records each attestation
and re-runs the engine with everything attested so far. All per-session
state (current step, attestations) lives here, never in the engine.
"""
from typing import Callable, Dict, List, Optional

from phantomhub.core.protocols import Logger
from phantomhub.diagnostics.checks import CheckResult, CheckStatus
from phantomhub.diagnostics.engine import DiagnosticsEngine
from phantomhub.models import ConnectionType

SYMBOLS = {
    CheckStatus.PASS: '✓',
    CheckStatus.FAIL: '✗',
    CheckStatus.UNKNOWN: '?',
}

YES_ANSWERS = ('y', 'yes')
NO_ANSWERS = ('n', 'no')


class DiagnosticsWizard:
    """Step-by-step troubleshooting session for one connection attempt."""

    def __init__(
        self,
        engine: DiagnosticsEngine,
        logger: Logger,
        prompt: Optional[Callable[[str], str]] = None,
    ):
        self.engine = engine
        self.log = logger
        self.prompt = prompt or input
        self.attestations: Dict[str, bool] = {}
        self.step = 0

    def current_results(self, connection_type: ConnectionType, address: Optional[str]) -> List[CheckResult]:
        return self.engine.run(connection_type, address, self.attestations)

    def attest(self, check_id: str, resolved: bool) -> None:
        self.attestations[check_id] = resolved

    def run(self, connection_type: ConnectionType, address: Optional[str] = None) -> List[CheckResult]:
        """Ask about each operator-attested check in order, then return results."""
        checks = self.engine.checklist(connection_type)
        total = len(checks)

        for index, check in enumerate(checks, start=1):
            self.step = index
            self.log.info(f"Step {self.step} of {total}: {check.title}")
            self.log.info(f"  {check.description}")

            if check.automatic:
                result = self.current_results(connection_type, address)[self.step - 1]
                self.log.info(f"  {SYMBOLS[result.status]} checked automatically: {result.status.value}")
                if result.failed:
                    self.log.info(f"  Solution: {result.remediation}")
                continue

            self.log.info(f"  Solution if not: {check.remediation}")
            answer = self._ask("  Is this OK? [y/n/s=skip] ")
            if answer is not None:
                self.attest(check.id, answer)

        results = self.current_results(connection_type, address)
        print_results(results, self.log)
        return results

    def _ask(self, question: str) -> Optional[bool]:
        while True:
            answer = self.prompt(question).strip().lower()
            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
            if answer in ('s', 'skip', ''):
                return None
            self.log.info("  Please answer y, n or s")


def print_results(results: List[CheckResult], logger: Logger) -> None:
    """Print a troubleshooting summary using logger."""
    logger.info("=" * 80)
    logger.info("CONNECTION TROUBLESHOOTING SUMMARY")
    logger.info("=" * 80)

    for result in results:
        mode = 'auto' if result.automatic else 'operator'
        logger.info(f"{SYMBOLS[result.status]} {result.title} [{mode}]: {result.status.value}")
        if result.blocked_by:
            logger.info(f"    (blocked by failed check '{result.blocked_by}')")
        if result.failed:
            logger.info(f"    Solution: {result.remediation}")

    pass_count = sum(1 for r in results if r.status == CheckStatus.PASS)
    fail_count = sum(1 for r in results if r.status == CheckStatus.FAIL)
    unknown_count = sum(1 for r in results if r.status == CheckStatus.UNKNOWN)

    logger.info("=" * 80)
    logger.info(f"Summary: {pass_count} passed, {fail_count} failed, {unknown_count} not checked")
    if fail_count:
        logger.info("Address the failed checks above, then try connecting again.")
    logger.info("=" * 80)
